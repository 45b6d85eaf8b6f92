"""
Refactor API routes

Single snippets, single file uploads, zip extraction and batch refactoring.
"""
from typing import Optional
import logging
import zipfile

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import Response
from pydantic import ValidationError

from coderefactor.api.dependencies import get_app_settings, get_refactor_service
from coderefactor.api.exception_handlers import APIError
from coderefactor.api.schemas import (
    BatchPreviewResponse,
    BatchRefactorRequest,
    RefactorRequest,
    RefactorResponse,
    RefactorSettingsSchema,
    StatsResponse,
    ZipUploadResponse,
)
from coderefactor.core.config import Settings
from coderefactor.core.logging import log_duration
from coderefactor.services.batch import (
    BatchRefactorError,
    refactor_for_preview,
    refactor_to_archive,
)
from coderefactor.services.languages import detect_upload_language
from coderefactor.services.refactor import RefactorService, RefactorSettings
from coderefactor.services.validators import (
    FileValidationError,
    validate_code_upload,
    validate_zip_upload,
)
from coderefactor.services.zip_processor import (
    OUTPUT_ARCHIVE_NAME,
    ZipSecurityError,
    extract_code_files,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Refactor"])

# Fixed sample figures returned by GET /stats until usage is recorded
PLACEHOLDER_STATS = {
    "totalRefactors": 0,
    "averageQualityScore": 4.2,
    "languageBreakdown": {
        "javascript": 45,
        "react": 30,
        "typescript": 20,
        "nodejs": 5,
    },
}


async def run_refactor(
    service: RefactorService,
    code: Optional[str],
    language: Optional[str],
    refactor_settings: Optional[RefactorSettings] = None,
) -> dict:
    """Shared by the snippet and upload endpoints"""
    if not code or not language:
        raise APIError(status.HTTP_400_BAD_REQUEST, "Code and language are required")

    result = await service.refactor(code, language, refactor_settings or RefactorSettings())

    if not result.success:
        raise APIError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Refactoring failed",
            details=result.error.message if result.error else None,
        )

    return {
        "success": True,
        "data": {
            "refactoredCode": result.refactored_code,
            "metrics": result.metrics.to_dict(),
            "tokenUsage": result.token_usage,
        },
    }


def parse_settings_field(raw: Optional[str]) -> RefactorSettings:
    """Settings arrive as a JSON string in multipart uploads"""
    if not raw:
        return RefactorSettings()
    try:
        return RefactorSettingsSchema.model_validate_json(raw).to_settings()
    except ValidationError as e:
        raise APIError(status.HTTP_400_BAD_REQUEST, "Invalid settings", details=str(e))


@router.post("", response_model=RefactorResponse)
@router.post("/", response_model=RefactorResponse, include_in_schema=False)
async def refactor_code(
    request: RefactorRequest,
    service: RefactorService = Depends(get_refactor_service),
):
    """Refactor a code snippet"""
    refactor_settings = request.settings.to_settings() if request.settings else None
    return await run_refactor(service, request.code, request.language, refactor_settings)


@router.post("/upload", response_model=RefactorResponse)
async def upload_and_refactor(
    file: Optional[UploadFile] = File(None),
    settings: Optional[str] = Form(None),
    service: RefactorService = Depends(get_refactor_service),
    app_settings: Settings = Depends(get_app_settings),
):
    """Upload a single code file and refactor it"""
    if file is None:
        raise APIError(status.HTTP_400_BAD_REQUEST, "No file uploaded")

    try:
        contents, filename = await validate_code_upload(file, app_settings.max_upload_bytes)
    except FileValidationError as e:
        raise APIError(status.HTTP_400_BAD_REQUEST, e.message, details=e.details)

    code = contents.decode("utf-8", errors="replace")
    language = detect_upload_language(filename)
    logger.info(f"Refactoring upload {filename} as {language}")

    return await run_refactor(service, code, language, parse_settings_field(settings))


@router.get("/stats", response_model=StatsResponse)
async def get_stats():
    """
    Placeholder statistics.

    Nothing is recorded between requests, so these figures are fixed
    sample values and must not be read as real usage data.
    """
    return {
        "success": True,
        "data": {"stats": PLACEHOLDER_STATS, "placeholder": True},
    }


@router.post("/upload-zip", response_model=ZipUploadResponse)
async def upload_zip(
    file: Optional[UploadFile] = File(None),
    app_settings: Settings = Depends(get_app_settings),
):
    """
    Upload a zip archive and return its code files without refactoring them.
    """
    if file is None:
        raise APIError(status.HTTP_400_BAD_REQUEST, "No zip file uploaded")

    try:
        zip_data, filename = await validate_zip_upload(file, app_settings.max_zip_bytes)
    except FileValidationError as e:
        raise APIError(status.HTTP_400_BAD_REQUEST, e.message, details=e.details)

    try:
        with log_duration("zip_extraction", archive=filename):
            entries = extract_code_files(zip_data)
    except zipfile.BadZipFile as e:
        raise APIError(status.HTTP_400_BAD_REQUEST, "Failed to process zip file", details=str(e))
    except ZipSecurityError as e:
        raise APIError(status.HTTP_400_BAD_REQUEST, "Zip archive rejected", details=str(e))

    if not entries:
        raise APIError(status.HTTP_400_BAD_REQUEST, "No valid code files found in the zip archive")

    return {"success": True, "files": [entry.to_dict() for entry in entries]}


@router.post("/refactor-zip")
async def refactor_zip(
    request: BatchRefactorRequest,
    service: RefactorService = Depends(get_refactor_service),
):
    """Refactor a list of files and return them as a zip with src/ and a README"""
    if not request.files:
        raise APIError(status.HTTP_400_BAD_REQUEST, "No files provided")

    try:
        archive = await refactor_to_archive(service, request.files)
    except ZipSecurityError as e:
        raise APIError(status.HTTP_400_BAD_REQUEST, "Invalid file name", details=str(e))

    return Response(
        content=archive,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{OUTPUT_ARCHIVE_NAME}"'
        }
    )


@router.post("/refactor-zip-animated", response_model=BatchPreviewResponse)
async def refactor_zip_animated(
    request: BatchRefactorRequest,
    service: RefactorService = Depends(get_refactor_service),
):
    """Refactor a list of files and return per-file results, including failures"""
    if not request.files:
        raise APIError(status.HTTP_400_BAD_REQUEST, "No files provided")

    try:
        results = await refactor_for_preview(service, request.files)
    except BatchRefactorError as e:
        raise APIError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "All files failed to refactor",
            details=e.details,
        )

    return {"success": True, "files": [entry.to_dict() for entry in results]}
