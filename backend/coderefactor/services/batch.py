"""
Batch refactoring over a list of files

Files are refactored one at a time, in request order. The two batch
variants treat per-file failures differently:

- archive output keeps the original content and says nothing
- preview output keeps the original content and reports the error per file
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from coderefactor.core.logging import get_logger
from coderefactor.services.languages import detect_batch_language
from coderefactor.services.refactor import RefactorResult, RefactorSettings
from coderefactor.services.zip_processor import build_refactored_archive, output_path

logger = get_logger(__name__)

UNKNOWN_FILE_ERROR = "Unknown error"


class Refactorer(Protocol):
    async def refactor(
        self,
        code: str,
        language: str = ...,
        settings: Optional[RefactorSettings] = ...,
    ) -> RefactorResult:
        ...


class BatchFile(Protocol):
    name: str
    content: str


@dataclass
class BatchResultEntry:
    name: str
    refactored_code: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "name": data["name"],
            "refactoredCode": data["refactored_code"],
            "error": data["error"],
        }


class BatchRefactorError(Exception):
    """Raised when every file in a batch failed"""
    def __init__(self, errors: List[str]):
        self.errors = errors
        self.details = "; ".join(errors)
        super().__init__(f"All files failed to refactor: {self.details}")


async def _refactor_file(service: Refactorer, file: BatchFile) -> RefactorResult:
    language = detect_batch_language(file.name)
    return await service.refactor(file.content, language, RefactorSettings())


async def refactor_to_archive(service: Refactorer, files: Sequence[BatchFile]) -> bytes:
    """
    Refactor each file and package the results as a zip archive.

    Raises:
        ZipSecurityError: If a file name is not a safe archive path. Names
            are checked before any file is sent to the provider.
    """
    for file in files:
        output_path(file.name)

    batch_logger = logger.with_fields(event="batch_archive")
    outputs: List[Tuple[str, str]] = []

    for file in files:
        result = await _refactor_file(service, file)
        if result.success and result.refactored_code:
            outputs.append((file.name, result.refactored_code))
        else:
            batch_logger.warning(
                "Keeping original content",
                file=file.name,
                error=result.error.message if result.error else None,
            )
            outputs.append((file.name, file.content))

    batch_logger.info("Batch archive built", files=len(files))
    return build_refactored_archive(outputs)


async def refactor_for_preview(service: Refactorer, files: Sequence[BatchFile]) -> List[BatchResultEntry]:
    """
    Refactor each file and return per-file results, keeping failures visible.

    Raises:
        BatchRefactorError: If no file could be refactored
    """
    results: List[BatchResultEntry] = []

    for file in files:
        result = await _refactor_file(service, file)
        if result.success and result.refactored_code:
            results.append(BatchResultEntry(name=file.name, refactored_code=result.refactored_code))
        else:
            message = result.error.message if result.error and result.error.message else UNKNOWN_FILE_ERROR
            results.append(BatchResultEntry(name=file.name, refactored_code=file.content, error=message))

    failed = [entry.error for entry in results if entry.error]
    logger.info(
        "Batch preview completed",
        event="batch_preview",
        files=len(results),
        failed=len(failed),
    )

    if results and len(failed) == len(results):
        raise BatchRefactorError(failed)

    return results
