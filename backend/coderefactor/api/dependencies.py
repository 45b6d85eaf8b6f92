"""
FastAPI dependencies
"""
from fastapi import Request

from coderefactor.core.config import Settings, settings
from coderefactor.services.refactor import RefactorService


def get_app_settings() -> Settings:
    return settings


def get_refactor_service(request: Request) -> RefactorService:
    """Service built once at startup and kept on the application state"""
    service = getattr(request.app.state, "refactor_service", None)
    if service is None:
        service = RefactorService.from_settings(settings)
        request.app.state.refactor_service = service
    return service
