"""
Pydantic schemas for API requests and responses
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any

from coderefactor.services.refactor import RefactorSettings


# ============ Refactor Schemas ============

class RefactorSettingsSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    add_comments: bool = Field(default=False, alias="addComments")
    improve_naming: bool = Field(default=False, alias="improveNaming")
    remove_dead_code: bool = Field(default=False, alias="removeDeadCode")

    def to_settings(self) -> RefactorSettings:
        return RefactorSettings(
            add_comments=self.add_comments,
            improve_naming=self.improve_naming,
            remove_dead_code=self.remove_dead_code,
        )


class RefactorRequest(BaseModel):
    # Presence is checked by the route so the error matches the envelope
    code: Optional[str] = None
    language: Optional[str] = None
    settings: Optional[RefactorSettingsSchema] = None


class RefactorData(BaseModel):
    refactoredCode: str
    metrics: Dict[str, Any]
    tokenUsage: Optional[Dict[str, Any]] = None


class RefactorResponse(BaseModel):
    success: bool = True
    data: RefactorData


# ============ Batch Schemas ============

class BatchFile(BaseModel):
    name: str
    content: str
    path: Optional[str] = None


class BatchRefactorRequest(BaseModel):
    files: Optional[List[BatchFile]] = None


class ExtractedFile(BaseModel):
    path: str
    name: str
    content: str


class ZipUploadResponse(BaseModel):
    success: bool = True
    files: List[ExtractedFile]


class BatchResultFile(BaseModel):
    name: str
    refactoredCode: str
    error: Optional[str] = None


class BatchPreviewResponse(BaseModel):
    success: bool = True
    files: List[BatchResultFile]


# ============ Stats Schemas ============

class StatsResponse(BaseModel):
    success: bool = True
    data: Dict[str, Any]
