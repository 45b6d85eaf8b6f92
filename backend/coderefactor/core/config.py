"""
Core configuration for CodeRefactor API
"""
from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field
from typing import Optional, List
from functools import lru_cache


class Settings(BaseSettings):
    # ===========================================
    # APPLICATION
    # ===========================================

    APP_NAME: str = "CodeRefactor AI"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "LLM-powered refactoring for JavaScript, TypeScript and React code"

    # ===========================================
    # SERVER & INFRASTRUCTURE
    # ===========================================

    ENVIRONMENT: str = "development"
    DEBUG: bool = False  # Exposes internal error details in 500 responses
    BACKEND_HOST: str = "127.0.0.1"  # Bind address (use 0.0.0.0 to expose externally)
    BACKEND_PORT: int = 5000

    # CORS
    CLIENT_URL: Optional[str] = "http://localhost:5173"
    CORS_ORIGINS: List[str] = ["http://localhost:8080", "http://localhost:3000"]

    # Database (connection is opened and health-checked only)
    DATABASE_URL: str = "sqlite+aiosqlite:///./coderefactor.db"

    # Request limits
    BODY_LIMIT_MB: int = 10
    RATE_LIMIT_MAX: int = 100  # Requests per window per client IP
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    # ===========================================
    # LLM CONFIGURATION (OpenAI-Compatible API)
    # ===========================================

    LLM_API_BASE_URL: str = "https://api.groq.com/openai/v1"
    LLM_API_KEY: str = Field(
        default="not-configured",
        validation_alias=AliasChoices("LLM_API_KEY", "GROQ_API_KEY"),
    )
    LLM_MODEL: str = Field(
        default="llama3-8b-8192",
        validation_alias=AliasChoices("LLM_MODEL", "GROQ_MODEL"),
    )
    LLM_TIMEOUT: int = 30  # seconds, no retries
    LLM_MAX_TOKENS: int = 4000
    LLM_TEMPERATURE: float = 0.1

    # ===========================================
    # FILE UPLOADS
    # ===========================================

    MAX_UPLOAD_SIZE_MB: int = 5
    MAX_ZIP_SIZE_MB: int = 50

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def cors_origins(self) -> List[str]:
        """Configured origins with the client URL first, without duplicates"""
        origins = [self.CLIENT_URL] if self.CLIENT_URL else []
        for origin in self.CORS_ORIGINS:
            if origin not in origins:
                origins.append(origin)
        return origins

    @property
    def max_upload_bytes(self) -> int:
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def max_zip_bytes(self) -> int:
        return self.MAX_ZIP_SIZE_MB * 1024 * 1024

    @property
    def body_limit_bytes(self) -> int:
        return self.BODY_LIMIT_MB * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
