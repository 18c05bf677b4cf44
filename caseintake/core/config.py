"""
Settings for the Case Intake service.

Values are read from the environment (or a ``.env`` file) by pydantic-settings.
OCR settings control the Tesseract worker used for photographed documents.
"""

from enum import Enum
from typing import List, Optional

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class Settings(BaseSettings):
    """Case Intake configuration."""

    # Service
    PROJECT_NAME: str = "Case Intake"
    PROJECT_DESCRIPTION: str = "Turns clinical documents into structured surgical case records"
    VERSION: str = "0.1.0"
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    DEBUG: bool = False
    LOG_LEVEL: LogLevel = LogLevel.INFO
    PORT: int = 8000

    # HTTP API
    API_PREFIX: str = "/api/v1"
    SHOW_DOCS: bool = True
    CORS_ORIGINS: List[AnyHttpUrl | str] = ["*"]
    MAX_IMAGES_PER_REQUEST: int = Field(
        default=10, ge=1, description="Upper bound on images accepted by one process request"
    )

    # OCR
    OCR_LANGUAGE: str = Field(default="eng", description="Tesseract language pack(s), e.g. eng+mri")
    TESSERACT_CMD: Optional[str] = Field(
        default=None, description="Path to the tesseract binary; unset uses the one on PATH"
    )
    OCR_TIMEOUT_SECONDS: Optional[float] = Field(
        default=None, gt=0, description="Per-page recognition timeout; unset waits indefinitely"
    )
    OCR_PAGE_SEPARATOR: str = Field(
        default="\n\n---\n\n", description="Text placed between the pages of a multi-image document"
    )

    @field_validator("TESSERACT_CMD", mode="before")
    def empty_command_is_unset(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        use_enum_values=True,
        extra="ignore",
    )


settings = Settings()
