# backoffice/config.py
import os
from functools import lru_cache
from typing import Annotated, List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

PACKAGE_DIR = os.path.dirname(__file__)


class Settings(BaseSettings):
    # .env.production overrides .env when both exist
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.production"),
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    database_url: str = "sqlite+aiosqlite:///./backoffice.db"
    sql_echo: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # AI extraction / summarization (Gemini generateContent)
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_lite_model: str = "gemini-2.5-flash-lite"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    ai_invoice_timeout: float = Field(default=90.0, alias="AI_INVOICE_TIMEOUT", gt=0)
    ai_receipt_timeout: float = Field(default=60.0, alias="AI_RECEIPT_TIMEOUT", gt=0)
    ai_insight_timeout: float = Field(default=90.0, alias="AI_INSIGHT_TIMEOUT", gt=0)
    prompts_dir: str = os.path.join(PACKAGE_DIR, "prompts")

    # Uploaded invoices / receipts
    storage_backend: Literal["local", "spaces"] = "local"
    upload_dir: str = os.path.join("backoffice", "static", "uploads")
    spaces_key: Optional[str] = Field(default=None, alias="DO_SPACES_KEY")
    spaces_secret: Optional[str] = Field(default=None, alias="DO_SPACES_SECRET")
    spaces_region: str = Field(default="nyc3", alias="DO_SPACES_REGION")
    spaces_bucket: Optional[str] = Field(default=None, alias="DO_SPACES_BUCKET")
    spaces_endpoint: Optional[str] = Field(default=None, alias="DO_SPACES_ENDPOINT")
    spaces_prefix: str = Field(default="prod", alias="DO_SPACES_PREFIX")

    # comma separated in the environment
    cors_origins: Annotated[List[str], NoDecode] = ["http://localhost:5173"]
    timesheet_stale_hours: int = Field(default=16, gt=0)

    @field_validator("gemini_api_key", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level", "storage_backend", mode="before")
    @classmethod
    def _normalize_choice(cls, value, info):
        if not isinstance(value, str):
            return value
        value = value.strip()
        return value.upper() if info.field_name == "log_level" else value.lower()

    @field_validator("gemini_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("spaces_prefix")
    @classmethod
    def _strip_prefix_slashes(cls, value: str) -> str:
        return value.strip("/")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
