"""
Configuration Management for Vendor Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Paths, upload limits and display defaults are validated at startup
instead of being scattered through the code as literals.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Where the ledger document and uploaded binaries live."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_file: Path = Field(
        default=Path("data.json"),
        description="Path to the JSON document holding vendors, contracts and tags"
    )
    upload_folder: Path = Field(
        default=Path("uploads"),
        description="Directory for uploaded contract files"
    )
    json_indent: int = Field(
        default=4,
        ge=0,
        le=8,
        description="Indentation used when writing the document"
    )
    write_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a document write before giving up"
    )


class UploadSettings(BaseSettings):
    """Limits applied to uploaded contract files."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_UPLOAD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    max_upload_size_mb: int = Field(
        default=16,
        ge=1,
        le=100,
        description="Maximum upload file size in MB"
    )
    allowed_file_types: str = Field(
        default="jpeg,jpg,png,gif,pdf,doc,docx,xls,xlsx,txt",
        description="Comma-separated list of accepted file extensions"
    )

    @field_validator("allowed_file_types")
    @classmethod
    def validate_allowed_file_types(cls, v: str) -> str:
        """At least one extension must be accepted."""
        if not [ext for ext in v.split(",") if ext.strip()]:
            raise ValueError("allowed_file_types cannot be empty")
        return v

    @property
    def allowed_types_list(self) -> list[str]:
        """Get allowed extensions as a list, lowercase and without dots."""
        return [
            ext.strip().lower().lstrip(".")
            for ext in self.allowed_file_types.split(",")
            if ext.strip()
        ]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    default_tag_color: str = Field(
        default="#cccccc",
        pattern="^#[0-9a-fA-F]{6}$",
        description="Color given to tags created without one"
    )
    untagged_color: str = Field(
        default="#6c757d",
        pattern="^#[0-9a-fA-F]{6}$",
        description="Color of the Untagged bucket in the tag spend report"
    )
    serialize_writes: bool = Field(
        default=True,
        description="Run mutations one at a time within this process"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def upload(self) -> UploadSettings:
        return UploadSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with an
    extra "<name>_error" entry for each failure.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "upload", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
