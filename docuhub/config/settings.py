"""
Configuration Management for DocuHub

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The root administrator seed, the storage back-end and the intake limits
used to be hardcoded in the portal; they are now explicit settings so a
deployment can override the insecure demo defaults.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """
    Key-value storage back-end configuration.

    The persisted audit log (AppSettings.persist_audit_log) lives in the same
    store as accounts and documents and counts against quota_bytes. With the
    file back-end every audited view or login also rewrites the whole file,
    PDF payloads included. Turn persist_audit_log off for large libraries.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCUHUB_STORAGE_",
        extra="ignore"
    )

    backend: Literal["memory", "file"] = Field(
        default="file",
        description="Which key-value back-end to use"
    )
    file_path: str = Field(
        default="docuhub_store.json",
        description="Path of the JSON file used by the file back-end"
    )
    quota_bytes: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum total size of stored values, audit log included (None = unlimited)"
    )
    write_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a file write before giving up"
    )

    # Key names within the store
    accounts_key: str = Field(default="docuhub_users_db")
    documents_key: str = Field(default="docuhub_pdfs_db")
    session_key: str = Field(default="docuhub_user")
    audit_key: str = Field(default="docuhub_audit_log")
    language_key: str = Field(default="language")
    theme_key: str = Field(default="theme")

    @field_validator('file_path')
    @classmethod
    def validate_file_path(cls, v: str) -> str:
        """Warn if the parent directory doesn't exist (but don't fail - might be mounted later)."""
        parent = Path(v).expanduser().parent
        if not parent.exists():
            import warnings
            warnings.warn(
                f"Storage directory not found at {parent}. "
                "Make sure it exists before running the application."
            )
        return v


class SeedSettings(BaseSettings):
    """
    Root administrator seeded on first-ever startup.

    The defaults are a deliberately insecure demo login (admin / admin).
    Override them with DOCUHUB_SEED_* for anything real.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCUHUB_SEED_",
        extra="ignore"
    )

    root_login_id: str = Field(
        default="admin",
        min_length=1,
        description="Login id of the protected root administrator"
    )
    root_secret: str = Field(
        default="admin",
        min_length=1,
        description="Initial secret of the root administrator"
    )
    root_department: str = Field(
        default="IT",
        description="Department of the root administrator"
    )


class IntakeSettings(BaseSettings):
    """Bulk document intake configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DOCUHUB_INTAKE_",
        extra="ignore"
    )

    max_concurrency: int = Field(
        default=4,
        ge=1,
        le=64,
        description="How many files are processed at the same time"
    )
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum size of a single uploaded file in MB"
    )
    item_delay_seconds: float = Field(
        default=0.0,
        ge=0.0,
        le=5.0,
        description="Optional pause after each item (UI pacing)"
    )

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

    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG whatever log_level says"
    )
    log_level: str = Field(
        default="INFO",
        description="Standard library logging level for the audit log"
    )

    # Pass-through presentation preferences
    default_language: str = Field(default="English")
    default_theme: str = Field(default="light")

    # Audit
    persist_audit_log: bool = Field(
        default=True,
        description="Also keep audit events in the key-value store"
    )
    audit_log_max_entries: int = Field(
        default=500,
        ge=10,
        le=100000,
        description="How many audit events are kept in the store"
    )

    # Dashboard
    recent_window_hours: int = Field(
        default=24,
        ge=1,
        description="Uploads newer than this count as recent"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug_mode else self.log_level


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
    def seed(self) -> SeedSettings:
        return SeedSettings()

    @property
    def intake(self) -> IntakeSettings:
        return IntakeSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the groups that failed.
    Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("storage", "seed", "intake", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
