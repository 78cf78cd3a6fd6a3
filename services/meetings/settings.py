"""
Settings and configuration for Meetings Service.
"""

from typing import Optional

from services.common.settings import (
    AliasChoices,
    BaseSettings,
    Field,
    SettingsConfigDict,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    db_url_meetings: str = Field(
        default=...,
        description="Database connection string for meetings service",
        validation_alias=AliasChoices("DB_URL_MEETINGS"),
    )

    jwt_secret: str = Field(
        default=...,  # required
        description="Secret used to sign access tokens and meeting join tokens",
        validation_alias=AliasChoices("JWT_SECRET"),
    )

    jwt_expire_minutes: int = Field(
        default=60,
        description="Access token lifetime in minutes",
        validation_alias=AliasChoices("JWT_EXPIRE_MINUTES"),
    )

    provider_app_id: Optional[str] = Field(
        default=None,
        description="App id of the external conferencing provider",
        validation_alias=AliasChoices("PROVIDER_APP_ID"),
    )

    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Base URL used for meeting share links",
        validation_alias=AliasChoices("FRONTEND_URL"),
    )

    meeting_password_length: int = Field(
        default=8,
        description="Length of generated meeting passwords",
        validation_alias=AliasChoices("MEETING_PASSWORD_LENGTH"),
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias=AliasChoices("LOG_LEVEL"),
    )
    log_format: str = Field(
        default="json",
        description="Log format (json or text)",
        validation_alias=AliasChoices("LOG_FORMAT"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
