from __future__ import annotations

from typing import ClassVar, final

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_IDENTITY_SECRET_PLACEHOLDER = "identity_token_secret_change_me"


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [x.strip() for x in value.split(",") if x.strip()]


@final
class Settings(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )
    app_name: str = "Snippy Backend"
    api_prefix: str = "/api"

    # Environment (ENVIRONMENT): development | production
    environment: str = "development"

    database_url: str = "sqlite:///./dev.db"
    # Only applied to server databases; SQLite keeps SQLAlchemy's default pool.
    db_pool_size: int = 10
    db_max_overflow: int = 15

    # Primary env: CORS_ALLOW_ORIGINS; also accept CORS_ORIGINS as alias.
    cors_allow_origins: str = Field(
        default="*",
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS", "CORS_ORIGINS"),
    )

    # Identity tokens are issued by an external provider; we only check the signature.
    identity_token_secret: str = _IDENTITY_SECRET_PLACEHOLDER
    identity_token_max_age_seconds: int = 60 * 60 * 12  # 12 hours
    # Cookie fallback when no Authorization header is sent.
    session_cookie_name: str = "__session"

    default_color: str = "#3b82f6"

    list_default_limit: int = 50
    list_max_limit: int = 500

    log_level: str = "INFO"

    # Validate production settings early to fail fast on unsafe defaults.
    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":  # pyright: ignore[reportUnusedFunction]
        if self.environment.strip().lower() != "production":
            return self

        errors: list[str] = []

        secret = self.identity_token_secret.strip()
        if not secret or secret == _IDENTITY_SECRET_PLACEHOLDER:
            errors.append("IDENTITY_TOKEN_SECRET must be set in production")

        cors_v = self.cors_allow_origins.strip()
        if not cors_v or cors_v == "*":
            errors.append("CORS_ALLOW_ORIGINS must be explicit (not '*') in production")

        if self.database_url.strip().lower().startswith("sqlite"):
            errors.append("DATABASE_URL must point to a server database in production")

        if errors:
            raise ValueError("Invalid production settings: " + "; ".join(errors))
        return self

    def cors_origins_list(self) -> list[str]:
        v = self.cors_allow_origins.strip()
        if not v:
            return []
        if v == "*":
            return ["*"]
        return _split_csv(v)

    def clamp_limit(self, limit: int | None) -> int:
        if limit is None or limit <= 0:
            return self.list_default_limit
        return min(limit, self.list_max_limit)

    def security_warnings(self) -> list[str]:
        warnings: list[str] = []
        secret = self.identity_token_secret.strip()
        if not secret or secret == _IDENTITY_SECRET_PLACEHOLDER:
            warnings.append("IDENTITY_TOKEN_SECRET is missing or using placeholder value")
        if self.cors_allow_origins.strip() == "*":
            warnings.append("CORS_ALLOW_ORIGINS='*' is permissive")
        return warnings


settings = Settings()
