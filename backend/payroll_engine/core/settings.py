from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


PT_SCHEMES = {"FLAT", "PERCENT"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    project_name: str = "Payroll Engine"
    project_version: str = "1.0.0"
    environment: str = Field(
        default="development",
        description="Deployment environment name",
        validation_alias=AliasChoices("ENV", "ENVIRONMENT"),
    )
    log_level: str = Field(default="INFO", description="Logging level")

    # Database
    database_url: str = Field(
        default="postgresql+psycopg2://postgres@localhost:5432/payroll",
        description="SQLAlchemy database URL",
    )

    # DB pool tuning (Postgres)
    db_pool_size: int = Field(default=5, description="Base DB connection pool size")
    db_max_overflow: int = Field(default=10, description="Additional DB connections beyond pool size")
    db_pool_timeout: int = Field(default=30, description="Seconds to wait for a DB connection")
    db_pool_recycle: int = Field(default=1800, description="Recycle DB connections after N seconds")

    # Statutory configuration
    pt_scheme: str = Field(
        default="FLAT",
        description="Professional Tax slab scheme: FLAT (per-band amount) or PERCENT (rate with cap)",
        validation_alias=AliasChoices("PAYROLL_PT_SCHEME", "PT_SCHEME"),
    )

    # Payroll register paging
    default_page_size: int = Field(default=20, description="Default page size for payroll listings")
    max_page_size: int = Field(default=100, description="Upper bound for payroll listing page size")

    @field_validator("pt_scheme")
    @classmethod
    def normalize_pt_scheme(cls, value: str) -> str:
        scheme = (value or "").strip().upper()
        if scheme not in PT_SCHEMES:
            raise ValueError(f"pt_scheme must be one of {sorted(PT_SCHEMES)}, got {value!r}")
        return scheme

    @property
    def expose_error_details(self) -> bool:
        return self.environment.lower() not in ("production", "prod")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
