from decimal import Decimal
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_env: str = "dev"
    log_level: str = "info"
    standard_tax_rate: Decimal = Decimal("18")
    scenario_catalog_path: Path | None = None
    fbr_base_url: str = "https://gw.fbr.gov.pk"
    fbr_token: str = ""
    fbr_timeout: float = 30.0
    sro_lookup_concurrency: int = 3
    sro_lookup_timeout: float = 20.0

    @field_validator("log_level")
    @classmethod
    def _lowercase_level(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("fbr_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @field_validator("sro_lookup_concurrency")
    @classmethod
    def _ensure_positive_concurrency(cls, value: int) -> int:
        if value < 1:
            raise ValueError("SRO_LOOKUP_CONCURRENCY must be at least 1")
        return value


settings = Settings()
