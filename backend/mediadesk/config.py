"""MediaDesk configuration — Pydantic BaseSettings loaded from .env."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    app_name: str = "MediaDesk"
    debug: bool = True
    log_level: str = "INFO"

    # Network
    host: str = "127.0.0.1"
    port: int = 8000
    api_prefix: str = "/api"
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    # Storage paths (relative resolved from project root at runtime)
    data_dir: str = "./data"
    upload_dir: str = "./data/uploads"
    log_dir: str = "./data/logs"
    database_path: str = "./data/mediadesk.db"

    # Metadata store: "sqlite" keeps records locally, "http" talks to the dashboard backend
    metadata_backend: str = "sqlite"
    metadata_api_url: str = "http://localhost:3000"
    metadata_api_token: str = ""

    # Remote asset store (Cloudinary-style unsigned uploads)
    cloudinary_cloud_name: str = ""
    cloudinary_upload_preset: str = ""
    cloudinary_upload_base: str = "https://api.cloudinary.com/v1_1"
    asset_delete_url: str = ""  # backend proxy; defaults to <metadata_api_url>/images/delete-cloudinary
    local_asset_base_url: str = "http://127.0.0.1:8000/files"

    # Upload pipeline
    max_upload_bytes: int = 10 * 1024 * 1024  # 10 MB
    upload_concurrency: int = 4
    request_timeout: float = 30.0

    # Folder deletion: retire the folder even when the backend call fails
    optimistic_folder_retirement: bool = True

    # Mode: dev = local asset store, prod = remote asset store
    mode: str = "dev"

    max_db_connections: int = 5

    @property
    def is_dev_mode(self) -> bool:
        return self.mode == "dev"

    @property
    def delete_proxy_url(self) -> str:
        if self.asset_delete_url:
            return self.asset_delete_url
        return self.metadata_api_url.rstrip("/") + "/images/delete-cloudinary"

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        env_prefix="MEDIADESK_",
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: list[str] | str) -> list[str]:
        if isinstance(value, str) and not value.startswith("["):
            return [o.strip() for o in value.split(",") if o.strip()]
        if isinstance(value, list):
            return value
        return ["http://localhost:5173"]

    @field_validator("metadata_backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in ("sqlite", "http"):
            raise ValueError(f"Unknown metadata backend: {value}")
        return value

    @field_validator("upload_concurrency")
    @classmethod
    def _check_concurrency(cls, value: int) -> int:
        if value < 1:
            raise ValueError("upload_concurrency must be at least 1")
        return value

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Ensure data directories are absolute."""
        base = Path(__file__).resolve().parent.parent  # backend/
        for field in ("data_dir", "upload_dir", "log_dir", "database_path"):
            val = getattr(self, field)
            if not Path(val).is_absolute():
                setattr(self, field, str(base / val))
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
