"""
Process configuration read from environment variables.

Values are read once at startup by `load_settings()` and passed explicitly to
`main.create_app()`. Nothing else in the codebase reads `os.environ`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .errors import ConfigError

DEFAULT_PORT = 3001
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB

DEFAULT_CORS_ORIGINS = (
    "http://localhost:5173",
    "https://courageous-pastelito-4fbee7.netlify.app",
)

STORAGE_BACKENDS = {"local", "s3"}


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class S3Settings:
    bucket: str = ""
    region: str = "us-east-1"
    endpoint_url: str = ""
    public_base_url: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    connect_timeout_s: float = 5.0
    read_timeout_s: float = 30.0


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    environment: str = "development"
    auth_token: str = ""
    log_level: str = "INFO"

    database_url: str = ""
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    db_command_timeout_s: float = 30.0

    storage_backend: str = "local"
    upload_dir: str = "uploads"
    public_base_url: str = ""
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    s3: S3Settings = field(default_factory=S3Settings)

    cors_allowed_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def auth_required(self) -> bool:
        """
        The write gate is only enforced in production; every other environment
        lets mutating requests through without a token.
        """
        return self.is_production


def load_settings() -> Settings:
    environment = _env_str("NODE_ENV", "development")

    max_upload_bytes = _env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)
    if max_upload_bytes <= 0:
        raise ConfigError("Invalid MAX_UPLOAD_BYTES. It must be > 0.")

    settings = Settings(
        host=_env_str("HOST", "0.0.0.0"),
        port=_env_int("PORT", DEFAULT_PORT),
        environment=environment,
        auth_token=_env_str("AUTH_TOKEN"),
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        database_url=_env_str("DATABASE_URL"),
        db_pool_min_size=_env_int("DB_POOL_MIN_SIZE", 1),
        db_pool_max_size=_env_int("DB_POOL_MAX_SIZE", 5),
        db_command_timeout_s=_env_float("DB_COMMAND_TIMEOUT", 30.0),
        storage_backend=_env_str("STORAGE_BACKEND", "local").lower(),
        upload_dir=_env_str("UPLOAD_DIR", "uploads"),
        public_base_url=_env_str("PUBLIC_BASE_URL"),
        max_upload_bytes=max_upload_bytes,
        s3=S3Settings(
            bucket=_env_str("S3_BUCKET"),
            region=_env_str("S3_REGION") or _env_str("AWS_REGION", "us-east-1"),
            endpoint_url=_env_str("S3_ENDPOINT_URL"),
            public_base_url=_env_str("S3_PUBLIC_BASE_URL"),
            access_key_id=_env_str("AWS_ACCESS_KEY_ID"),
            secret_access_key=_env_str("AWS_SECRET_ACCESS_KEY"),
            connect_timeout_s=_env_float("S3_CONNECT_TIMEOUT", 5.0),
            read_timeout_s=_env_float("S3_READ_TIMEOUT", 30.0),
        ),
        cors_allowed_origins=_env_list("CORS_ALLOWED_ORIGINS", DEFAULT_CORS_ORIGINS),
    )
    validate_settings(settings)
    return settings


def validate_settings(settings: Settings) -> None:
    if settings.storage_backend not in STORAGE_BACKENDS:
        raise ConfigError(
            f"Unknown STORAGE_BACKEND '{settings.storage_backend}'. Allowed: {sorted(STORAGE_BACKENDS)}"
        )
    if settings.storage_backend == "s3" and not settings.s3.bucket:
        raise ConfigError("S3_BUCKET is required when STORAGE_BACKEND=s3.")
    if settings.db_pool_min_size < 1 or settings.db_pool_max_size < settings.db_pool_min_size:
        raise ConfigError("Invalid DB pool size. Need 1 <= DB_POOL_MIN_SIZE <= DB_POOL_MAX_SIZE.")
