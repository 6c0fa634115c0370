"""Model host application configuration.

Loads settings from two YAML files:
  * modelhost.settings.yaml  — non-secret configuration
  * modelhost.secrets.yaml   — credentials (never committed)

Environment variables override both files, using the names the deployment
``.env`` has always used (AWS_BUCKET_NAME, AWS_REGION, ...).
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from modelhost.errors import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("modelhost.settings.yaml")
SECRETS_FILE  = Path("modelhost.secrets.yaml")

MIB = 1024 * 1024


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.debug("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class AwsSecrets(BaseModel):
    access_key_id:     Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token:     Optional[str] = None


class Secrets(BaseModel):
    aws: AwsSecrets = Field(default_factory=AwsSecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str  = "0.0.0.0"
    port:            int  = 5000
    reload:          bool = False
    allowed_origins: List[str] = Field(
        default_factory=lambda: [
            "https://daniilrad.github.io",
            "http://localhost:5173",
        ]
    )


class StorageSettings(BaseModel):
    """S3 bucket the uploaded models live in."""
    bucket:                    str           = ""
    region:                    str           = "us-east-1"
    prefix:                    str           = ""
    endpoint_url:              Optional[str] = None
    public_base_url:           Optional[str] = None
    signed_url_expiry_seconds: int           = 3600

    @field_validator("signed_url_expiry_seconds")
    @classmethod
    def _positive_expiry(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("signed_url_expiry_seconds must be positive")
        return v


class UploadSettings(BaseModel):
    max_size_bytes: int = 200 * MIB
    key_strategy:   Literal["original", "timestamped"] = "original"


class LoggingSettings(BaseModel):
    level: str = "info"


class AppSettings(BaseModel):
    server:   ServerSettings  = Field(default_factory=ServerSettings)
    storage:  StorageSettings = Field(default_factory=StorageSettings)
    uploads:  UploadSettings  = Field(default_factory=UploadSettings)
    logging:  LoggingSettings = Field(default_factory=LoggingSettings)
    secrets:  Secrets         = Field(default_factory=Secrets)

    def validate_for_startup(self) -> None:
        """Raise ConfigurationError if the service cannot run with these settings."""
        if not self.storage.bucket:
            raise ConfigurationError(
                "Storage bucket is not configured (set storage.bucket or AWS_BUCKET_NAME)"
            )
        aws = self.secrets.aws
        if bool(aws.access_key_id) != bool(aws.secret_access_key):
            raise ConfigurationError(
                "AWS credentials are incomplete: both access_key_id and "
                "secret_access_key must be set, or neither"
            )


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay environment variables onto the raw YAML data."""
    server  = data.setdefault("server", {})
    storage = data.setdefault("storage", {})
    uploads = data.setdefault("uploads", {})
    log_cfg = data.setdefault("logging", {})
    aws     = data.setdefault("secrets", {}).setdefault("aws", {})

    env = os.environ
    if env.get("AWS_BUCKET_NAME"):
        storage["bucket"] = env["AWS_BUCKET_NAME"]
    if env.get("AWS_REGION"):
        storage["region"] = env["AWS_REGION"]
    if env.get("AWS_ENDPOINT_URL"):
        storage["endpoint_url"] = env["AWS_ENDPOINT_URL"]
    if env.get("AWS_ACCESS_KEY_ID"):
        aws["access_key_id"] = env["AWS_ACCESS_KEY_ID"]
    if env.get("AWS_SECRET_ACCESS_KEY"):
        aws["secret_access_key"] = env["AWS_SECRET_ACCESS_KEY"]
    if env.get("PORT"):
        server["port"] = env["PORT"]
    if env.get("ALLOWED_ORIGINS"):
        server["allowed_origins"] = [
            origin.strip() for origin in env["ALLOWED_ORIGINS"].split(",") if origin.strip()
        ]
    if env.get("MAX_UPLOAD_SIZE_MB"):
        uploads["max_size_bytes"] = int(env["MAX_UPLOAD_SIZE_MB"]) * MIB
    if env.get("LOG_LEVEL"):
        log_cfg["level"] = env["LOG_LEVEL"]
    return data


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_settings(
    settings_file: Path = SETTINGS_FILE,
    secrets_file: Path = SECRETS_FILE,
) -> AppSettings:
    """Load and merge settings + secrets + environment into an *AppSettings*."""
    settings_data = _load_yaml(settings_file)
    secrets_data  = _load_yaml(secrets_file)

    # Merge: secrets live under the "secrets" key in AppSettings
    settings_data["secrets"] = secrets_data
    settings_data = _apply_env_overrides(settings_data)

    app_settings = AppSettings(**settings_data)
    logger.info(
        "Settings loaded (server=%s:%s, bucket=%s, region=%s, key_strategy=%s)",
        app_settings.server.host,
        app_settings.server.port,
        app_settings.storage.bucket or "<unset>",
        app_settings.storage.region,
        app_settings.uploads.key_strategy,
    )
    return app_settings


@lru_cache(maxsize=1)
def get_config() -> AppSettings:
    """Return the process-wide settings, loading them on first use."""
    return load_settings()
