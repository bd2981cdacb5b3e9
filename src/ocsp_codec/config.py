"""
Configuration — typed, validated settings loaded from environment/.env.

The codec itself needs very little: which hash to put in a CertID when the
caller does not say, and how applications want logging set up. Both come
from pydantic-settings so they can be overridden without code changes:

    OCSP_REQUEST_HASH=SHA256
    OCSP_ISSUER_HASH=SHA256
    OCSP_LOGGING__LEVEL=DEBUG
    OCSP_LOGGING__RENDER_JSON=true

Only OcspSettings is a BaseSettings instance. LoggingSettings is a plain
BaseModel populated via env_nested_delimiter="__".
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ocsp_codec.domain.models import HashKind

# Resolve the .env file relative to the project root (two levels above this file),
# so settings load correctly regardless of the working directory at runtime.
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"

_CERT_ID_HASHES = (HashKind.SHA1, HashKind.SHA256, HashKind.SHA384, HashKind.SHA512)


class LoggingSettings(BaseModel):
    """Logging configuration applied by `ocsp_codec.log.configure_structlog`."""

    level: str = Field(default="INFO", description="Standard logging level name")
    render_json: bool = Field(default=False, description="Render JSON lines instead of console output")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        """Reject names the logging module does not know."""
        normalized = value.strip().upper()
        if normalized not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value!r}")
        return normalized


class OcspSettings(BaseSettings):
    """
    Root settings for the codec.

    Load order (highest priority first):
      1. Environment variables
      2. .env file
      3. Default values

    Hash fields accept the HashKind member name or value, case-insensitive
    ("SHA256", "sha256"). MD5 is rejected: it never goes into a CertID.
    """

    model_config = SettingsConfigDict(
        env_prefix="OCSP_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    request_hash: HashKind = Field(default=HashKind.SHA1)
    issuer_hash: HashKind = Field(default=HashKind.SHA1)
    logging: LoggingSettings = Field(default_factory=lambda: LoggingSettings())

    @field_validator("request_hash", "issuer_hash", mode="before")
    @classmethod
    def parse_hash(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return HashKind[value.strip().upper()]
            except KeyError:
                return HashKind(value.strip().lower())
        return value

    @field_validator("request_hash", "issuer_hash")
    @classmethod
    def validate_cert_id_hash(cls, value: HashKind) -> HashKind:
        if value not in _CERT_ID_HASHES:
            raise ValueError(f"{value.name} cannot be used as a CertID hash")
        return value


@lru_cache(maxsize=1)
def get_settings() -> OcspSettings:
    """Settings for this process, read once and cached."""
    return OcspSettings()
