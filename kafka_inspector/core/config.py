# kafka_inspector/core/config.py
import json
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator

from kafka_inspector.codecs.formats import MessageFormat, parse_format


class Settings(BaseSettings):
    """
    Central application settings loaded from environment variables (and .env).

    Notes
    -----
    - `message_format` / `key_format` accept any string; unknown values fall
      back to DEFAULT instead of failing startup.
    - `schema_registry_auth` uses the `user:password` form.
    - `cors_allow_origins` accepts JSON array or comma-separated string.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ---------- Kafka client ----------
    kafka_bootstrap: str = Field("localhost:9092")
    kafka_api_version: str | None = None

    # Client timeouts (ms)
    request_timeout_ms: int = 20_000
    metadata_max_age_ms: int = 30_000
    api_version_auto_timeout_ms: int = 10_000
    poll_timeout_ms: int = 500
    publish_timeout_sec: float = 10.0

    # Connection retry
    connect_max_tries: int = 8
    connect_backoff_sec: float = 1.5

    # ---------- Security (set when using SASL/SSL) ----------
    security_protocol: str = "PLAINTEXT"   # e.g. "SASL_SSL", "SSL"
    sasl_mechanism: str | None = None
    sasl_plain_username: str | None = None
    sasl_plain_password: str | None = None
    ssl_cafile: str | None = None

    # ---------- Schema registry ----------
    schema_registry_url: str | None = None
    schema_registry_auth: str | None = None
    schema_registry_timeout_sec: float = 10.0

    # ---------- Protobuf descriptors ----------
    protobuf_desc_directory: str = Field(
        default="./descriptors",
        description="Directory holding compiled *.desc descriptor sets."
    )
    parse_any_proto: bool = False

    # ---------- Message formats ----------
    message_format: MessageFormat = MessageFormat.DEFAULT
    key_format: MessageFormat = MessageFormat.DEFAULT

    @field_validator("message_format", "key_format", mode="before")
    def _parse_format(cls, v):
        """Garbled format names resolve to DEFAULT."""
        if isinstance(v, MessageFormat):
            return v
        return parse_format(v)

    # ---------- Reading ----------
    default_message_count: int = Field(default=100, ge=1)
    max_message_count: int = Field(default=100, ge=1)
    read_max_workers: int = Field(default=8, ge=1, le=64)

    # When set, count == 1 with no partition and no offset means "nothing
    # requested" (legacy form behaviour). Off by default.
    count_one_is_unset: bool = False

    # ---------- Search ----------
    search_max_matches: int = Field(default=100, ge=1)
    search_batch_size: int = Field(default=500, ge=1)
    search_timeout_sec: float = Field(
        default=60.0, ge=0,
        description="Deadline for a single search; 0 disables it."
    )
    search_timestamp_lookup: Literal["index", "scan"] = "index"

    # ---------- Logging ----------
    log_level: str = "INFO"

    # ---------- CORS ----------
    cors_allow_origins: list[str] | None = None

    @field_validator("cors_allow_origins", mode="before")
    def _parse_cors_origins(cls, v):
        """Accept JSON array or comma-separated string."""
        if v is None:
            return None
        if isinstance(v, str):
            try:
                parsed = json.loads(v)  # JSON array
                if isinstance(parsed, list):
                    return [str(s).strip() for s in parsed if str(s).strip()]
            except ValueError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    # ---------- helpers ----------
    def registry_credentials(self) -> tuple[str, str] | None:
        """Split `schema_registry_auth` into (user, password)."""
        if not self.schema_registry_auth:
            return None
        user, _, password = self.schema_registry_auth.partition(":")
        return user, password


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()  # pragma: no cover
