"""
Interview Coach Configuration Module

This module manages application settings and environment variables using
pydantic-settings for type-safe configuration management.

Environment variables are loaded from .env file or system environment.
All API keys use SecretStr to prevent accidental logging.

Credential pools are assembled from three sources, in order:
1. A comma-separated list (GEMINI_API_KEYS / GEMINI_RESUME_KEYS)
2. Numbered variables (GEMINI_API_KEY1..GEMINI_API_KEY20)
3. The single primary key (GEMINI_API_KEY)
Duplicates are dropped, first occurrence wins.
"""

from collections.abc import Mapping
from functools import lru_cache
from typing import Literal
import logging
import os
import sys

from dotenv import dotenv_values
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GENERATE_CONTENT_SUFFIX = ":generateContent"

# Highest numbered key suffix scanned (GEMINI_API_KEY1..GEMINI_API_KEY20)
MAX_NUMBERED_KEYS = 20


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pydantic Settings automatically reads from:
    1. Environment variables
    2. .env file in working directory
    3. Default values defined here

    API keys use SecretStr to prevent accidental exposure in logs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars
    )

    ai_provider: Literal["gemini", "openai"] = Field(
        default="gemini", description="Provider used by the direct transport"
    )

    gemini_api_key: SecretStr | None = Field(
        default=None, description="Primary Gemini API key"
    )

    gemini_api_keys: SecretStr | None = Field(
        default=None, description="Comma-separated Gemini API keys for rotation"
    )

    gemini_resume_keys: SecretStr | None = Field(
        default=None,
        description="Comma-separated Gemini API keys reserved for document analysis",
    )

    gemini_api_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash",
        description="Gemini model endpoint; ':generateContent' is appended if missing",
    )

    openai_api_key: SecretStr | None = Field(
        default=None, description="OpenAI API key (only used when AI_PROVIDER=openai)"
    )

    openai_api_keys: SecretStr | None = Field(
        default=None, description="Comma-separated OpenAI API keys for rotation"
    )

    openai_model: str = Field(
        default="gpt-4o-mini", description="OpenAI chat model name"
    )

    proxy_url: str | None = Field(
        default=None,
        description="Server-side proxy endpoint tried before direct provider calls",
    )

    proxy_max_attempts: int = Field(
        default=3, ge=1, description="Total proxy attempts on 429/503"
    )

    proxy_backoff_ms: int = Field(
        default=2000, ge=0, description="Proxy backoff unit, multiplied by attempt number"
    )

    direct_quota_attempts: int = Field(
        default=5, ge=1, description="Rotation passes allowed for quota-class failures"
    )

    direct_network_attempts: int = Field(
        default=2, ge=1, description="Rotation passes allowed for network failures"
    )

    direct_backoff_ms: int = Field(
        default=2000, ge=0, description="Direct backoff unit, multiplied by attempt number"
    )

    retry_hint_margin_ms: int = Field(
        default=1000,
        ge=0,
        description="Margin added to a provider-supplied 'retry in N s' hint",
    )

    request_timeout_s: float = Field(
        default=60.0, gt=0, description="HTTP timeout for proxy and provider calls"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Application log level"
    )

    host: str = Field(default="0.0.0.0", description="Server bind host")

    port: int = Field(default=8000, description="Server bind port")

    debug: bool = Field(default=False, description="Enable debug mode")

    @field_validator("gemini_api_url")
    @classmethod
    def normalize_gemini_api_url(cls, v: str) -> str:
        """Ensure the endpoint ends with the generateContent action."""
        return normalize_generate_content_url(v)

    @field_validator("proxy_url")
    @classmethod
    def blank_proxy_is_none(cls, v: str | None) -> str | None:
        """Treat an empty PROXY_URL as not configured."""
        if v is None or not v.strip():
            return None
        return v.strip()

    def numbered_key_source(self) -> dict[str, str]:
        """
        Variables that may hold numbered keys.

        Entries from the .env file are merged with the process
        environment, which takes precedence.
        """
        env_files = self.model_config.get("env_file")
        if env_files is None:
            env_files = ()
        elif isinstance(env_files, (str, os.PathLike)):
            env_files = (env_files,)

        source: dict[str, str] = {}
        for path in env_files:
            if os.path.isfile(path):
                values = dotenv_values(path, encoding=self.model_config.get("env_file_encoding"))
                source.update({k.upper(): v for k, v in values.items() if v is not None})
        source.update(os.environ)
        return source

    def general_keys(self, environ: Mapping[str, str] | None = None) -> list[str]:
        """Keys for general-purpose calls of the active provider."""
        env = self.numbered_key_source() if environ is None else environ
        if self.ai_provider == "openai":
            return collect_keys(self.openai_api_keys, "OPENAI_API_KEY", self.openai_api_key, env)
        return collect_keys(self.gemini_api_keys, "GEMINI_API_KEY", self.gemini_api_key, env)

    def document_keys(self, environ: Mapping[str, str] | None = None) -> list[str]:
        """
        Keys reserved for document analysis.

        Falls back to the general keys when no dedicated document keys
        are configured. This is a configuration default only; the two
        pools never fail over into each other at call time.
        """
        env = self.numbered_key_source() if environ is None else environ
        if self.ai_provider == "gemini":
            keys = collect_keys(self.gemini_resume_keys, "GEMINI_RESUME_KEY", None, env)
            if keys:
                return keys
        return self.general_keys(env)


def normalize_generate_content_url(url: str) -> str:
    """
    Append ':generateContent' to a model endpoint unless already present.

    Args:
        url: Model endpoint, with or without the action suffix.

    Returns:
        The endpoint ending with the generateContent action.
    """
    url = url.strip().rstrip("/")
    base, sep, query = url.partition("?")
    base = base.rstrip("/")
    if not base.endswith(GENERATE_CONTENT_SUFFIX):
        base += GENERATE_CONTENT_SUFFIX
    return f"{base}{sep}{query}"


def collect_keys(
    csv: SecretStr | None,
    numbered_prefix: str,
    single: SecretStr | None,
    environ: Mapping[str, str],
) -> list[str]:
    """
    Assemble a de-duplicated credential list.

    Args:
        csv: Comma-separated keys.
        numbered_prefix: Prefix scanned for numbered keys (PREFIX1..PREFIX20).
        single: Optional single key appended last.
        environ: Environment mapping holding the numbered keys.

    Returns:
        Keys in first-seen order with blanks and duplicates removed.
    """
    keys: list[str] = []
    if csv is not None:
        keys.extend(k.strip() for k in csv.get_secret_value().split(","))
    for i in range(1, MAX_NUMBERED_KEYS + 1):
        value = environ.get(f"{numbered_prefix}{i}")
        if value:
            keys.append(value.strip())
    if single is not None:
        keys.append(single.get_secret_value().strip())
    return list(dict.fromkeys(k for k in keys if k))


@lru_cache
def get_settings() -> Settings:
    """
    Returns cached settings instance.

    Using lru_cache ensures settings are loaded once and reused,
    avoiding repeated file reads and environment parsing.

    Returns:
        Settings: The application settings singleton.
    """
    return Settings()


def configure_logging(settings: Settings) -> None:
    """
    Configure application logging based on settings.

    Sets up structured logging with timestamps and reduces noise
    from third-party HTTP libraries.

    Args:
        settings: The application settings instance.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
