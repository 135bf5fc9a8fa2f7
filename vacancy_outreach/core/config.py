from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ApiType = Literal["ollama", "openai"]

OPENAI_DEFAULT_ENDPOINT = "https://api.openai.com"
LEASE_TTL_SECONDS = 7 * 24 * 60 * 60
_LIST_SEPARATORS_RE = re.compile(r"[,\n;]")
_OPENAI_ALIASES = {"openai", "gpt", "chatgpt"}


def parse_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [item.strip() for item in _LIST_SEPARATORS_RE.split(raw) if item.strip()]


def _normalize_api_type(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip().lower()
    if not text:
        return None
    return "openai" if text in _OPENAI_ALIASES else "ollama"


@dataclass(frozen=True, slots=True)
class LlmRoleConfig:
    api_type: ApiType
    endpoint: str
    model: str
    temperature: float
    max_tokens: int
    timeout_seconds: float
    api_key: str | None = None


@dataclass(frozen=True, slots=True)
class DispatchConfig:
    max_per_post: int = 3
    delay_seconds: float = 1.5
    dry_run: bool = False
    reply_template: str = ""
    excluded_handles: frozenset[str] = frozenset()
    cv_file_path: str | None = None
    cv_caption: str | None = None


@dataclass(frozen=True, slots=True)
class BackfillConfig:
    enabled: bool = False
    limit: int = 50
    since_days: float | None = None
    delay_seconds: float = 0.5


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    keywords: tuple[str, ...] = ()
    excluded_handles: frozenset[str] = frozenset()
    auto_reply_enabled: bool = True
    log_messages: bool = False
    log_full: bool = False
    stats_log_every: int = 20


class Settings(BaseSettings):
    environment: str = "dev"
    app_name: str = "vacancy-outreach"
    host: str = "0.0.0.0"
    port: int = 3000

    telegram_api_id: int | None = None
    telegram_api_hash: str | None = None
    telegram_session: str | None = None
    telegram_channel_ids: str = ""
    telegram_job_keywords: str = ""
    telegram_excluded_handles: str = "@devops_jobs,@devops_jobs_feed"
    telegram_reply_template: str = ""
    telegram_dm_max: int = 3
    telegram_dm_delay_ms: int = 1500
    telegram_dry_run: bool = False
    telegram_auto_reply: bool = True
    telegram_backfill_on_start: bool = False
    telegram_backfill_limit: int = 50
    telegram_backfill_since_days: float | None = None
    telegram_backfill_delay_ms: int = 500
    telegram_log_messages: bool = False
    telegram_log_full: bool = False
    telegram_debug: bool = False

    candidate_profile: str | None = None
    cv_file_path: str | None = None
    cv_caption: str | None = None

    llm_enabled: bool = False
    llm_api_type: ApiType = "ollama"
    llm_endpoint: str | None = None
    llm_model: str | None = None
    llm_extract_fields: bool = True
    llm_extract_api_type: ApiType | None = None
    llm_extract_endpoint: str | None = None
    llm_extract_model: str | None = None
    llm_extract_temperature: float = 0.3
    llm_extract_max_tokens: int = 1400
    llm_extract_timeout_seconds: float = 60.0
    llm_reply_api_type: ApiType | None = None
    llm_reply_endpoint: str | None = None
    llm_reply_model: str | None = None
    llm_reply_temperature: float = 0.7
    llm_reply_max_tokens: int = 90
    llm_reply_max_chars: int = 180
    llm_reply_timeout_seconds: float = 45.0
    openai_api_key: str | None = None

    redis_url: str = "redis://localhost:6379/0"
    lease_ttl_seconds: int = LEASE_TTL_SECONDS
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 5

    otel_enabled: bool = False
    otel_service_name: str = "vacancy-outreach"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0

    model_config = SettingsConfigDict(extra="ignore", frozen=True, env_ignore_empty=True)

    @field_validator("llm_api_type", mode="before")
    @classmethod
    def _coerce_api_type(cls, value: object) -> str:
        return _normalize_api_type(value) or "ollama"

    @field_validator("llm_extract_api_type", "llm_reply_api_type", mode="before")
    @classmethod
    def _coerce_role_api_type(cls, value: object) -> str | None:
        return _normalize_api_type(value)

    @field_validator("telegram_dm_max", "telegram_backfill_limit", mode="after")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        return max(1, value)

    @property
    def channel_identifiers(self) -> list[str]:
        return [item.lower() for item in parse_list(self.telegram_channel_ids)]

    @property
    def keywords(self) -> list[str]:
        return [item.lower() for item in parse_list(self.telegram_job_keywords)]

    @property
    def excluded_handles(self) -> frozenset[str]:
        handles = set()
        for item in parse_list(self.telegram_excluded_handles):
            handle = item.lower()
            handles.add(handle if handle.startswith("@") else f"@{handle}")
        return frozenset(handles)

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_api_id and self.telegram_api_hash and self.telegram_session)

    def extract_role(self) -> LlmRoleConfig | None:
        if not self.llm_extract_fields:
            return None
        return self._role_config(
            api_type=self.llm_extract_api_type,
            endpoint=self.llm_extract_endpoint,
            model=self.llm_extract_model,
            temperature=self.llm_extract_temperature,
            max_tokens=self.llm_extract_max_tokens,
            timeout_seconds=self.llm_extract_timeout_seconds,
        )

    def reply_role(self) -> LlmRoleConfig | None:
        return self._role_config(
            api_type=self.llm_reply_api_type,
            endpoint=self.llm_reply_endpoint,
            model=self.llm_reply_model,
            temperature=self.llm_reply_temperature,
            max_tokens=self.llm_reply_max_tokens,
            timeout_seconds=self.llm_reply_timeout_seconds,
        )

    def dispatch_config(self) -> DispatchConfig:
        return DispatchConfig(
            max_per_post=self.telegram_dm_max,
            delay_seconds=max(0, self.telegram_dm_delay_ms) / 1000.0,
            dry_run=self.telegram_dry_run,
            reply_template=self.telegram_reply_template,
            excluded_handles=self.excluded_handles,
            cv_file_path=self.cv_file_path,
            cv_caption=self.cv_caption,
        )

    def backfill_config(self) -> BackfillConfig:
        return BackfillConfig(
            enabled=self.telegram_backfill_on_start,
            limit=self.telegram_backfill_limit,
            since_days=self.telegram_backfill_since_days,
            delay_seconds=max(0, self.telegram_backfill_delay_ms) / 1000.0,
        )

    def pipeline_config(self) -> PipelineConfig:
        return PipelineConfig(
            keywords=tuple(self.keywords),
            excluded_handles=self.excluded_handles,
            auto_reply_enabled=self.telegram_auto_reply,
            log_messages=self.telegram_log_messages or self.telegram_debug,
            log_full=self.telegram_log_full,
        )

    def _role_config(
        self,
        *,
        api_type: ApiType | None,
        endpoint: str | None,
        model: str | None,
        temperature: float,
        max_tokens: int,
        timeout_seconds: float,
    ) -> LlmRoleConfig | None:
        if not self.llm_enabled:
            return None
        resolved_type: ApiType = api_type or self.llm_api_type
        resolved_endpoint = endpoint or self.llm_endpoint
        if not resolved_endpoint and resolved_type == "openai":
            resolved_endpoint = OPENAI_DEFAULT_ENDPOINT
        resolved_model = model or self.llm_model
        if not resolved_endpoint or not resolved_model:
            return None
        return LlmRoleConfig(
            api_type=resolved_type,
            endpoint=resolved_endpoint.rstrip("/"),
            model=resolved_model,
            temperature=temperature,
            max_tokens=max(1, max_tokens),
            timeout_seconds=timeout_seconds,
            api_key=self.openai_api_key,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
