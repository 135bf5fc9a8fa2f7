from __future__ import annotations

import asyncio
import contextlib
import logging

import redis.asyncio as aioredis

from vacancy_outreach.core.config import Settings
from vacancy_outreach.jobs.backfill import run_backfill
from vacancy_outreach.jobs.pipeline import PipelineOrchestrator
from vacancy_outreach.services.ai_extractor import AiFieldExtractor
from vacancy_outreach.services.channel_source import ChannelSource
from vacancy_outreach.services.channels import ChannelDirectory
from vacancy_outreach.services.dispatcher import OutreachDispatcher
from vacancy_outreach.services.idempotency import LeaseStore, ProcessingLeaseGate
from vacancy_outreach.services.llm_client import TextServiceClient
from vacancy_outreach.services.reply import ReplySynthesizer
from vacancy_outreach.services.repository import VacancyRepository
from vacancy_outreach.services.telegram_source import TelethonChannelSource

logger = logging.getLogger(__name__)


def build_orchestrator(
    settings: Settings,
    *,
    source: ChannelSource,
    store: VacancyRepository,
    lease_store: LeaseStore,
) -> tuple[PipelineOrchestrator, OutreachDispatcher, ChannelDirectory]:
    extract_role = settings.extract_role()
    reply_role = settings.reply_role()
    if settings.llm_enabled and extract_role is None and reply_role is None:
        logger.warning("LLM_ENABLED is set but no endpoint/model is configured; using heuristics only")

    pipeline_config = settings.pipeline_config()
    directory = ChannelDirectory(settings.channel_identifiers, source)
    synthesizer = ReplySynthesizer(
        TextServiceClient(reply_role) if reply_role else None,
        candidate_profile=settings.candidate_profile,
        max_chars=settings.llm_reply_max_chars,
    )
    dispatcher = OutreachDispatcher(source, store, synthesizer, settings.dispatch_config())
    orchestrator = PipelineOrchestrator(
        gate=ProcessingLeaseGate(lease_store, ttl_seconds=settings.lease_ttl_seconds),
        directory=directory,
        ai_extractor=AiFieldExtractor(
            TextServiceClient(extract_role) if extract_role else None,
            excluded_handles=pipeline_config.excluded_handles,
        ),
        synthesizer=synthesizer,
        dispatcher=dispatcher,
        store=store,
        config=pipeline_config,
    )
    return orchestrator, dispatcher, directory


class IngestionRuntime:
    """Live subscription plus the one-shot startup backfill."""

    def __init__(
        self,
        settings: Settings,
        *,
        source: ChannelSource,
        store: VacancyRepository,
        redis: aioredis.Redis,
    ) -> None:
        self.settings = settings
        self.source = source
        self.redis = redis
        self.orchestrator, self.dispatcher, self.directory = build_orchestrator(
            settings,
            source=source,
            store=store,
            lease_store=redis,
        )
        self._backfill_task: asyncio.Task[dict[str, int]] | None = None

    @classmethod
    def from_settings(cls, settings: Settings, store: VacancyRepository) -> IngestionRuntime | None:
        if not settings.telegram_configured:
            logger.warning(
                "TELEGRAM_API_ID, TELEGRAM_API_HASH and TELEGRAM_SESSION are required; channel ingestion disabled"
            )
            return None
        return cls(
            settings,
            source=TelethonChannelSource.from_settings(settings),
            store=store,
            redis=aioredis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True),
        )

    async def start(self) -> None:
        await self.source.connect()
        self.source.subscribe(self.orchestrator.handle_post)
        logger.info(
            "listening for channel posts channels=%s keywords=%s dry_run=%s",
            ",".join(self.directory.identifiers) or "*",
            ",".join(sorted(self.orchestrator.keywords)) or "*",
            self.settings.telegram_dry_run,
        )
        backfill_config = self.settings.backfill_config()
        if backfill_config.enabled:
            self._backfill_task = asyncio.create_task(
                run_backfill(
                    source=self.source,
                    directory=self.directory,
                    orchestrator=self.orchestrator,
                    config=backfill_config,
                )
            )

    async def stop(self) -> None:
        if self._backfill_task is not None:
            self._backfill_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._backfill_task
            self._backfill_task = None
        await self.source.disconnect()
        await self.redis.aclose()
