from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

from opentelemetry import trace

from vacancy_outreach.core.config import BackfillConfig
from vacancy_outreach.jobs.pipeline import PipelineOrchestrator
from vacancy_outreach.services.channel_source import ChannelSource
from vacancy_outreach.services.channels import ChannelDirectory

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def backfill_since(config: BackfillConfig, *, now: datetime | None = None) -> datetime | None:
    if not config.since_days:
        return None
    current = now or datetime.now(timezone.utc)
    return current - timedelta(days=config.since_days)


async def run_backfill(
    *,
    source: ChannelSource,
    directory: ChannelDirectory,
    orchestrator: PipelineOrchestrator,
    config: BackfillConfig,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> dict[str, int]:
    """Replay recent posts of every configured channel through the pipeline.

    Returns the number of posts fed per channel identifier. A post whose
    processing raises is logged and the sweep continues; a channel that
    fails to resolve or iterate is logged and skipped.
    """
    if not directory.identifiers:
        logger.warning("backfill requested but TELEGRAM_CHANNEL_IDS is empty; skipping")
        return {}

    since = backfill_since(config)
    fed: dict[str, int] = {}
    for channel_ref in directory.identifiers:
        with tracer.start_as_current_span("backfill.channel") as span:
            span.set_attribute("telegram.channel", channel_ref)
            count = 0
            try:
                await directory.resolve(channel_ref)
                async for post in source.iter_posts(channel_ref, limit=config.limit, since=since):
                    count += 1
                    try:
                        await orchestrator.handle_post(post)
                    except Exception as exc:
                        logger.exception("backfill post %s/%s failed: %s", channel_ref, post.post_id, exc)
                    await sleep(config.delay_seconds)
            except Exception as exc:
                logger.warning("backfill failed for %s after %d posts: %s", channel_ref, count, exc)
                span.record_exception(exc)
            else:
                logger.info("backfill complete for %s: processed %d posts", channel_ref, count)
            span.set_attribute("backfill.posts", count)
        fed[channel_ref] = count
        orchestrator.log_stats()
    return fed
