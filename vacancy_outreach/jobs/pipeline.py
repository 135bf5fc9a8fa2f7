from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Literal

from opentelemetry import trace

from vacancy_outreach.core.config import PipelineConfig
from vacancy_outreach.schemas.posts import ChannelPost
from vacancy_outreach.services.ai_extractor import AiFieldExtractor
from vacancy_outreach.services.channels import ChannelDirectory, normalize_channel_ref
from vacancy_outreach.services.dispatcher import OutreachDispatcher
from vacancy_outreach.services.fields import ExtractionResult, merge_extraction
from vacancy_outreach.services.heuristics import extract_heuristic_fields
from vacancy_outreach.services.idempotency import ProcessingLeaseGate
from vacancy_outreach.services.match_log import render_match_box
from vacancy_outreach.services.names import extract_publisher_display_name
from vacancy_outreach.services.relevance import is_relevant, normalize_keywords
from vacancy_outreach.services.reply import ReplyContext, ReplySynthesizer
from vacancy_outreach.services.repository import RepositoryConflictError, RepositoryError, VacancyRepository

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

PostOutcome = Literal["empty", "not_allowed", "duplicate", "no_keyword", "persist_failed", "processed", "sent"]

PREVIEW_CHARS = 100


@dataclass(slots=True)
class PipelineStats:
    total: int = 0
    not_allowed: int = 0
    no_keyword: int = 0
    duplicate: int = 0
    processed: int = 0
    persist_failed: int = 0
    sent: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class PipelineOrchestrator:
    """Single entry point for live and backfilled channel posts."""

    def __init__(
        self,
        *,
        gate: ProcessingLeaseGate,
        directory: ChannelDirectory,
        ai_extractor: AiFieldExtractor,
        synthesizer: ReplySynthesizer,
        dispatcher: OutreachDispatcher,
        store: VacancyRepository,
        config: PipelineConfig,
    ) -> None:
        self._gate = gate
        self._directory = directory
        self._ai_extractor = ai_extractor
        self._synthesizer = synthesizer
        self._dispatcher = dispatcher
        self._store = store
        self.config = config
        self.keywords = normalize_keywords(config.keywords)
        self.stats = PipelineStats()

    async def handle_post(self, post: ChannelPost) -> PostOutcome:
        text = post.raw_text.strip()
        if not text:
            logger.debug("skip empty post %s/%s", post.channel_ref, post.post_id)
            return "empty"

        with tracer.start_as_current_span("pipeline.handle_post") as span:
            span.set_attribute("telegram.channel", post.channel_ref)
            span.set_attribute("telegram.post_id", post.post_id)
            outcome = await self._process(post, text)
            span.set_attribute("pipeline.outcome", outcome)
            return outcome

    def log_stats(self) -> None:
        stats = self.stats
        logger.info(
            "pipeline stats total=%d processed=%d sent=%d duplicate=%d no_keyword=%d not_allowed=%d persist_failed=%d",
            stats.total,
            stats.processed,
            stats.sent,
            stats.duplicate,
            stats.no_keyword,
            stats.not_allowed,
            stats.persist_failed,
        )

    async def _process(self, post: ChannelPost, text: str) -> PostOutcome:
        if not await self._directory.is_allowed(post):
            self.stats.not_allowed += 1
            logger.debug("skip not-allowed channel=%s post=%s", post.channel_ref, post.post_id)
            return "not_allowed"

        self.stats.total += 1
        if self.config.stats_log_every > 0 and self.stats.total % self.config.stats_log_every == 0:
            self.log_stats()

        channel_id = normalize_channel_ref(post.channel_ref)
        if self.config.log_messages:
            preview = text if self.config.log_full else text[:PREVIEW_CHARS]
            logger.info("message channel=%s post=%s len=%d preview=%r", channel_id, post.post_id, len(text), preview)

        if not await self._gate.try_admit(channel_id, post.post_id):
            self.stats.duplicate += 1
            logger.debug("skip duplicate channel=%s post=%s", channel_id, post.post_id)
            return "duplicate"

        if not is_relevant(text, self.keywords):
            self.stats.no_keyword += 1
            logger.debug("skip no-keyword channel=%s post=%s", channel_id, post.post_id)
            return "no_keyword"

        fields = await self._extract(post, text)
        logger.info("relevant post\n%s", render_match_box(post, fields))

        reply_context = ReplyContext(
            position=fields.position,
            company=fields.company,
            contact=fields.contact,
            publisher_name=extract_publisher_display_name(text),
            work_format=fields.work_format,
            location=fields.location,
            salary=fields.salary,
            stack=list(fields.stack),
            raw_text=text,
        )
        llm_reply = None
        if self._synthesizer.ai_enabled and fields.contact:
            llm_reply = await self._synthesizer.synthesize(reply_context)

        try:
            record = await self._store.create_vacancy(
                channel_id=channel_id,
                channel_username=post.channel_username,
                post_id=post.post_id,
                full_text=text,
                fields=fields.as_record_fields(),
                llm_reply=llm_reply,
                created_at=post.published_at,
            )
        except RepositoryConflictError:
            self.stats.duplicate += 1
            logger.info("vacancy already stored channel=%s post=%s", channel_id, post.post_id)
            return "duplicate"
        except RepositoryError as exc:
            self.stats.persist_failed += 1
            logger.error("failed to store vacancy channel=%s post=%s: %s", channel_id, post.post_id, exc)
            return "persist_failed"

        self.stats.processed += 1
        logger.info(
            "vacancy saved id=%s channel=%s username=%s post=%s",
            record["id"],
            channel_id,
            post.channel_username or "n/a",
            post.post_id,
        )

        if not self.config.auto_reply_enabled:
            logger.info("auto-reply disabled; skipping outreach for post %s/%s", channel_id, post.post_id)
            return "processed"

        outcome = await self._dispatcher.dispatch(
            post,
            channel_id=channel_id,
            reply=llm_reply,
            reply_context=reply_context,
            contact=fields.contact,
        )
        if outcome.any_sent:
            self.stats.sent += 1
            return "sent"
        return "processed"

    async def _extract(self, post: ChannelPost, text: str) -> ExtractionResult:
        heuristic = extract_heuristic_fields(text, excluded_handles=self.config.excluded_handles)
        ai = await self._ai_extractor.extract(text)
        return merge_extraction(
            heuristic,
            ai,
            author_hint=post.author_hint,
            excluded_handles=self.config.excluded_handles,
        )
