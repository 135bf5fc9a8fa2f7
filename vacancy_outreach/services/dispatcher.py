from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from opentelemetry import trace

from vacancy_outreach.core.config import DispatchConfig
from vacancy_outreach.schemas.posts import ChannelPost
from vacancy_outreach.services.channel_source import ChannelSource
from vacancy_outreach.services.heuristics import extract_links, extract_mentions, telegram_handle_from_link
from vacancy_outreach.services.repository import RepositoryError, VacancyRepository
from vacancy_outreach.services.reply import ReplyContext, ReplySynthesizer

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

Sleeper = Callable[[float], Awaitable[object]]


def resolve_targets(text: str, *, excluded_handles: frozenset[str], cap: int) -> list[str]:
    """Outbound handles named by a post: mentions first, then t.me links."""
    targets = extract_mentions(text, excluded_handles=excluded_handles)
    for link in extract_links(text):
        handle = telegram_handle_from_link(link)
        if handle and handle not in excluded_handles and handle not in targets:
            targets.append(handle)
    return targets[: max(0, cap)]


def render_reply_template(template: str, text: str, *, excluded_handles: frozenset[str] = frozenset()) -> str | None:
    if not template.strip():
        return None
    rendered = (
        template.replace("{{ORIGINAL}}", text)
        .replace("{{MENTIONS}}", ", ".join(extract_mentions(text, excluded_handles=excluded_handles)))
        .replace("{{LINKS}}", ", ".join(extract_links(text)))
    )
    return rendered.strip() or None


@dataclass(slots=True)
class DispatchOutcome:
    targets: list[str] = field(default_factory=list)
    sent: list[str] = field(default_factory=list)
    dry_run: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def any_sent(self) -> bool:
        return bool(self.sent)


class OutreachDispatcher:
    def __init__(
        self,
        source: ChannelSource,
        store: VacancyRepository,
        synthesizer: ReplySynthesizer,
        config: DispatchConfig,
        *,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._source = source
        self._store = store
        self._synthesizer = synthesizer
        self.config = config
        self._sleep = sleep

    async def dispatch(
        self,
        post: ChannelPost,
        *,
        channel_id: str,
        reply: str | None = None,
        reply_context: ReplyContext | None = None,
        contact: str | None = None,
    ) -> DispatchOutcome:
        targets = resolve_targets(
            post.raw_text,
            excluded_handles=self.config.excluded_handles,
            cap=self.config.max_per_post,
        )
        outcome = DispatchOutcome(targets=targets)
        if not targets:
            logger.debug("no outbound targets in post %s/%s", channel_id, post.post_id)
            return outcome

        normalized_contact = contact.lower() if contact else None
        template_reply = render_reply_template(
            self.config.reply_template,
            post.raw_text,
            excluded_handles=self.config.excluded_handles,
        )

        with tracer.start_as_current_span("outreach.dispatch") as span:
            span.set_attribute("outreach.channel_id", channel_id)
            span.set_attribute("outreach.post_id", post.post_id)
            span.set_attribute("outreach.targets", len(targets))
            span.set_attribute("outreach.dry_run", self.config.dry_run)

            for target in targets:
                await self._sleep(self.config.delay_seconds)
                try:
                    identity = await self._source.resolve_identity(target)
                except Exception as exc:
                    logger.warning("failed to resolve outbound target %s: %s", target, exc)
                    outcome.failed.append(target)
                    continue

                message = reply
                if not message and reply_context is not None and target == normalized_contact:
                    message = await self._synthesizer.synthesize(reply_context)
                if not message:
                    message = template_reply
                if not message:
                    logger.info("no reply text for %s; skipping", target)
                    outcome.skipped.append(target)
                    continue

                if self.config.dry_run:
                    logger.info("[dry-run] would DM %s (%s): %s", target, identity.numeric_id, message)
                    outcome.dry_run.append(target)
                    continue

                try:
                    await self._source.send_message(identity, message)
                except Exception as exc:
                    logger.warning("failed to DM %s: %s", target, exc)
                    outcome.failed.append(target)
                    continue
                logger.info("DM sent to %s for post %s/%s", target, channel_id, post.post_id)
                outcome.sent.append(target)

            span.set_attribute("outreach.sent", len(outcome.sent))

        if outcome.any_sent:
            try:
                await self._store.mark_sent(channel_id, post.post_id)
            except RepositoryError as exc:
                logger.error("failed to mark vacancy %s/%s as sent: %s", channel_id, post.post_id, exc)
        return outcome

    async def send_cv_to_contact(self, contact: str, caption: str | None = None) -> tuple[bool, str]:
        cv_path = self.config.cv_file_path
        if not cv_path:
            return False, "CV_FILE_PATH is not configured"
        path = Path(cv_path)
        if not path.is_file():
            return False, f"CV file not found: {cv_path}"

        resolved_caption = caption or self.config.cv_caption
        try:
            identity = await self._source.resolve_identity(contact)
        except Exception as exc:
            logger.warning("failed to resolve CV recipient %s: %s", contact, exc)
            return False, f"cannot resolve {contact}"

        if self.config.dry_run:
            logger.info("[dry-run] would send CV %s to %s", path.name, contact)
            return True, "dry-run"

        try:
            await self._source.send_file(identity, str(path), caption=resolved_caption)
        except Exception as exc:
            logger.warning("failed to send CV to %s: %s", contact, exc)
            return False, str(exc)
        logger.info("CV sent to %s", contact)
        return True, "sent"
