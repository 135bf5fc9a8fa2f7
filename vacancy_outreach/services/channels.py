from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable

from vacancy_outreach.schemas.posts import ChannelPost, Identity
from vacancy_outreach.services.channel_source import ChannelSource, ChannelSourceError

logger = logging.getLogger(__name__)

_MARKED_CHANNEL_PREFIX = "-100"
RESOLVE_FAILURE_COOLDOWN_SECONDS = 600.0


def normalize_channel_ref(ref: str) -> str:
    """Lowercase handles and strip the -100 marker from numeric channel ids."""
    value = ref.strip().lower()
    if value.startswith(_MARKED_CHANNEL_PREFIX) and value[len(_MARKED_CHANNEL_PREFIX) :].isdigit():
        return value[len(_MARKED_CHANNEL_PREFIX) :]
    return value


class ChannelDirectory:
    """Configured channel allow-list with a username to numeric id cache."""

    def __init__(
        self,
        identifiers: Iterable[str],
        source: ChannelSource,
        *,
        failure_cooldown_seconds: float = RESOLVE_FAILURE_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.identifiers = tuple(normalize_channel_ref(item) for item in identifiers if item.strip())
        self._source = source
        self._username_ids: dict[str, str] = {}
        self._failed_at: dict[str, float] = {}
        self._failure_cooldown_seconds = failure_cooldown_seconds
        self._clock = clock

    @property
    def restricted(self) -> bool:
        return bool(self.identifiers)

    def cached_id(self, username: str) -> str | None:
        return self._username_ids.get(username.lower())

    def remember(self, username: str | None, numeric_id: str) -> None:
        if not username:
            return
        handle = username.lower() if username.startswith("@") else f"@{username.lower()}"
        self._username_ids[handle] = numeric_id

    async def resolve(self, ref: str) -> Identity:
        identity = await self._source.resolve_identity(ref)
        self._failed_at.pop(ref, None)
        if ref.startswith("@"):
            self.remember(ref, identity.numeric_id)
            logger.info("cached channel mapping %s -> %s", ref, identity.numeric_id)
        self.remember(identity.username, identity.numeric_id)
        return identity

    async def is_allowed(self, post: ChannelPost) -> bool:
        if not self.identifiers:
            return True
        channel_id = normalize_channel_ref(post.channel_ref)
        if channel_id in self.identifiers:
            return True

        handles = [item for item in self.identifiers if item.startswith("@")]
        if any(self._username_ids.get(handle) == channel_id for handle in handles):
            return True

        if post.channel_username:
            handle = f"@{post.channel_username.lower().lstrip('@')}"
            if handle in handles:
                self.remember(handle, channel_id)
                return True

        for handle in handles:
            if handle in self._username_ids or self._cooling_down(handle):
                continue
            try:
                await self.resolve(handle)
            except ChannelSourceError as exc:
                self._failed_at[handle] = self._clock()
                logger.warning(
                    "channel resolution failed for %s: %s; retrying in %.0fs",
                    handle,
                    exc,
                    self._failure_cooldown_seconds,
                )
                continue
            if self._username_ids.get(handle) == channel_id:
                return True

        logger.debug("channel %s not in allow-list %s", channel_id, ",".join(self.identifiers))
        return False

    def _cooling_down(self, handle: str) -> bool:
        failed_at = self._failed_at.get(handle)
        return failed_at is not None and self._clock() - failed_at < self._failure_cooldown_seconds
