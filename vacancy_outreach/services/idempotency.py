from __future__ import annotations

import logging
from typing import Any, Protocol

from redis.exceptions import RedisError

from vacancy_outreach.core.config import LEASE_TTL_SECONDS

logger = logging.getLogger(__name__)

LEASE_KEY_PREFIX = "userbot:processed"


class LeaseStore(Protocol):
    async def set(self, name: str, value: Any, *, ex: int | None = None, nx: bool = False) -> Any: ...


class ProcessingLeaseGate:
    """Grants the right to process a channel post exactly once per lease window."""

    def __init__(
        self,
        store: LeaseStore,
        *,
        ttl_seconds: int = LEASE_TTL_SECONDS,
        key_prefix: str = LEASE_KEY_PREFIX,
    ) -> None:
        self._store = store
        self.ttl_seconds = max(1, ttl_seconds)
        self.key_prefix = key_prefix

    def lease_key(self, channel_id: str, post_id: int) -> str:
        return f"{self.key_prefix}:{channel_id}:{post_id}"

    async def try_admit(self, channel_id: str, post_id: int) -> bool:
        key = self.lease_key(channel_id, post_id)
        try:
            created = await self._store.set(key, "1", ex=self.ttl_seconds, nx=True)
        except (RedisError, OSError) as exc:
            # Unique (channel_id, post_id) in the vacancy store still guards duplicates.
            logger.warning("lease store unavailable for key=%s, admitting post: %s", key, exc)
            return True
        return bool(created)
