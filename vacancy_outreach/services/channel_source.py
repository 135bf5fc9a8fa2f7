from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime
from typing import Protocol

from vacancy_outreach.schemas.posts import ChannelPost, Identity

PostHandler = Callable[[ChannelPost], Awaitable[object]]


class ChannelSourceError(Exception):
    """Raised by channel sources for transport-level failures."""


class ChannelSource(Protocol):
    """Event source and outbound transport for broadcast channels."""

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    def subscribe(self, handler: PostHandler) -> None: ...

    def iter_posts(
        self,
        channel_ref: str,
        *,
        limit: int,
        since: datetime | None = None,
    ) -> AsyncIterator[ChannelPost]: ...

    async def resolve_identity(self, ref: str) -> Identity: ...

    async def send_message(self, identity: Identity, text: str) -> None: ...

    async def send_file(self, identity: Identity, path: str, *, caption: str | None = None) -> None: ...
