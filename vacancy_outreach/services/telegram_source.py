from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Any

from telethon import TelegramClient, events
from telethon.errors import RPCError
from telethon.sessions import StringSession
from telethon.tl.types import Message, MessageEntityMentionName, MessageEntityTextUrl, PeerChannel

from vacancy_outreach.core.config import Settings
from vacancy_outreach.schemas.posts import ChannelPost, Identity
from vacancy_outreach.services.channel_source import ChannelSourceError, PostHandler

logger = logging.getLogger(__name__)

# Entities starting this many UTF-16 units after the publisher label belong to it.
PUBLISHER_ENTITY_WINDOW = 50

_PUBLISHER_LABEL_RE = re.compile(r"публикатор[:\s]+", re.IGNORECASE)
_TG_USER_URL_RE = re.compile(r"^tg://user\?id=(\d+)", re.IGNORECASE)


def _utf16_len(text: str) -> int:
    return len(text.encode("utf-16-le")) // 2


def _entity_user_id(entity: Any) -> int | None:
    if isinstance(entity, MessageEntityMentionName):
        return entity.user_id
    if isinstance(entity, MessageEntityTextUrl):
        match = _TG_USER_URL_RE.match(entity.url or "")
        if match:
            return int(match.group(1))
    return None


def _entity_ref(ref: str) -> str | int | PeerChannel:
    """Marked ids (-100...) and usernames pass through; bare positive ids are channels."""
    if ref.startswith("-") and ref[1:].isdigit():
        return int(ref)
    if ref.isdigit():
        return PeerChannel(int(ref))
    return ref


def _channel_id(message: Message) -> str | None:
    peer = message.peer_id
    if isinstance(peer, PeerChannel):
        return str(peer.channel_id)
    return None


class TelethonChannelSource:
    """Telegram user-session client exposing channel posts and direct messages."""

    def __init__(self, client: TelegramClient) -> None:
        self._client = client
        self._handlers: list[PostHandler] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> TelethonChannelSource:
        client = TelegramClient(
            StringSession(settings.telegram_session),
            settings.telegram_api_id,
            settings.telegram_api_hash,
        )
        return cls(client)

    async def connect(self) -> None:
        await self._client.connect()
        if not await self._client.is_user_authorized():
            raise ChannelSourceError("Telegram session is not authorized; regenerate TELEGRAM_SESSION")
        logger.info("Telegram client connected")

    async def disconnect(self) -> None:
        await self._client.disconnect()

    def subscribe(self, handler: PostHandler) -> None:
        if not self._handlers:
            self._client.add_event_handler(self._on_new_message, events.NewMessage())
        self._handlers.append(handler)

    async def iter_posts(
        self,
        channel_ref: str,
        *,
        limit: int,
        since: datetime | None = None,
    ) -> AsyncIterator[ChannelPost]:
        entity = await self._client.get_entity(_entity_ref(channel_ref))
        async for message in self._client.iter_messages(entity, limit=limit):
            if not isinstance(message, Message):
                continue
            if since is not None and message.date is not None and message.date < since:
                continue
            post = await self._to_post(message)
            if post is not None:
                yield post

    async def resolve_identity(self, ref: str) -> Identity:
        try:
            entity = await self._client.get_entity(_entity_ref(ref))
        except (RPCError, ValueError) as exc:
            raise ChannelSourceError(f"cannot resolve {ref}: {exc}") from exc
        return Identity(numeric_id=str(entity.id), username=getattr(entity, "username", None))

    async def send_message(self, identity: Identity, text: str) -> None:
        await self._client.send_message(self._peer(identity), text)

    async def send_file(self, identity: Identity, path: str, *, caption: str | None = None) -> None:
        await self._client.send_file(self._peer(identity), path, caption=caption)

    @staticmethod
    def _peer(identity: Identity) -> str | int:
        return identity.handle or int(identity.numeric_id)

    async def _on_new_message(self, event: events.NewMessage.Event) -> None:
        message = event.message
        if not isinstance(message, Message) or not isinstance(message.peer_id, PeerChannel):
            return
        post = await self._to_post(message)
        if post is None:
            return
        for handler in self._handlers:
            try:
                await handler(post)
            except Exception:
                logger.exception("post handler failed for %s/%s", post.channel_ref, post.post_id)

    async def _to_post(self, message: Message) -> ChannelPost | None:
        channel_id = _channel_id(message)
        text = (message.message or "").strip()
        # Media-only posts carry no text to match; skip the chat and publisher lookups.
        if channel_id is None or not text:
            return None
        chat = await message.get_chat()
        return ChannelPost(
            channel_ref=channel_id,
            post_id=message.id,
            raw_text=text,
            published_at=message.date or datetime.now(timezone.utc),
            author_hint=await self._publisher_username(message),
            channel_username=getattr(chat, "username", None),
        )

    async def _publisher_username(self, message: Message) -> str | None:
        """Publisher handle: entity after a "Публикатор:" label, the post author, then any user entity."""
        text = message.message or ""
        entities = list(message.entities or [])

        label = _PUBLISHER_LABEL_RE.search(text)
        if label:
            label_end = _utf16_len(text[: label.end()])
            for entity in entities:
                if label_end <= entity.offset <= label_end + PUBLISHER_ENTITY_WINDOW:
                    username = await self._username_for(_entity_user_id(entity))
                    if username:
                        return username

        from_id = message.from_id
        if from_id is not None:
            author_id = getattr(from_id, "user_id", None) or getattr(from_id, "channel_id", None)
            username = await self._username_for(author_id)
            if username:
                return username

        for entity in entities:
            username = await self._username_for(_entity_user_id(entity))
            if username:
                return username
        return None

    async def _username_for(self, user_id: int | None) -> str | None:
        if user_id is None:
            return None
        try:
            entity = await self._client.get_entity(user_id)
        except (RPCError, ValueError) as exc:
            logger.debug("publisher lookup failed for %s: %s", user_id, exc)
            return None
        username = getattr(entity, "username", None)
        return f"@{username}" if username else None
