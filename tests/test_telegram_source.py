from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from telethon.tl.types import Message, PeerChannel

from vacancy_outreach.services.telegram_source import TelethonChannelSource, _entity_ref


class FakeTelegramClient:
    def __init__(self, messages: list[Message]) -> None:
        self.messages = messages
        self.entity_lookups: list[object] = []

    async def get_entity(self, ref):
        self.entity_lookups.append(ref)
        return PeerChannel(1001)

    async def iter_messages(self, entity, *, limit: int):
        for message in self.messages[:limit]:
            yield message


def _message(message_id: int, text: str) -> Message:
    return Message(
        id=message_id,
        peer_id=PeerChannel(1001),
        date=datetime(2026, 3, 1, tzinfo=timezone.utc),
        message=text,
    )


def test_media_only_posts_are_skipped_without_lookups() -> None:
    client = FakeTelegramClient([_message(3, ""), _message(2, "   ")])
    source = TelethonChannelSource(client)

    async def collect():
        return [post async for post in source.iter_posts("1001", limit=10)]

    posts = asyncio.run(collect())

    assert posts == []
    assert len(client.entity_lookups) == 1


def test_entity_ref_forms() -> None:
    assert _entity_ref("-1001234") == -1001234
    assert _entity_ref("1234") == PeerChannel(1234)
    assert _entity_ref("@jobs_feed") == "@jobs_feed"
