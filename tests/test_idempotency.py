from __future__ import annotations

import asyncio
from typing import Any

from redis.exceptions import ConnectionError as RedisConnectionError

from vacancy_outreach.services.idempotency import ProcessingLeaseGate


class FakeLeaseStore:
    def __init__(self) -> None:
        self.now = 0.0
        self.values: dict[str, tuple[Any, float | None]] = {}
        self.calls: list[tuple[str, int | None, bool]] = []

    async def set(self, name: str, value: Any, *, ex: int | None = None, nx: bool = False) -> bool | None:
        self.calls.append((name, ex, nx))
        current = self.values.get(name)
        if current is not None:
            _, expires_at = current
            if expires_at is not None and expires_at <= self.now:
                current = None
        if nx and current is not None:
            return None
        self.values[name] = (value, self.now + ex if ex is not None else None)
        return True


class BrokenLeaseStore:
    async def set(self, name: str, value: Any, *, ex: int | None = None, nx: bool = False) -> bool:
        raise RedisConnectionError("connection refused")


def test_lease_gate_admits_first_caller_only_within_window() -> None:
    store = FakeLeaseStore()
    gate = ProcessingLeaseGate(store, ttl_seconds=60)

    assert asyncio.run(gate.try_admit("1001", 7)) is True
    assert asyncio.run(gate.try_admit("1001", 7)) is False
    assert asyncio.run(gate.try_admit("1001", 8)) is True
    assert store.calls[0] == ("userbot:processed:1001:7", 60, True)


def test_lease_gate_admits_again_after_expiry() -> None:
    store = FakeLeaseStore()
    gate = ProcessingLeaseGate(store, ttl_seconds=60)

    assert asyncio.run(gate.try_admit("1001", 7)) is True
    store.now = 61.0
    assert asyncio.run(gate.try_admit("1001", 7)) is True


def test_lease_gate_concurrent_admission_has_single_winner() -> None:
    store = FakeLeaseStore()
    gate = ProcessingLeaseGate(store)

    async def run() -> list[bool]:
        return list(await asyncio.gather(*(gate.try_admit("1001", 42) for _ in range(5))))

    results = asyncio.run(run())
    assert results.count(True) == 1


def test_lease_gate_fails_open_when_store_is_down(caplog) -> None:
    gate = ProcessingLeaseGate(BrokenLeaseStore())

    with caplog.at_level("WARNING"):
        assert asyncio.run(gate.try_admit("1001", 7)) is True
    assert "admitting post" in caplog.text


def test_lease_gate_defaults_to_seven_day_ttl() -> None:
    gate = ProcessingLeaseGate(FakeLeaseStore())
    assert gate.ttl_seconds == 7 * 24 * 60 * 60
