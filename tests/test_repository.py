from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import asyncpg
from asyncpg import exceptions as pg_exc
import pytest

from vacancy_outreach.services.repository import (
    PostgresVacancyRepository,
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
)


class FakePool:
    def __init__(self, error: Exception) -> None:
        self.error = error
        self.calls: list[str] = []

    async def fetchrow(self, query: str, *args: Any) -> Any:
        self.calls.append("fetchrow")
        raise self.error

    async def fetch(self, query: str, *args: Any) -> Any:
        self.calls.append("fetch")
        raise self.error

    async def execute(self, query: str, *args: Any) -> Any:
        self.calls.append("execute")
        raise self.error


def _repository(error: Exception) -> PostgresVacancyRepository:
    repository = PostgresVacancyRepository("postgresql://jobs@localhost/jobs", 1, 2)
    repository._pool = FakePool(error)
    return repository


def _create(repository: PostgresVacancyRepository):
    return repository.create_vacancy(
        channel_id="1001",
        post_id=10,
        full_text="#devops",
        fields={"position": "DevOps"},
        created_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
    )


def test_closed_pool_on_insert_is_reported_as_unavailable() -> None:
    repository = _repository(asyncpg.InterfaceError("pool is closing"))

    with pytest.raises(RepositoryUnavailableError):
        asyncio.run(_create(repository))


def test_unique_violation_on_insert_is_a_conflict() -> None:
    repository = _repository(pg_exc.UniqueViolationError("duplicate key value"))

    with pytest.raises(RepositoryConflictError):
        asyncio.run(_create(repository))


@pytest.mark.parametrize(
    "error",
    [
        asyncpg.InterfaceError("pool is closing"),
        pg_exc.ConnectionDoesNotExistError("connection was closed in the middle of operation"),
        ConnectionResetError("reset by peer"),
    ],
)
def test_read_paths_translate_connection_errors(error: Exception) -> None:
    repository = _repository(error)

    with pytest.raises(RepositoryUnavailableError):
        asyncio.run(repository.find_by_post("1001", 10))
    with pytest.raises(RepositoryUnavailableError):
        asyncio.run(repository.list_vacancies(limit=10, offset=0, q="devops"))
    with pytest.raises(RepositoryUnavailableError):
        asyncio.run(repository.count_by_status())
    with pytest.raises(RepositoryUnavailableError):
        asyncio.run(repository.get_vacancy("00000000-0000-0000-0000-000000000001"))
    with pytest.raises(RepositoryUnavailableError):
        asyncio.run(repository.delete_vacancy("00000000-0000-0000-0000-000000000001"))


def test_malformed_vacancy_id_is_not_found() -> None:
    repository = _repository(pg_exc.InvalidTextRepresentationError("invalid input syntax for type uuid"))

    with pytest.raises(RepositoryNotFoundError):
        asyncio.run(repository.get_vacancy("not-a-uuid"))


def test_missing_database_url_is_unavailable() -> None:
    repository = PostgresVacancyRepository(None, 1, 2)

    with pytest.raises(RepositoryUnavailableError):
        asyncio.run(repository.count_by_status())
