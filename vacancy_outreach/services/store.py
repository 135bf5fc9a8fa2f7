from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any
from uuid import uuid4

from vacancy_outreach.core.config import get_settings
from vacancy_outreach.services.repository import (
    VACANCY_STATUSES,
    PostgresVacancyRepository,
    RepositoryConflictError,
    RepositoryNotFoundError,
    VacancyRepository,
)

logger = logging.getLogger(__name__)


class InMemoryVacancyStore:
    """Process-local vacancy store used when no database is configured."""

    def __init__(self) -> None:
        self.vacancies: dict[str, dict[str, Any]] = {}
        self._by_post: dict[tuple[str, int], str] = {}

    async def close(self) -> None:
        return None

    async def ensure_schema(self) -> None:
        return None

    async def create_vacancy(
        self,
        *,
        channel_id: str,
        post_id: int,
        full_text: str,
        fields: dict[str, Any],
        created_at: datetime,
        channel_username: str | None = None,
        llm_reply: str | None = None,
    ) -> dict[str, Any]:
        key = (channel_id, post_id)
        if key in self._by_post:
            raise RepositoryConflictError(f"vacancy already stored for {channel_id}/{post_id}")
        now = datetime.now(timezone.utc)
        vacancy_id = str(uuid4())
        record = {
            "id": vacancy_id,
            "channel_id": channel_id,
            "channel_username": channel_username,
            "post_id": post_id,
            "full_text": full_text,
            "position": fields.get("position"),
            "company": fields.get("company"),
            "salary": fields.get("salary"),
            "location": fields.get("location"),
            "work_format": fields.get("work_format"),
            "employment": fields.get("employment"),
            "contact": fields.get("contact"),
            "hashtags": list(fields.get("hashtags") or []),
            "stack": list(fields.get("stack") or []),
            "tasks": list(fields.get("tasks") or []),
            "summary": fields.get("summary"),
            "llm_reply": llm_reply,
            "status": "processed",
            "dm_sent": False,
            "processed_at": now,
            "created_at": created_at,
            "updated_at": now,
        }
        self.vacancies[vacancy_id] = record
        self._by_post[key] = vacancy_id
        return dict(record)

    async def get_vacancy(self, vacancy_id: str) -> dict[str, Any]:
        record = self.vacancies.get(vacancy_id)
        if record is None:
            raise RepositoryNotFoundError("vacancy not found")
        return dict(record)

    async def find_by_post(self, channel_id: str, post_id: int) -> dict[str, Any] | None:
        vacancy_id = self._by_post.get((channel_id, post_id))
        if vacancy_id is None:
            return None
        return dict(self.vacancies[vacancy_id])

    async def mark_sent(self, channel_id: str, post_id: int) -> dict[str, Any]:
        vacancy_id = self._by_post.get((channel_id, post_id))
        if vacancy_id is None:
            raise RepositoryNotFoundError("vacancy not found")
        record = self.vacancies[vacancy_id]
        record.update(status="sent", dm_sent=True, updated_at=datetime.now(timezone.utc))
        return dict(record)

    async def update_status(self, vacancy_id: str, status: str) -> dict[str, Any]:
        if status not in VACANCY_STATUSES:
            raise RepositoryConflictError(f"unsupported vacancy status: {status}")
        record = self.vacancies.get(vacancy_id)
        if record is None:
            raise RepositoryNotFoundError("vacancy not found")
        record.update(status=status, dm_sent=status == "sent", updated_at=datetime.now(timezone.utc))
        return dict(record)

    async def list_vacancies(
        self,
        *,
        limit: int,
        offset: int,
        q: str | None = None,
        status: str | None = None,
        sort_dir: str = "desc",
    ) -> list[dict[str, Any]]:
        needle = q.strip().lower() if q and q.strip() else None
        rows = []
        for record in self.vacancies.values():
            if status and record["status"] != status:
                continue
            if needle is not None:
                haystack = " ".join(
                    value for value in (record["full_text"], record["position"], record["company"]) if value
                ).lower()
                if needle not in haystack:
                    continue
            rows.append(record)
        rows.sort(key=lambda item: (item["created_at"], item["id"]), reverse=sort_dir != "asc")
        return [dict(row) for row in rows[offset : offset + limit]]

    async def delete_vacancy(self, vacancy_id: str) -> None:
        record = self.vacancies.pop(vacancy_id, None)
        if record is None:
            raise RepositoryNotFoundError("vacancy not found")
        self._by_post.pop((record["channel_id"], record["post_id"]), None)

    async def count_by_status(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for record in self.vacancies.values():
            counts[record["status"]] = counts.get(record["status"], 0) + 1
        return counts


@lru_cache
def get_repository() -> VacancyRepository:
    settings = get_settings()
    if not settings.database_url:
        logger.warning("DATABASE_URL is not set; vacancies are kept in process memory only")
        return InMemoryVacancyStore()
    return PostgresVacancyRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
    )
