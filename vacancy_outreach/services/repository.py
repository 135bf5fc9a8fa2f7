from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc


class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist."""


class RepositoryConflictError(RepositoryError):
    """Raised when an operation violates a uniqueness or state rule."""


VACANCY_STATUSES = {"processed", "sent"}

# Connection loss and closed pools surface as InterfaceError, not PostgresError.
_UNAVAILABLE_ERRORS = (pg_exc.PostgresError, asyncpg.InterfaceError, OSError)

_SCHEMA_SQL = """
create table if not exists vacancies (
  id uuid primary key default gen_random_uuid(),
  channel_id text not null,
  channel_username text,
  post_id bigint not null,
  full_text text not null,
  position text,
  company text,
  salary text,
  location text,
  work_format text,
  employment text,
  contact text,
  hashtags text[] not null default '{}',
  stack text[] not null default '{}',
  tasks text[] not null default '{}',
  summary text,
  llm_reply text,
  status text not null default 'processed',
  dm_sent boolean not null default false,
  processed_at timestamptz not null default now(),
  created_at timestamptz not null,
  updated_at timestamptz not null default now()
);
create unique index if not exists vacancies_channel_post_uidx on vacancies (channel_id, post_id);
create index if not exists vacancies_created_at_idx on vacancies (created_at desc);
"""

_VACANCY_COLUMNS = """
  id::text as id,
  channel_id,
  channel_username,
  post_id,
  full_text,
  position,
  company,
  salary,
  location,
  work_format,
  employment,
  contact,
  hashtags,
  stack,
  tasks,
  summary,
  llm_reply,
  status,
  dm_sent,
  processed_at,
  created_at,
  updated_at
"""


class VacancyRepository(Protocol):
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
    ) -> dict[str, Any]: ...

    async def get_vacancy(self, vacancy_id: str) -> dict[str, Any]: ...

    async def find_by_post(self, channel_id: str, post_id: int) -> dict[str, Any] | None: ...

    async def mark_sent(self, channel_id: str, post_id: int) -> dict[str, Any]: ...

    async def update_status(self, vacancy_id: str, status: str) -> dict[str, Any]: ...

    async def list_vacancies(
        self,
        *,
        limit: int,
        offset: int,
        q: str | None = None,
        status: str | None = None,
        sort_dir: str = "desc",
    ) -> list[dict[str, Any]]: ...

    async def delete_vacancy(self, vacancy_id: str) -> None: ...

    async def count_by_status(self) -> dict[str, int]: ...

    async def ensure_schema(self) -> None: ...

    async def close(self) -> None: ...


class PostgresVacancyRepository:
    def __init__(self, database_url: str | None, min_pool_size: int, max_pool_size: int) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def ensure_schema(self) -> None:
        pool = await self._get_pool()
        try:
            await pool.execute(_SCHEMA_SQL)
        except _UNAVAILABLE_ERRORS as exc:
            raise RepositoryUnavailableError("failed to ensure vacancies schema") from exc

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
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                insert into vacancies (
                  channel_id, channel_username, post_id, full_text,
                  position, company, salary, location, work_format, employment, contact,
                  hashtags, stack, tasks, summary, llm_reply, created_at
                )
                values ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16, $17)
                returning {_VACANCY_COLUMNS}
                """,
                channel_id,
                channel_username,
                post_id,
                full_text,
                fields.get("position"),
                fields.get("company"),
                fields.get("salary"),
                fields.get("location"),
                fields.get("work_format"),
                fields.get("employment"),
                fields.get("contact"),
                list(fields.get("hashtags") or []),
                list(fields.get("stack") or []),
                list(fields.get("tasks") or []),
                fields.get("summary"),
                llm_reply,
                created_at,
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError(f"vacancy already stored for {channel_id}/{post_id}") from exc
        except _UNAVAILABLE_ERRORS as exc:
            raise RepositoryUnavailableError("failed to store vacancy") from exc
        return self._vacancy_row_to_dict(row)

    async def get_vacancy(self, vacancy_id: str) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"select {_VACANCY_COLUMNS} from vacancies where id = $1::uuid",
                vacancy_id,
            )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("vacancy not found") from exc
        except _UNAVAILABLE_ERRORS as exc:
            raise RepositoryUnavailableError("failed to load vacancy") from exc
        if not row:
            raise RepositoryNotFoundError("vacancy not found")
        return self._vacancy_row_to_dict(row)

    async def find_by_post(self, channel_id: str, post_id: int) -> dict[str, Any] | None:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"select {_VACANCY_COLUMNS} from vacancies where channel_id = $1 and post_id = $2",
                channel_id,
                post_id,
            )
        except _UNAVAILABLE_ERRORS as exc:
            raise RepositoryUnavailableError("failed to load vacancy") from exc
        return self._vacancy_row_to_dict(row) if row else None

    async def mark_sent(self, channel_id: str, post_id: int) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                update vacancies
                set dm_sent = true, status = 'sent', updated_at = now()
                where channel_id = $1 and post_id = $2
                returning {_VACANCY_COLUMNS}
                """,
                channel_id,
                post_id,
            )
        except _UNAVAILABLE_ERRORS as exc:
            raise RepositoryUnavailableError("failed to mark vacancy sent") from exc
        if not row:
            raise RepositoryNotFoundError("vacancy not found")
        return self._vacancy_row_to_dict(row)

    async def update_status(self, vacancy_id: str, status: str) -> dict[str, Any]:
        if status not in VACANCY_STATUSES:
            raise RepositoryConflictError(f"unsupported vacancy status: {status}")
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                update vacancies
                set status = $2, dm_sent = ($2 = 'sent'), updated_at = now()
                where id = $1::uuid
                returning {_VACANCY_COLUMNS}
                """,
                vacancy_id,
                status,
            )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("vacancy not found") from exc
        except _UNAVAILABLE_ERRORS as exc:
            raise RepositoryUnavailableError("failed to update vacancy status") from exc
        if not row:
            raise RepositoryNotFoundError("vacancy not found")
        return self._vacancy_row_to_dict(row)

    async def list_vacancies(
        self,
        *,
        limit: int,
        offset: int,
        q: str | None = None,
        status: str | None = None,
        sort_dir: str = "desc",
    ) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        conditions: list[str] = []
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        normalized_q = self._coerce_text(q)
        if normalized_q:
            token = bind(f"%{normalized_q}%")
            conditions.append(
                f"(v.full_text ilike {token} or coalesce(v.position, '') ilike {token} "
                f"or coalesce(v.company, '') ilike {token})"
            )
        if status:
            conditions.append(f"v.status = {bind(status)}")

        where_sql = " and ".join(conditions) if conditions else "true"
        direction = "asc" if sort_dir == "asc" else "desc"
        limit_token = bind(limit)
        offset_token = bind(offset)

        try:
            rows = await pool.fetch(
                f"""
                select {_VACANCY_COLUMNS}
                from vacancies v
                where {where_sql}
                order by v.created_at {direction}, v.id asc
                limit {limit_token}
                offset {offset_token}
                """,
                *params,
            )
        except _UNAVAILABLE_ERRORS as exc:
            raise RepositoryUnavailableError("failed to list vacancies") from exc
        return [self._vacancy_row_to_dict(row) for row in rows]

    async def delete_vacancy(self, vacancy_id: str) -> None:
        pool = await self._get_pool()
        try:
            result = await pool.execute("delete from vacancies where id = $1::uuid", vacancy_id)
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("vacancy not found") from exc
        except _UNAVAILABLE_ERRORS as exc:
            raise RepositoryUnavailableError("failed to delete vacancy") from exc
        if result.endswith(" 0"):
            raise RepositoryNotFoundError("vacancy not found")

    async def count_by_status(self) -> dict[str, int]:
        pool = await self._get_pool()
        try:
            rows = await pool.fetch("select status, count(*)::int as total from vacancies group by status")
        except _UNAVAILABLE_ERRORS as exc:
            raise RepositoryUnavailableError("failed to count vacancies") from exc
        return {row["status"]: int(row["total"]) for row in rows}

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=15,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc

    @staticmethod
    def _coerce_text(value: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return str(value)

    @staticmethod
    def _vacancy_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "channel_id": row["channel_id"],
            "channel_username": row["channel_username"],
            "post_id": int(row["post_id"]),
            "full_text": row["full_text"],
            "position": row["position"],
            "company": row["company"],
            "salary": row["salary"],
            "location": row["location"],
            "work_format": row["work_format"],
            "employment": row["employment"],
            "contact": row["contact"],
            "hashtags": list(row["hashtags"] or []),
            "stack": list(row["stack"] or []),
            "tasks": list(row["tasks"] or []),
            "summary": row["summary"],
            "llm_reply": row["llm_reply"],
            "status": row["status"],
            "dm_sent": bool(row["dm_sent"]),
            "processed_at": row["processed_at"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }
