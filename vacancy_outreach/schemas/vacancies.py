from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

VacancyStatus = Literal["processed", "sent"]
SortDir = Literal["asc", "desc"]


class VacancyOut(BaseModel):
    id: str
    channel_id: str
    channel_username: str | None = None
    post_id: int
    full_text: str
    position: str | None = None
    company: str | None = None
    salary: str | None = None
    location: str | None = None
    work_format: str | None = None
    employment: str | None = None
    contact: str | None = None
    hashtags: list[str] = Field(default_factory=list)
    stack: list[str] = Field(default_factory=list)
    tasks: list[str] = Field(default_factory=list)
    summary: str | None = None
    llm_reply: str | None = None
    status: VacancyStatus = "processed"
    dm_sent: bool = False
    processed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class VacancyPatchRequest(BaseModel):
    status: VacancyStatus


class StatsOut(BaseModel):
    pipeline: dict[str, int]
    vacancies_by_status: dict[str, int] = Field(default_factory=dict)
