from __future__ import annotations

import json
import logging
import re

from pydantic import ValidationError

from vacancy_outreach.schemas.llm import StructuredFields
from vacancy_outreach.services.fields import ExtractionResult
from vacancy_outreach.services.llm_client import TextServiceClient

logger = logging.getLogger(__name__)

MAX_INPUT_CHARS = 5000

EXTRACTION_SYSTEM_PROMPT = (
    "Ты извлекаешь структурированные данные из текста вакансий. "
    "Отвечай ТОЛЬКО валидным JSON без пояснений, без markdown, без кавычек вокруг JSON."
)

_EXTRACTION_PROMPT = """Ты эксперт по анализу текстов вакансий. Извлеки структурированные данные из текста вакансии.

ВАЖНО: Верни ТОЛЬКО валидный JSON без пояснений, без markdown, без кавычек вокруг JSON.

Требуемые поля (если не найдено - null):
- position: точное название должности
- company: название компании (без ссылок и слов "Компания:", "Company:")
- salary: зарплата/вилка в исходном формате
- location: локация/город
- workFormat: "Удалённо", "Офис", "Гибрид" (или "Remote", "On-site", "Hybrid")
- employment: "Полная", "Частичная", "Проектная" (или "Full-time", "Part-time", "Contract")
- contact: контакт рекрутера (@username или email, БЕЗ каналов {excluded})
- hashtags: массив хештегов БЕЗ символа #
- stack: массив всех технологий, инструментов, платформ, фреймворков и библиотек, упомянутых в тексте, в точном написании
- tasks: массив основных задач и обязанностей, каждая отдельным элементом, 5-12 слов
- summary: короткое саммари (2-4 предложения, до 200 символов) о сути работы

Текст вакансии:
{text}

JSON ответ:"""

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\s*```\s*$")


def build_extraction_prompt(text: str, *, excluded_handles: frozenset[str] = frozenset()) -> str:
    excluded = ", ".join(sorted(excluded_handles)) or "канала-источника"
    return _EXTRACTION_PROMPT.format(excluded=excluded, text=text[:MAX_INPUT_CHARS])


def clean_model_json(raw: str) -> str:
    cleaned = raw.strip()
    cleaned = _FENCE_OPEN_RE.sub("", cleaned)
    cleaned = _FENCE_CLOSE_RE.sub("", cleaned)
    cleaned = cleaned.strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in {"'", '"'}:
        cleaned = cleaned[1:-1].strip()
    return cleaned


def parse_structured_fields(raw: str) -> ExtractionResult | None:
    try:
        payload = json.loads(clean_model_json(raw))
    except json.JSONDecodeError as exc:
        logger.debug("extraction output is not JSON: %s", exc)
        return None
    if not isinstance(payload, dict):
        logger.debug("extraction output is not an object: %s", type(payload).__name__)
        return None
    try:
        structured = StructuredFields.model_validate(payload)
    except ValidationError as exc:
        logger.debug("extraction output failed validation: %s", exc)
        return None
    return ExtractionResult(
        position=structured.position,
        company=structured.company,
        salary=structured.salary,
        location=structured.location,
        work_format=structured.work_format,
        employment=structured.employment,
        contact=structured.contact,
        hashtags=structured.hashtags or [],
        stack=structured.stack or [],
        tasks=structured.tasks or [],
        summary=structured.summary,
    )


class AiFieldExtractor:
    def __init__(
        self,
        client: TextServiceClient | None,
        *,
        excluded_handles: frozenset[str] = frozenset(),
    ) -> None:
        self._client = client
        self._excluded_handles = excluded_handles

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def extract(self, text: str) -> ExtractionResult | None:
        if self._client is None:
            return None
        raw = await self._client.generate(
            build_extraction_prompt(text, excluded_handles=self._excluded_handles),
            system=EXTRACTION_SYSTEM_PROMPT,
        )
        if not raw:
            return None
        result = parse_structured_fields(raw)
        if result is None:
            logger.info("extraction output discarded; falling back to heuristics")
        return result
