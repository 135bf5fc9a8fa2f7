from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from vacancy_outreach.services.llm_client import TextServiceClient
from vacancy_outreach.services.names import is_likely_company_name, normalize_first_name

logger = logging.getLogger(__name__)

MIN_REPLY_CHARS = 10
EXCERPT_CHARS = 800
PROFILE_CHARS = 800
REPLY_STOP_SEQUENCES = ("\n\n", "---")

REPLY_SYSTEM_PROMPT = "Отвечай только готовым сообщением без пояснений, без кавычек и без эмодзи."


@dataclass(slots=True)
class ReplyContext:
    position: str | None = None
    company: str | None = None
    contact: str | None = None
    publisher_name: str | None = None
    work_format: str | None = None
    location: str | None = None
    salary: str | None = None
    stack: list[str] = field(default_factory=list)
    raw_text: str = ""


def greeting_name(display_name: str | None) -> str | None:
    if not display_name or is_likely_company_name(display_name):
        return None
    return normalize_first_name(display_name)


def build_template_reply(context: ReplyContext) -> str | None:
    if not context.position and not context.company:
        return None
    first_name = greeting_name(context.publisher_name)
    greeting = f"{first_name}, добрый день!" if first_name else "Добрый день!"
    sentence = f"Интересует вакансия {context.position or 'в вашей команде'}"
    if context.company:
        sentence += f" в компании {context.company}"
    sentence += "."
    techs = "/".join(context.stack[:2])
    if techs:
        sentence += f" Основной стек: {techs}."
    return f"{greeting} {sentence} Можем обсудить подробнее?"


def build_reply_prompt(context: ReplyContext, *, max_chars: int, candidate_profile: str | None) -> str:
    data_parts: list[str] = []
    if context.contact:
        data_parts.append(f"контакт={context.contact}")
    first_name = greeting_name(context.publisher_name)
    if first_name:
        data_parts.append(f"имя={first_name}")
    if context.position:
        data_parts.append(f"вакансия={context.position}")
    if context.company:
        data_parts.append(f"компания={context.company}")
    if context.work_format:
        data_parts.append(f"формат={context.work_format}")
    if context.location:
        data_parts.append(f"локация={context.location}")
    if context.salary:
        data_parts.append(f"вилка={context.salary}")
    stack = ", ".join(context.stack[:3])
    if stack:
        data_parts.append(f"стек={stack}")

    snippet = context.raw_text.strip()[:EXCERPT_CHARS]
    profile = (candidate_profile or "").strip()[:PROFILE_CHARS]
    lines = [
        "Ты пишешь очень короткие, живые отклики на вакансии. "
        f"1–2 предложения, максимум {max_chars} символов. "
        "Разговорный тон личного сообщения, без канцелярита, без markdown и списков.",
        "Выведи ТОЛЬКО готовый текст сообщения без пояснений и без кавычек.",
        'Приветствие: если есть имя (имя=...), начни с "<Имя>, добрый день!", иначе с "Добрый день!". '
        "Не используй @ в начале.",
        'Формат: "Заинтересовала вакансия <должность> в компании <компания>. '
        'У меня есть опыт в <2–3 задачах из описания>. Можем обсудить подробнее?"',
        f"Данные: {'; '.join(data_parts)}.",
    ]
    if snippet:
        lines.append(f"Короткий контекст вакансии:\n{snippet}")
    if profile:
        lines.append(f"Профиль кандидата:\n{profile}")
    lines.append("Сгенерируй 1 вариант готового сообщения.")
    return "\n".join(lines)


class ReplySynthesizer:
    def __init__(
        self,
        client: TextServiceClient | None,
        *,
        candidate_profile: str | None = None,
        max_chars: int = 180,
    ) -> None:
        self._client = client
        self.candidate_profile = candidate_profile
        self.max_chars = max_chars

    @property
    def ai_enabled(self) -> bool:
        return self._client is not None

    async def synthesize(self, context: ReplyContext) -> str | None:
        generated = await self._generate(context)
        if generated is not None and len(generated) >= MIN_REPLY_CHARS:
            return generated
        if generated is not None:
            logger.info("discarding short model reply (%d chars); using template", len(generated))
        return build_template_reply(context)

    async def _generate(self, context: ReplyContext) -> str | None:
        if self._client is None:
            return None
        prompt = build_reply_prompt(context, max_chars=self.max_chars, candidate_profile=self.candidate_profile)
        text = await self._client.generate(prompt, system=REPLY_SYSTEM_PROMPT, stop=REPLY_STOP_SEQUENCES)
        if text is None:
            return None
        return re.sub(r"\s+", " ", text).strip()
