from __future__ import annotations

import asyncio

from vacancy_outreach.services.names import (
    extract_publisher_display_name,
    is_likely_company_name,
    normalize_first_name,
)
from vacancy_outreach.services.reply import (
    REPLY_STOP_SEQUENCES,
    ReplyContext,
    ReplySynthesizer,
    build_reply_prompt,
    build_template_reply,
)


class FakeTextClient:
    def __init__(self, output: str | None) -> None:
        self.output = output
        self.calls: list[dict] = []

    async def generate(self, prompt: str, **kwargs) -> str | None:
        self.calls.append({"prompt": prompt, **kwargs})
        return self.output


def _context(**overrides) -> ReplyContext:
    values = {
        "position": "DevOps Engineer",
        "company": "Acme",
        "contact": "@recruiter1",
        "stack": ["kubernetes", "terraform", "helm", "docker"],
        "raw_text": "#devops Вакансия DevOps Engineer в компании Acme",
    }
    values.update(overrides)
    return ReplyContext(**values)


def test_short_model_output_falls_back_to_template() -> None:
    synthesizer = ReplySynthesizer(FakeTextClient("Ок"))

    reply = asyncio.run(synthesizer.synthesize(_context()))

    assert reply is not None
    assert "DevOps Engineer" in reply
    assert "Acme" in reply


def test_model_output_whitespace_is_collapsed() -> None:
    client = FakeTextClient("  Добрый день!\nЗаинтересовала   вакансия DevOps Engineer.  ")
    synthesizer = ReplySynthesizer(client, candidate_profile="5 лет DevOps")

    reply = asyncio.run(synthesizer.synthesize(_context()))

    assert reply == "Добрый день! Заинтересовала вакансия DevOps Engineer."
    assert client.calls[0]["stop"] == REPLY_STOP_SEQUENCES
    assert "5 лет DevOps" in client.calls[0]["prompt"]


def test_no_client_uses_template() -> None:
    reply = asyncio.run(ReplySynthesizer(None).synthesize(_context(company=None)))

    assert reply is not None
    assert reply.startswith("Добрый день!")
    assert "DevOps Engineer" in reply
    assert "в компании" not in reply


def test_nothing_to_say_returns_none() -> None:
    reply = asyncio.run(ReplySynthesizer(FakeTextClient(None)).synthesize(ReplyContext()))

    assert reply is None


def test_template_greets_by_mapped_first_name_and_lists_top_stack() -> None:
    reply = build_template_reply(_context(publisher_name="Liza Smirnova"))

    assert reply is not None
    assert reply.startswith("Елизавета, добрый день!")
    assert "kubernetes/terraform" in reply
    assert "helm" not in reply


def test_template_skips_organization_like_publisher() -> None:
    reply = build_template_reply(_context(publisher_name="Acme HR"))

    assert reply is not None
    assert reply.startswith("Добрый день!")


def test_prompt_embeds_context_and_limits() -> None:
    prompt = build_reply_prompt(
        _context(work_format="Удалённо", salary="250000 - 300000 ₽", raw_text="y" * 1000),
        max_chars=180,
        candidate_profile=None,
    )

    assert "максимум 180 символов" in prompt
    assert "стек=kubernetes, terraform, helm" in prompt
    assert "формат=Удалённо" in prompt
    assert "y" * 800 in prompt
    assert "y" * 801 not in prompt


def test_publisher_display_name_strips_handles_and_links() -> None:
    text = "Вакансия\nПубликатор: Анна Петрова @anna_hr https://t.me/anna_hr"

    assert extract_publisher_display_name(text) == "Анна Петрова"
    assert extract_publisher_display_name("Публикатор: IT Recruiting Agency") is None
    assert extract_publisher_display_name("no publisher line") is None


def test_first_name_normalization() -> None:
    assert normalize_first_name("john doe") == "Иван"
    assert normalize_first_name("мария") == "Мария"
    assert normalize_first_name("Zed") == "Zed"
    assert normalize_first_name("@handle") is None


def test_company_like_names() -> None:
    assert is_likely_company_name("Acme LLC") is True
    assert is_likely_company_name("Team 42") is True
    assert is_likely_company_name("Анна Петрова") is False
