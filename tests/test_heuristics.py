from vacancy_outreach.services.heuristics import (
    extract_contact,
    extract_hashtags,
    extract_heuristic_fields,
    extract_mentions,
    extract_salary,
    extract_stack,
    telegram_handle_from_link,
)

EXCLUDED = frozenset({"@devops_jobs", "@devops_jobs_feed"})


def test_salary_labelled_range_keeps_both_bounds() -> None:
    salary = extract_salary("Вилка: от 200000 до 300000 руб")

    assert salary == "200000 - 300000 ₽"


def test_salary_absent_without_salary_like_text() -> None:
    assert extract_salary("Ищем DevOps инженера в команду платформы") is None


def test_salary_bare_rouble_range() -> None:
    assert extract_salary("оплата по договоренности, 250000-300000 руб на руки") == "250000 - 300000 ₽"


def test_hashtags_dedupe_case_insensitively_keeping_first_spelling() -> None:
    assert extract_hashtags("#DevOps #senior #devops #remote") == ["#DevOps", "#senior", "#remote"]


def test_stack_matches_vocabulary_on_word_boundaries_and_caps() -> None:
    stack = extract_stack("Kubernetes, Helm, Terraform, Ansible, Docker и немного Grafana")

    assert stack == ["kubernetes", "helm", "terraform", "ansible"]
    assert extract_stack("dockerized") == []


def test_contact_prefers_explicit_phrasing_over_other_mentions() -> None:
    text = "Канал @devops_jobs. Вопросы @someone. Пишите: @hr_anna"

    assert extract_contact(text, excluded_handles=EXCLUDED) == "@hr_anna"


def test_contact_skips_excluded_channel_handles() -> None:
    text = "Источник @devops_jobs, резюме отправляйте @recruiter"

    assert extract_contact(text, excluded_handles=EXCLUDED) == "@recruiter"


def test_contact_falls_back_to_tme_link_then_email() -> None:
    assert extract_contact("Отклик: https://t.me/hr_bob") == "@hr_bob"
    assert extract_contact("CV на jobs@example.com") == "jobs@example.com"


def test_mentions_ignore_email_domains_and_excluded_handles() -> None:
    text = "Пишите @Recruiter или jobs@example.com, новости в @devops_jobs"

    assert extract_mentions(text, excluded_handles=EXCLUDED) == ["@recruiter"]


def test_telegram_handle_from_link() -> None:
    assert telegram_handle_from_link("https://t.me/Hr_Bob") == "@hr_bob"
    assert telegram_handle_from_link("https://telegram.me/someone/") == "@someone"
    assert telegram_handle_from_link("https://example.com/hr") is None
    assert telegram_handle_from_link("https://t.me/joinchat/abc") is None


def test_heuristic_fields_from_free_text() -> None:
    text = "#devops Вакансия DevOps в компании Acme, удаленно, 250000-300000 руб, пишите @recruiter1"

    result = extract_heuristic_fields(text, excluded_handles=EXCLUDED)

    assert result.company == "Acme"
    assert result.work_format == "Удалённо"
    assert result.contact == "@recruiter1"
    assert result.salary == "250000 - 300000 ₽"
    assert result.hashtags == ["#devops"]
    assert result.position is None


def test_heuristic_fields_prefer_labelled_lines() -> None:
    text = "\n".join(
        [
            "Компания: Example Labs",
            "Локация: Москва",
            "Формат: Гибрид",
            "Занятость: Полная",
        ]
    )

    result = extract_heuristic_fields(text)

    assert result.company == "Example Labs"
    assert result.location == "Москва"
    assert result.work_format == "Гибрид"
    assert result.employment == "Полная"
