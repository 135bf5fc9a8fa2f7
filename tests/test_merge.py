from vacancy_outreach.services.fields import DEFAULT_POSITION, ExtractionResult, merge_extraction, resolve_contact

EXCLUDED = frozenset({"@devops_jobs"})


def test_ai_values_win_and_missing_ai_values_fall_back_to_heuristics() -> None:
    heuristic = ExtractionResult(company="Acme")
    ai = ExtractionResult(company=None, position="SRE")

    merged = merge_extraction(heuristic, ai)

    assert merged.company == "Acme"
    assert merged.position == "SRE"
    assert merged.provenance["company"] == "heuristic"
    assert merged.provenance["position"] == "ai"


def test_ai_stack_falls_back_to_heuristic_stack() -> None:
    heuristic = ExtractionResult(stack=["docker", "helm"], salary="200000 - 300000 ₽")
    ai = ExtractionResult(position="DevOps Engineer", salary="от 250к", tasks=["CI/CD"])

    merged = merge_extraction(heuristic, ai)

    assert merged.stack == ["docker", "helm"]
    assert merged.salary == "от 250к"
    assert merged.tasks == ["CI/CD"]


def test_missing_ai_result_uses_heuristics_with_default_position() -> None:
    heuristic = ExtractionResult(company="Acme", work_format="Удалённо", contact="@recruiter1", tasks=["ignored"])

    merged = merge_extraction(heuristic, None)

    assert merged.position == DEFAULT_POSITION
    assert merged.company == "Acme"
    assert merged.work_format == "Удалённо"
    assert merged.tasks == []
    assert merged.summary is None
    assert merged.contact == "@recruiter1"
    assert merged.provenance["position"] == "default"


def test_contact_prefers_author_hint_then_ai_then_heuristic() -> None:
    heuristic = ExtractionResult(contact="@from_text")
    ai = ExtractionResult(contact="@from_ai")

    assert merge_extraction(heuristic, ai, author_hint="@publisher").contact == "@publisher"
    assert merge_extraction(heuristic, ai).contact == "@from_ai"
    assert merge_extraction(heuristic, ExtractionResult()).contact == "@from_text"


def test_excluded_author_hint_is_skipped() -> None:
    value, source = resolve_contact(
        author_hint="@DevOps_Jobs",
        ai_contact=None,
        heuristic_contact="@recruiter",
        excluded_handles=EXCLUDED,
    )

    assert (value, source) == ("@recruiter", "heuristic")


def test_provenance_is_not_part_of_record_fields() -> None:
    merged = merge_extraction(ExtractionResult(company="Acme"), None)

    record = merged.as_record_fields()

    assert "provenance" not in record
    assert record["company"] == "Acme"
    assert record["position"] == DEFAULT_POSITION
