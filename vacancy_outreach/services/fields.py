from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Literal

FieldSource = Literal["ai", "heuristic", "hint", "default"]

DEFAULT_POSITION = "DevOps"
AI_PRIMARY_FIELDS = ("position", "stack", "tasks", "summary")
OVERLAPPING_FIELDS = ("company", "salary", "location", "work_format", "employment", "hashtags")


@dataclass(slots=True)
class ExtractionResult:
    position: str | None = None
    company: str | None = None
    salary: str | None = None
    location: str | None = None
    work_format: str | None = None
    employment: str | None = None
    contact: str | None = None
    hashtags: list[str] = field(default_factory=list)
    stack: list[str] = field(default_factory=list)
    tasks: list[str] = field(default_factory=list)
    summary: str | None = None
    provenance: dict[str, FieldSource] = field(default_factory=dict, compare=False, repr=False)

    def as_record_fields(self) -> dict[str, object]:
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if item.name != "provenance"
        }


def merge_extraction(
    heuristic: ExtractionResult,
    ai: ExtractionResult | None,
    *,
    author_hint: str | None = None,
    excluded_handles: frozenset[str] = frozenset(),
) -> ExtractionResult:
    """Combine AI fields over the heuristic floor.

    AI owns position/stack/tasks/summary. For the remaining fields a present AI
    value wins and a missing one is filled from the heuristic result.
    """
    if ai is None:
        merged = replace(heuristic, tasks=[], summary=None, provenance={})
        for name in OVERLAPPING_FIELDS + ("stack",):
            if _present(getattr(merged, name)):
                merged.provenance[name] = "heuristic"
        merged.position = DEFAULT_POSITION
        merged.provenance["position"] = "default"
    else:
        merged = ExtractionResult(provenance={})
        for name in AI_PRIMARY_FIELDS:
            value = getattr(ai, name)
            setattr(merged, name, value)
            if _present(value):
                merged.provenance[name] = "ai"
        if not merged.position:
            merged.position = DEFAULT_POSITION
            merged.provenance["position"] = "default"
        if not merged.stack and heuristic.stack:
            merged.stack = list(heuristic.stack)
            merged.provenance["stack"] = "heuristic"
        for name in OVERLAPPING_FIELDS:
            ai_value = getattr(ai, name)
            if _present(ai_value):
                setattr(merged, name, ai_value)
                merged.provenance[name] = "ai"
            else:
                heuristic_value = getattr(heuristic, name)
                setattr(merged, name, heuristic_value)
                if _present(heuristic_value):
                    merged.provenance[name] = "heuristic"

    merged.contact, contact_source = resolve_contact(
        author_hint=author_hint,
        ai_contact=ai.contact if ai is not None else None,
        heuristic_contact=heuristic.contact,
        excluded_handles=excluded_handles,
    )
    if contact_source is not None:
        merged.provenance["contact"] = contact_source
    return merged


def resolve_contact(
    *,
    author_hint: str | None,
    ai_contact: str | None,
    heuristic_contact: str | None,
    excluded_handles: frozenset[str],
) -> tuple[str | None, FieldSource | None]:
    candidates: tuple[tuple[str | None, FieldSource], ...] = (
        (author_hint, "hint"),
        (ai_contact, "ai"),
        (heuristic_contact, "heuristic"),
    )
    for value, source in candidates:
        if not value:
            continue
        normalized = value.strip()
        if normalized.lower() in excluded_handles:
            continue
        return normalized, source
    return None, None


def _present(value: object) -> bool:
    if isinstance(value, list):
        return bool(value)
    return value is not None and value != ""
