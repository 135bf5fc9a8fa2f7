from __future__ import annotations

import re
import textwrap

from vacancy_outreach.schemas.posts import ChannelPost
from vacancy_outreach.services.fields import ExtractionResult

KEY_WIDTH = 11
CONTENT_WIDTH = 70

_BORDER_TOP = "┌──────────── TELEGRAM MATCH ────────────┐"
_BORDER_MID = "├────────────────────────────────────────┤"
_BORDER_BOTTOM = "└────────────────────────────────────────┘"
_INLINE_WHITESPACE_RE = re.compile(r"[\t\r\f\v]+")


def wrap_for_box(text: str, width: int = CONTENT_WIDTH) -> list[str]:
    lines: list[str] = []
    for raw_line in text.split("\n"):
        stripped = raw_line.strip()
        if not stripped:
            lines.append("")
            continue
        lines.extend(textwrap.wrap(stripped, width=width, break_long_words=False, break_on_hyphens=False))
    return lines or [""]


def format_row(key: str, value: str | None) -> list[str]:
    wrapped = wrap_for_box(value or "—")
    rows = [f"│ {key.ljust(KEY_WIDTH)}: {wrapped[0]}"]
    rows.extend(f"│ {' ' * KEY_WIDTH}  {line}" for line in wrapped[1:])
    return rows


def render_match_box(post: ChannelPost, fields: ExtractionResult) -> str:
    preview = _INLINE_WHITESPACE_RE.sub(" ", post.raw_text)
    preview = re.sub(r"\s+\n", "\n", preview).strip()

    lines = [
        _BORDER_TOP,
        *format_row("Channel", post.channel_ref),
        *format_row("MessageId", str(post.post_id)),
        *format_row("Timestamp", post.published_at.isoformat()),
        *format_row("Length", str(len(post.raw_text))),
        _BORDER_MID,
    ]
    for key, value in (
        ("Salary", fields.salary),
        ("Location", fields.location),
        ("Format", fields.work_format),
        ("Employment", fields.employment),
        ("Company", fields.company),
        ("Contact", fields.contact),
    ):
        if value:
            lines.extend(format_row(key, value))
    if fields.hashtags:
        lines.extend(format_row("Hashtags", " ".join(fields.hashtags)))
    lines.append(_BORDER_MID)
    lines.extend(format_row("Preview", preview))
    lines.append(_BORDER_BOTTOM)
    return "\n".join(lines)
