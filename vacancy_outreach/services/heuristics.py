from __future__ import annotations

import re
from urllib.parse import urlparse

from vacancy_outreach.services.fields import ExtractionResult

STACK_LIMIT = 4
STACK_VOCABULARY = (
    "k8s",
    "kubernetes",
    "helm",
    "terraform",
    "ansible",
    "docker",
    "podman",
    "argo",
    "argocd",
    "gitlab ci",
    "github actions",
    "jenkins",
    "prometheus",
    "loki",
    "grafana",
    "elk",
    "efk",
    "istio",
    "linkerd",
    "vault",
    "consul",
    "nginx",
    "haproxy",
    "aws",
    "gcp",
    "azure",
    "yandex",
    "gke",
    "eks",
    "aks",
    "postgres",
    "mysql",
    "redis",
)

_AMOUNT = r"\d{1,6}(?:[ \u00a0]?\d{3})*"
_SALARY_LABEL = r"(?:зп|зарплат|вилка|оплата|salary|оклад)"
_CURRENCY = r"(₽|руб|р\.|usd|\$|eur|€)"
_SALARY_RANGE_PATTERNS = (
    re.compile(rf"{_SALARY_LABEL}.*?(?:от\s+)?({_AMOUNT})\s*(?:до|–|-)\s*({_AMOUNT})\s*{_CURRENCY}", re.IGNORECASE),
    re.compile(rf"(?<![\d])({_AMOUNT})\s*(?:–|-|до)\s*({_AMOUNT})\s*(₽|руб|р\.)", re.IGNORECASE),
)
_SALARY_SINGLE_PATTERNS = (
    re.compile(rf"{_SALARY_LABEL}.*?(?:от\s+)?{_AMOUNT}\s*(?:₽|руб|р\.|usd|\$|eur|€)", re.IGNORECASE),
    re.compile(rf"\$\s?{_AMOUNT}(?:\s?-\s?{_AMOUNT})?", re.IGNORECASE),
    re.compile(rf"{_AMOUNT}(?:\s?-\s?{_AMOUNT})?\s?\$", re.IGNORECASE),
    re.compile(rf"{_AMOUNT}(?:\s?-\s?{_AMOUNT})?\s?(?:usd|eur|€|₾)", re.IGNORECASE),
    re.compile(rf"{_AMOUNT}\s?\$?\s?/\s?месяц", re.IGNORECASE),
)
_CURRENCY_SYMBOLS = {
    "₽": "₽",
    "руб": "₽",
    "р.": "₽",
    "usd": "$",
    "$": "$",
    "eur": "€",
    "€": "€",
}

_LOCATION_LABEL_RE = re.compile(r"^(?:локация|location|город|city|место|place):\s*(.+)", re.IGNORECASE)
_LOCATION_INLINE_RE = re.compile(r"(?:локация|location|город|city)[:\s]+([^\n]+)", re.IGNORECASE)
_FORMAT_LABEL_RE = re.compile(r"^(?:формат|format|тип\s+работы):\s*(.+)", re.IGNORECASE)
_EMPLOYMENT_LABEL_RE = re.compile(r"^(?:занятость|employment|тип\s+занятости):\s*(.+)", re.IGNORECASE)
_COMPANY_LABEL_RE = re.compile(r"^(?:компания|company|организация):\s*(.+)", re.IGNORECASE)
_COMPANY_INLINE_RE = re.compile(
    r"(?i:\bв\s+компани[июя]|\bat\s+company)\s+[«\"“]?"
    r"([A-ZА-ЯЁ0-9][\w&+.\-]*(?:[ ][A-ZА-ЯЁ][\w&+.\-]*){0,2})"
)

_CONTACT_PATTERNS = (
    re.compile(r"telegram[:\s]+@(\w+)", re.IGNORECASE),
    re.compile(r"(?:contact|write\s+to)[:\s]+@(\w+)", re.IGNORECASE),
    re.compile(r"(?:пишите|писать|пиши|написать)[:\s]+@(\w+)", re.IGNORECASE),
    re.compile(r"контакт(?:ы)?[:\s]+@(\w+)", re.IGNORECASE),
    re.compile(r"(?:для\s+связи|обращаться)[:\s]+@(\w+)", re.IGNORECASE),
)
_PUBLISHER_LINE_RE = re.compile(r"публикатор[:\s]+([^\n]+)", re.IGNORECASE)
_MENTION_RE = re.compile(r"(?<![\w.@])@([A-Za-z0-9_]{2,32})")
_LINK_RE = re.compile(r"https?://\S+", re.IGNORECASE)
_TME_RE = re.compile(r"https?://t\.me/(?:joinchat/|c/)?([A-Za-z0-9_]+)", re.IGNORECASE)
_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_HASHTAG_RE = re.compile(r"#\w+")
_TELEGRAM_HOSTS = {"t.me", "telegram.me"}
_HANDLE_RE = re.compile(r"^[A-Za-z0-9_]+$")

_STACK_PATTERNS = tuple(
    (
        term,
        re.compile(
            r"(?:^|[^a-zA-Z])" + r"\s+".join(re.escape(part) for part in term.split()) + r"(?=$|[^a-zA-Z])",
            re.IGNORECASE,
        ),
    )
    for term in STACK_VOCABULARY
)


def extract_heuristic_fields(text: str, *, excluded_handles: frozenset[str] = frozenset()) -> ExtractionResult:
    lines = [line.strip() for line in re.split(r"\n+", text) if line.strip()]
    lowered = text.lower()
    return ExtractionResult(
        salary=extract_salary(text),
        location=_extract_location(lines, text),
        work_format=_extract_work_format(lines, lowered),
        employment=_extract_employment(lines, lowered),
        company=_extract_company(lines, text),
        contact=extract_contact(text, excluded_handles=excluded_handles),
        hashtags=extract_hashtags(text),
        stack=extract_stack(text),
    )


def extract_salary(text: str) -> str | None:
    for pattern in _SALARY_RANGE_PATTERNS:
        match = pattern.search(text)
        if match:
            low = _compact_amount(match.group(1))
            high = _compact_amount(match.group(2))
            symbol = _CURRENCY_SYMBOLS.get(match.group(3).lower(), match.group(3))
            return f"{low} - {high} {symbol}"
    for pattern in _SALARY_SINGLE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0).strip()
    return None


def extract_hashtags(text: str) -> list[str]:
    seen: set[str] = set()
    hashtags: list[str] = []
    for tag in _HASHTAG_RE.findall(text):
        key = tag.lower()
        if key in seen:
            continue
        seen.add(key)
        hashtags.append(tag)
    return hashtags


def extract_stack(text: str) -> list[str]:
    found = [term for term, pattern in _STACK_PATTERNS if pattern.search(text)]
    return found[:STACK_LIMIT]


def extract_mentions(text: str, *, excluded_handles: frozenset[str] = frozenset()) -> list[str]:
    mentions: list[str] = []
    for name in _MENTION_RE.findall(text):
        handle = f"@{name}".lower()
        if handle in excluded_handles or handle in mentions:
            continue
        mentions.append(handle)
    return mentions


def extract_links(text: str) -> list[str]:
    links: list[str] = []
    for link in _LINK_RE.findall(text):
        if link not in links:
            links.append(link)
    return links


def telegram_handle_from_link(link: str) -> str | None:
    try:
        parsed = urlparse(link)
    except ValueError:
        return None
    if (parsed.hostname or "").lower() not in _TELEGRAM_HOSTS:
        return None
    username = parsed.path.strip("/")
    if not username or not _HANDLE_RE.match(username):
        return None
    return f"@{username}".lower()


def extract_contact(text: str, *, excluded_handles: frozenset[str] = frozenset()) -> str | None:
    """Pick one recruiter contact from free text.

    Order: explicit "write to @x" phrasing, a handle on the publisher line,
    the first non-channel mention, a t.me link, then an email address.
    """
    for pattern in _CONTACT_PATTERNS:
        match = pattern.search(text)
        if match and f"@{match.group(1)}".lower() not in excluded_handles:
            return f"@{match.group(1)}"

    publisher_line = _PUBLISHER_LINE_RE.search(text)
    if publisher_line:
        for handle in extract_mentions(publisher_line.group(1), excluded_handles=excluded_handles):
            return handle

    mentions = extract_mentions(text, excluded_handles=excluded_handles)
    if mentions:
        return mentions[0]

    for match in _TME_RE.finditer(text):
        handle = f"@{match.group(1)}"
        if handle.lower() not in excluded_handles:
            return handle

    email = _EMAIL_RE.search(text)
    if email:
        return email.group(0)
    return None


def _extract_location(lines: list[str], text: str) -> str | None:
    labelled = _labelled_value(lines, _LOCATION_LABEL_RE)
    if labelled:
        return labelled
    match = _LOCATION_INLINE_RE.search(text)
    if match:
        return match.group(1).strip() or None
    return None


def _extract_work_format(lines: list[str], lowered: str) -> str | None:
    labelled = _labelled_value(lines, _FORMAT_LABEL_RE)
    if labelled:
        return labelled
    if "удален" in lowered or "удалён" in lowered or "remote" in lowered:
        return "Удалённо"
    if "офис" in lowered or "on-site" in lowered:
        return "Офис"
    if "гибрид" in lowered or "hybrid" in lowered:
        return "Гибрид"
    return None


def _extract_employment(lines: list[str], lowered: str) -> str | None:
    labelled = _labelled_value(lines, _EMPLOYMENT_LABEL_RE)
    if labelled:
        return labelled
    if any(token in lowered for token in ("полная", "full-time", "fulltime")):
        return "Полная"
    if any(token in lowered for token in ("частичная", "part-time", "parttime")):
        return "Частичная"
    if "проектн" in lowered or "project-based" in lowered:
        return "Проектная"
    return None


def _extract_company(lines: list[str], text: str) -> str | None:
    labelled = _labelled_value(lines, _COMPANY_LABEL_RE)
    if labelled:
        return labelled
    match = _COMPANY_INLINE_RE.search(text)
    if match:
        return match.group(1).rstrip(".-") or None
    return None


def _labelled_value(lines: list[str], pattern: re.Pattern[str]) -> str | None:
    for line in lines:
        match = pattern.match(line)
        if match:
            value = match.group(1).strip()
            if value:
                return value
    return None


def _compact_amount(raw: str) -> str:
    return re.sub(r"\s", "", raw)
