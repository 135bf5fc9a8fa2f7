from __future__ import annotations

import re

_PUBLISHER_LINE_RE = re.compile(r"публикатор[:\s]+([^\n]+)", re.IGNORECASE)
_CYRILLIC_RE = re.compile(r"[А-Яа-яЁё]")
_ALL_CAPS_WORD_RE = re.compile(r"^[A-ZА-ЯЁ0-9\-]+$")
_NON_LETTERS_RE = re.compile(r"[^\w]|[\d_]")

# Matched as whole words.
_ORG_TOKENS = frozenset(
    {
        "hr",
        "it",
        "dev",
        "llc",
        "ltd",
        "inc",
        "corp",
        "ооо",
        "ип",
        "зао",
        "оао",
        "team",
        "group",
        "bank",
        "labs",
    }
)
# Matched as substrings.
_ORG_FRAGMENTS = (
    "outstaff",
    "outsourc",
    "recruit",
    "agency",
    "studio",
    "digital",
    "solution",
    "systems",
    "partners",
    "consult",
    "soft",
    "tech",
    "company",
    "компания",
    "агентство",
    "студия",
    "банк",
    "группа",
)

LATIN_TO_RUSSIAN_NAMES = {
    "liz": "Елизавета",
    "liza": "Елизавета",
    "lizzy": "Елизавета",
    "elizabeth": "Елизавета",
    "elizaveta": "Елизавета",
    "lisa": "Елизавета",
    "beth": "Елизавета",
    "anna": "Анна",
    "ann": "Анна",
    "anne": "Анна",
    "annie": "Анна",
    "irina": "Ирина",
    "ira": "Ирина",
    "ekaterina": "Екатерина",
    "katherine": "Екатерина",
    "kate": "Екатерина",
    "katya": "Екатерина",
    "catherine": "Екатерина",
    "olga": "Ольга",
    "olya": "Ольга",
    "tatiana": "Татьяна",
    "tanya": "Татьяна",
    "natalia": "Наталия",
    "natalie": "Наталия",
    "natalya": "Наталья",
    "natasha": "Наталья",
    "victoria": "Виктория",
    "viktoria": "Виктория",
    "vicki": "Виктория",
    "vicky": "Виктория",
    "maria": "Мария",
    "mary": "Мария",
    "masha": "Мария",
    "elena": "Елена",
    "helen": "Елена",
    "lena": "Елена",
    "ksenia": "Ксения",
    "xenia": "Ксения",
    "ksusha": "Ксения",
    "ludmila": "Людмила",
    "lyudmila": "Людмила",
    "luda": "Людмила",
    "galina": "Галина",
    "galya": "Галина",
    "anastasia": "Анастасия",
    "anastasiya": "Анастасия",
    "stacey": "Анастасия",
    "stacy": "Анастасия",
    "nastya": "Анастасия",
    "julia": "Юлия",
    "yulia": "Юлия",
    "juliya": "Юлия",
    "ulia": "Юлия",
    "julie": "Юлия",
    "lyubov": "Любовь",
    "vitaliy": "Виталий",
    "vitaly": "Виталий",
    "vitali": "Виталий",
    "daniil": "Даниил",
    "daniel": "Даниил",
    "dan": "Даниил",
    "danil": "Данил",
    "ruslan": "Руслан",
    "michael": "Михаил",
    "mike": "Михаил",
    "mikhail": "Михаил",
    "alexander": "Александр",
    "alex": "Александр",
    "sasha": "Александр",
    "andrei": "Андрей",
    "andrey": "Андрей",
    "andrew": "Андрей",
    "nikita": "Никита",
    "nik": "Никита",
    "ivan": "Иван",
    "john": "Иван",
    "konstantin": "Константин",
    "kostya": "Константин",
    "pavel": "Павел",
    "paul": "Павел",
    "roman": "Роман",
    "egor": "Егор",
    "george": "Георгий",
    "georgy": "Георгий",
    "oleg": "Олег",
    "ilya": "Илья",
    "kiril": "Кирилл",
    "kirill": "Кирилл",
    "cyril": "Кирилл",
    "anton": "Антон",
    "tony": "Антон",
}


def extract_publisher_display_name(text: str) -> str | None:
    """Human-readable name from a "Публикатор: ..." line, minus handles and links."""
    match = _PUBLISHER_LINE_RE.search(text)
    if not match:
        return None
    name = re.sub(r"https?://\S+", "", match.group(1))
    name = re.sub(r"@\w+", "", name)
    name = re.sub(r"[|;]+", " ", name)
    name = re.sub(r"\s{2,}", " ", name).strip()
    if len(name) < 2 or len(name) > 60:
        return None
    if is_likely_company_name(name):
        return None
    return name


def is_likely_company_name(name: str) -> bool:
    stripped = name.strip()
    lowered = stripped.lower()
    words = stripped.split()
    tokens = set(re.findall(r"\w+", lowered))
    if tokens & _ORG_TOKENS:
        return True
    if any(fragment in lowered for fragment in _ORG_FRAGMENTS):
        return True
    if any(char.isdigit() for char in stripped):
        return True
    if len(words) > 4:
        return True
    return any(len(word) > 2 and _ALL_CAPS_WORD_RE.match(word) for word in words)


def normalize_first_name(name: str | None) -> str | None:
    """First token of a display name in its Russian form, title-cased."""
    if not name:
        return None
    parts = name.split()
    if not parts:
        return None
    first = parts[0]
    if "@" in first or "#" in first:
        return None
    cleaned = _NON_LETTERS_RE.sub("", first)
    if not cleaned:
        return None
    if _CYRILLIC_RE.search(cleaned):
        return cleaned[:1].upper() + cleaned[1:].lower()
    mapped = LATIN_TO_RUSSIAN_NAMES.get(cleaned.lower())
    if mapped:
        return mapped
    return cleaned[:1].upper() + cleaned[1:].lower()
