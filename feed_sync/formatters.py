from __future__ import annotations

from datetime import datetime

from .types import parse_timestamp


_ACRONYMS = {"ai": "AI", "cot": "CoT", "ml": "ML"}


def format_date(value: str | datetime | None) -> str:
    """Render a timestamp as e.g. "March 5, 2025"; missing values read "Date unknown"."""
    if not value:
        return "Date unknown"
    parsed = value if isinstance(value, datetime) else parse_timestamp(value)
    if parsed is None:
        return "Date unknown"
    return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"


def format_tag_for_display(tag: str | None) -> str:
    """Capitalize each word of a tag, normalizing the AI, CoT and ML acronyms.

    The rest of each word keeps its casing so existing acronyms survive.
    """
    if not tag:
        return ""
    words = []
    for word in tag.split(" "):
        acronym = _ACRONYMS.get(word.lower())
        if acronym:
            words.append(acronym)
        else:
            words.append(word[:1].upper() + word[1:])
    return " ".join(words)
