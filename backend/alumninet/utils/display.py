from __future__ import annotations

from typing import Iterable

from alumninet.core.choices import MODERATION_LABELS


def display_name(name: str | None, email: str | None, fallback: str = "User") -> str:
    return (name or "").strip() or (email or "").strip() or fallback


def greeting_name(name: str | None, email: str | None) -> str:
    if name and name.strip():
        return name.strip()
    if email:
        return email.split("@", 1)[0]
    return "there"


def initials(name: str | None, email: str | None = None) -> str:
    source = ((name or "").strip() or (email or "").strip() or "U")
    parts = source.split()
    if len(parts) >= 2:
        chars = parts[0][0] + parts[1][0]
    else:
        chars = source[:2]
    return chars.upper()


def year_suffix(year: int | None) -> str:
    if not year:
        return ""
    return "’" + str(year)[-2:]


def join_present(values: Iterable[str | None], sep: str = " • ", empty: str = "—") -> str:
    joined = sep.join(value for value in values if value)
    return joined or empty


def moderation_label(status: str | None) -> str:
    return MODERATION_LABELS.get(status or "", "")
