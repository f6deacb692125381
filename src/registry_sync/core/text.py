from __future__ import annotations

import re

_whitespace_re = re.compile(r"\s+")


def normalize_whitespace(value: str) -> str:
    return _whitespace_re.sub(" ", value).strip()


def full_name(first_name: str, last_name: str, *, fallback: str = "") -> str:
    """Join provider first/last names into a display name."""

    name = normalize_whitespace(f"{first_name} {last_name}")
    return name or normalize_whitespace(fallback)


def token_symbol(name: str) -> str:
    """Short symbolic code for a player name.

    First initial plus the first three letters of the surname, uppercased
    ("Kylian Mbappe" -> "KMBA"). A single-word name uses its first four
    characters.
    """

    parts = normalize_whitespace(name).split(" ")
    if len(parts) >= 2:
        return (parts[0][:1] + parts[-1][:3]).upper()
    return parts[0][:4].upper()


def token_name(name: str, collection_name: str, period: int) -> str:
    return f"{normalize_whitespace(name)} ({collection_name} {period})"
