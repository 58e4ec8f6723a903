from __future__ import annotations

import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")


def normalize_name(value: str | None) -> str:
    """Lower-case, strip diacritics and collapse whitespace.

    >>> normalize_name("  José  Álvares ")
    'jose alvares'
    """
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", value.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped).strip()


def name_tokens(value: str | None, *, min_length: int = 2) -> list[str]:
    return [token for token in normalize_name(value).split(" ") if len(token) >= min_length]


def digits_only(value: str | None) -> str:
    return "".join(filter(str.isdigit, value or ""))
