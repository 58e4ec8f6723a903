from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC "now", the representation stored in every timestamp column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: object) -> datetime | None:
    """Parse a provider ISO-8601 timestamp into naive UTC.

    Values without an offset are assumed to be UTC already. Anything that
    cannot be parsed yields ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
