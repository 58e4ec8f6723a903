from contractsync.utils.concurrency import Outcome, bounded_map
from contractsync.utils.dates import parse_timestamp, utcnow
from contractsync.utils.text import digits_only, name_tokens, normalize_name

__all__ = [
    "Outcome",
    "bounded_map",
    "digits_only",
    "name_tokens",
    "normalize_name",
    "parse_timestamp",
    "utcnow",
]
