"""Relative age parsing for listing timestamps.

The listing shows ages such as "5 minutes ago" or "2 days ago". These are
converted into absolute instants measured back from a reference instant so
that two records can be compared.

Unrecognized wording resolves to the reference instant itself ("assume most
recent"). Two records with unrecognized ages therefore compare equal, and
such pairs never count as ordering violations.
"""

import re
from datetime import datetime, timedelta

# Matched in order; the first pattern that matches wins.
_AGE_PATTERNS: tuple[tuple[re.Pattern[str], timedelta], ...] = (
    (re.compile(r"([0-9]+)\s*minutes?\s*ago"), timedelta(minutes=1)),
    (re.compile(r"([0-9]+)\s*hours?\s*ago"), timedelta(hours=1)),
    (re.compile(r"([0-9]+)\s*days?\s*ago"), timedelta(days=1)),
)


def normalize_age(raw_time: str | None, reference: datetime) -> datetime | None:
    """Convert a relative age string into an absolute instant.

    Args:
        raw_time: Age text as displayed by the source, e.g. "3 hours ago".
        reference: Instant the age is measured back from.

    Returns:
        ``reference - value * unit`` for a recognized age, ``reference`` for
        any other non-empty text (whitespace included), or None when the
        text is empty.
    """
    if not raw_time:
        return None

    text = raw_time.lower().strip()

    for pattern, unit in _AGE_PATTERNS:
        match = pattern.search(text)
        if match:
            try:
                return reference - int(match.group(1)) * unit
            except (OverflowError, ValueError):
                # Age beyond the datetime range: clamp to the oldest instant.
                return datetime.min.replace(tzinfo=reference.tzinfo)

    return reference
