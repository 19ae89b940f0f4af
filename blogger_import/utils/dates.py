from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as dateutil_parser


def parse_timestamp(value: Optional[str]) -> datetime:
    """Parse a Blogger timestamp into an aware UTC ``datetime``.

    Blogger writes ``2011-03-04T10:15:00.001-08:00`` but older exports also
    carry ``Z`` suffixes, no fraction, or no offset at all. Values without an
    offset are taken as UTC.

    Raises:
        ValueError: If ``value`` is empty or cannot be parsed.
    """
    text = (value or "").strip()
    if not text:
        raise ValueError("empty timestamp")
    try:
        parsed = dateutil_parser.isoparse(text)
    except ValueError:
        try:
            parsed = dateutil_parser.parse(text)
        except (ValueError, OverflowError, dateutil_parser.ParserError) as e:
            raise ValueError(f"unparseable timestamp {text!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
