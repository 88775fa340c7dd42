"""
RFC3339 Timestamp Parsing
=========================
The stream sends times like ``2016-12-20T05:55:35.676011610Z`` with
nanosecond precision. ``datetime`` stops at microseconds, so the parser keeps
the full sub-second part separately.

Usage:
    from oanda_stream.utils.timestamps import parse_rfc3339

    parsed = parse_rfc3339("2016-12-20T05:55:35.676011610Z")
    parsed.unix         # 1482213335
    parsed.nanosecond   # 676011610
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from oanda_stream.errors import TimeFormatError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

RFC3339_PATTERN = re.compile(
    r'^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})'
    r'(?:\.(\d+))?'
    r'(Z|[+-]\d{2}:\d{2})$'
)


@dataclass(frozen=True)
class ParsedTime:
    """A parsed timestamp: aware datetime plus the exact nanosecond part."""
    when: datetime
    nanosecond: int

    @property
    def unix(self) -> int:
        """Whole seconds since the epoch."""
        return (self.when - EPOCH) // timedelta(seconds=1)


def _parse_offset(text: str) -> timezone:
    if text == 'Z':
        return timezone.utc
    sign = -1 if text[0] == '-' else 1
    hours, minutes = int(text[1:3]), int(text[4:6])
    if hours > 23 or minutes > 59:
        raise ValueError(f"offset out of range: {text}")
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def parse_rfc3339(text: str) -> ParsedTime:
    """
    Parse RFC3339 text with optional fractional seconds.

    Fractions longer than nine digits are truncated to nanoseconds.

    Raises:
        TimeFormatError: text is empty, malformed, or out of range
    """
    match = RFC3339_PATTERN.match(text or '')
    if not match:
        raise TimeFormatError(f"Cannot parse {text!r} as RFC3339")

    year, month, day, hour, minute, second, fraction, offset = match.groups()
    nanosecond = int((fraction or '')[:9].ljust(9, '0'))

    try:
        when = datetime(
            int(year), int(month), int(day),
            int(hour), int(minute), int(second),
            nanosecond // 1000,
            tzinfo=_parse_offset(offset),
        )
    except ValueError as e:
        raise TimeFormatError(f"Cannot parse {text!r} as RFC3339: {e}") from e

    return ParsedTime(when=when, nanosecond=nanosecond)
