"""Shared conversions between local values and remote wire values.

All functions here are pure. Parsers raise TranslationError for a single
malformed field so the record converters can decide to default or skip.
"""

import enum
import logging
import re
from collections.abc import Callable, Mapping
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Generic, TypeVar
from urllib.parse import urlencode

from moments_sync.errors import TranslationError
from moments_sync.utils import as_utc

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=enum.Enum)
T = TypeVar("T")

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}(:\d{2}(\.\d{1,6})?)?$")

CENTS = Decimal("0.01")


class EnumTable(Generic[E]):
    """Explicit two-way mapping between a local enum and remote strings."""

    def __init__(self, name: str, mapping: Mapping[E, str], default: E):
        missing = [member for member in type(default) if member not in mapping]
        if missing:
            raise ValueError(f"{name} table is missing {missing}")
        self.name = name
        self.default = default
        self._to_remote = dict(mapping)
        self._from_remote = {remote: local for local, remote in mapping.items()}

    def to_remote(self, value: E) -> str:
        return self._to_remote[value]

    def from_remote(self, value: str | None) -> E:
        """Map a remote string, falling back to the default when unknown."""
        if value in self._from_remote:
            return self._from_remote[value]
        logger.warning(
            f"Unknown remote {self.name} {value!r}, using {self.default.name.lower()}"
        )
        return self.default

    @property
    def remote_values(self) -> list[str]:
        return list(self._from_remote)


# Dates and times


def format_date(value: date) -> str:
    """Calendar date as YYYY-MM-DD, no time of day, no offset."""
    return value.isoformat()


def parse_date(value: str | None, field: str = "date") -> date:
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise TranslationError(field, value, "expected YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise TranslationError(field, value, str(e)) from None


def format_time(value: time) -> str:
    return value.strftime("%H:%M:%S")


def parse_time(value: str | None, field: str = "time") -> time:
    if not isinstance(value, str) or not _TIME_RE.match(value):
        raise TranslationError(field, value, "expected HH:MM:SS")
    try:
        return time.fromisoformat(value)
    except ValueError as e:
        raise TranslationError(field, value, str(e)) from None


def format_timestamp(value: datetime) -> str:
    """Full ISO-8601 instant in UTC."""
    return as_utc(value).isoformat()


def parse_timestamp(value: str | None, field: str = "timestamp") -> datetime:
    if not isinstance(value, str) or not value:
        raise TranslationError(field, value, "expected ISO-8601 timestamp")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise TranslationError(field, value, str(e)) from None
    return as_utc(parsed)


def parse_or_default(
    parser: Callable[[str | None, str], T],
    value: str | None,
    field: str,
    default: T | None = None,
) -> T | None:
    """Parse an optional field; None stays None, malformed values default."""
    if value is None:
        return default
    try:
        return parser(value, field)
    except TranslationError as e:
        logger.warning(f"{e}; using {default!r}")
        return default


# Money


def to_minor_units(amount: Decimal | int | float) -> int:
    """Major currency amount to integer minor units (cents), half-up."""
    if isinstance(amount, float):
        amount = Decimal(str(amount))
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENTS)


# Share links


def build_share_url(base_url: str, token: str) -> str:
    return f"{base_url}?{urlencode({'token': token})}"


def parse_updated_at(value: str | None) -> datetime | None:
    """Remote modification instant, or None when absent or unreadable."""
    return parse_or_default(parse_timestamp, value, "updated_at")
