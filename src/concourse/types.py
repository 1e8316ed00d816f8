"""
Value types for the Concourse driver.

Concourse stores a few kinds of values that have no direct Python
equivalent (links between records, tags). Timestamps travel as integer
microseconds since the Unix epoch.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True)
class Link:
    """
    A value that points at another record.

    Attributes:
        record: The id of the record being linked to
    """

    record: int

    def __str__(self) -> str:
        return f"@{self.record}@"

    @classmethod
    def to(cls, record: int) -> "Link":
        """Create a link to ``record``."""
        return cls(record=record)

    @classmethod
    def parse(cls, value: str) -> "Link":
        """Parse the ``@<record>@`` string form of a link."""
        if len(value) > 2 and value.startswith("@") and value.endswith("@"):
            return cls(record=int(value[1:-1]))
        raise ValueError(f"Invalid link format: {value}")


@dataclass(frozen=True)
class Tag:
    """A string value that is stored but not full-text indexed."""

    value: str

    def __str__(self) -> str:
        return self.value

    @classmethod
    def create(cls, value: Any) -> "Tag":
        """Create a tag from any value's string form."""
        return cls(value=str(value))


def datetime_to_micros(value: datetime) -> int:
    """Convert a datetime to microseconds since the Unix epoch.

    Naive datetimes are treated as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    delta = value - datetime(1970, 1, 1, tzinfo=UTC)
    return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds


def micros_to_datetime(value: int) -> datetime:
    """Convert microseconds since the Unix epoch to an aware UTC datetime."""
    seconds, micros = divmod(value, 1_000_000)
    return datetime.fromtimestamp(seconds, tz=UTC).replace(microsecond=micros)


def normalize_timestamp(value: Any) -> Any:
    """
    Normalize a caller-supplied timestamp.

    Datetimes become integer microseconds; integers and string phrases
    (resolved by the server) pass through unchanged.
    """
    if isinstance(value, datetime):
        return datetime_to_micros(value)
    return value


def parse_audit(data: Any) -> dict[int, str]:
    """
    Parse an audit result into ``{timestamp: description}``.

    JSON encodes map keys as strings, so numeric keys are restored here.
    """
    if not isinstance(data, dict):
        return {}
    return {int(k): str(v) for k, v in data.items()}


__all__ = [
    "Link",
    "Tag",
    "datetime_to_micros",
    "micros_to_datetime",
    "normalize_timestamp",
    "parse_audit",
]
