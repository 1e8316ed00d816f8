"""
Argument resolution for Concourse operations.

Every operation accepts its parameters positionally, as keyword options,
or as a mapping passed as the only leading positional argument. Keyed
options win over positional arguments, and several option names have
aliases (``time``/``ts`` for ``timestamp`` and so on).

``None`` always means "not supplied"; ``0``, ``False`` and ``""`` are
legitimate values.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, NoReturn

from .exceptions import InvalidArgumentError
from .types import normalize_timestamp

ALIASES: dict[str, tuple[str, ...]] = {
    "timestamp": ("timestamp", "time", "ts"),
    "username": ("username", "user", "uname"),
    "password": ("password", "pass", "pword"),
    "prefs": ("prefs", "file", "filename", "config", "path"),
    "criteria": ("criteria", "ccl", "where", "query"),
    "keys": ("keys", "key"),
    "records": ("records", "record"),
    "start": ("start", "timestamp", "time", "ts"),
    "phrase": ("phrase", "timestamp", "time"),
}


def find_in_kwargs_by_alias(name: str, options: Mapping[str, Any] | None) -> Any:
    """
    Return the first supplied value among the aliases of ``name``.

    Names without registered aliases are looked up as-is.
    """
    if not options:
        return None
    for alias in ALIASES.get(name, (name,)):
        value = options.get(alias)
        if value is not None:
            return value
    return None


def pick(options: Mapping[str, Any] | None, name: str, positional: Any = None, default: Any = None) -> Any:
    """Resolve one parameter: keyed option > positional > default."""
    value = find_in_kwargs_by_alias(name, options)
    if value is not None:
        return value
    if positional is not None:
        return positional
    return default


def extract_options(first: Any, kwargs: Mapping[str, Any]) -> tuple[Any, dict[str, Any]]:
    """
    Separate an options mapping from the first positional argument.

    A mapping passed as the first positional argument is treated as the
    keyed options bag, and the positional slot is left empty; explicit
    keyword arguments are merged over it.
    """
    if isinstance(first, Mapping):
        return None, {**first, **kwargs}
    return first, dict(kwargs)


def is_collection(value: Any) -> bool:
    """Check for a list-like argument (strings and mappings excluded)."""
    return isinstance(value, (list, tuple, set, frozenset))


def is_record(value: Any) -> bool:
    """Check for a single record id."""
    return isinstance(value, int) and not isinstance(value, bool)


def is_record_target(value: Any) -> bool:
    """Check for a record id or a non-empty collection of record ids."""
    if is_record(value):
        return True
    return is_collection(value) and len(value) > 0 and all(is_record(v) for v in value)


def is_string_timestamp(value: Any) -> bool:
    """Check for a timestamp phrase that the server must parse."""
    return isinstance(value, str)


def as_timestamp(value: Any) -> Any:
    """Validate and normalize a resolved timestamp argument."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return normalize_timestamp(value)
    if is_record(value):
        return value
    raise InvalidArgumentError(f"Unsupported timestamp type: {type(value).__name__}")


def as_records(value: Any) -> Any:
    """Validate a resolved record or record collection."""
    if value is None or is_record(value):
        return value
    if is_collection(value):
        records = list(value)
        if not all(is_record(r) for r in records):
            raise InvalidArgumentError("Records must be integers")
        return records
    raise InvalidArgumentError(f"Unsupported record type: {type(value).__name__}")


def as_keys(value: Any) -> Any:
    """Validate a resolved key or key collection."""
    if value is None or isinstance(value, str):
        return value
    if is_collection(value):
        keys = list(value)
        if not all(isinstance(k, str) for k in keys):
            raise InvalidArgumentError("Keys must be strings")
        return keys
    raise InvalidArgumentError(f"Unsupported key type: {type(value).__name__}")


def require_arg(description: str, operation: str | None = None) -> NoReturn:
    """Fail a call whose arguments are missing ``description``."""
    prefix = f"{operation}: " if operation else ""
    raise InvalidArgumentError(f"{prefix}Must specify {description}", operation=operation)
