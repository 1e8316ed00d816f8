"""
Client preferences and connection settings.

A preferences file holds ``key = value`` lines (``host``, ``port``,
``username``, ``password``, ``environment``). Settings from a preferences
file override keyed options, which override positional arguments, which
override the defaults.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, ValidationError

from .exceptions import ConfigurationError
from .resolver import find_in_kwargs_by_alias

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 1717
DEFAULT_USERNAME = "admin"
DEFAULT_PASSWORD = "admin"
DEFAULT_ENVIRONMENT = ""


def expand_path(path: str | os.PathLike[str]) -> Path:
    """Expand ``~`` and environment variables in a path."""
    return Path(os.path.expandvars(os.path.expanduser(os.fspath(path))))


class ClientPreferences(BaseModel):
    """
    Connection settings read from a preferences file.

    Every field is optional; absent fields fall through to the next source.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    environment: str | None = None

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> ClientPreferences:
        """
        Load preferences from a file.

        Raises:
            ConfigurationError: If the file is missing or a value is invalid
        """
        resolved = expand_path(path)
        if not resolved.is_file():
            raise ConfigurationError(f"Preferences file not found: {resolved}")
        values = {k.strip().lower(): v for k, v in dotenv_values(resolved).items() if v not in (None, "")}
        try:
            prefs = cls.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid preferences file {resolved}: {e}") from e
        logger.debug(f"Loaded client preferences from {resolved}")
        return prefs


@dataclass(frozen=True)
class ConnectionSettings:
    """
    Immutable, fully resolved connection settings.

    Attributes:
        host: Concourse Server host
        port: Concourse Server port
        username: Login username
        password: Login password
        environment: Environment to work in ("" means the server default)
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    username: str = DEFAULT_USERNAME
    password: str = DEFAULT_PASSWORD
    environment: str = DEFAULT_ENVIRONMENT

    def __repr__(self) -> str:
        return (
            f"ConnectionSettings(host={self.host!r}, port={self.port!r}, "
            f"username={self.username!r}, environment={self.environment!r})"
        )


def resolve_connection_settings(
    host: str | None = None,
    port: int | None = None,
    username: str | None = None,
    password: str | None = None,
    environment: str | None = None,
    options: dict[str, Any] | None = None,
) -> ConnectionSettings:
    """
    Merge connection settings in precedence order.

    Preferences file (named by the ``prefs`` option or one of its aliases)
    > keyed options > positional arguments > defaults.
    """
    options = options or {}
    prefs_path = find_in_kwargs_by_alias("prefs", options)
    prefs = ClientPreferences.from_file(prefs_path) if prefs_path else ClientPreferences()

    def first(*candidates: Any, default: Any) -> Any:
        for candidate in candidates:
            if candidate is not None:
                return candidate
        return default

    return ConnectionSettings(
        host=first(prefs.host, options.get("host"), host, default=DEFAULT_HOST),
        port=int(first(prefs.port, options.get("port"), port, default=DEFAULT_PORT)),
        username=first(
            prefs.username,
            find_in_kwargs_by_alias("username", options),
            username,
            default=DEFAULT_USERNAME,
        ),
        password=first(
            prefs.password,
            find_in_kwargs_by_alias("password", options),
            password,
            default=DEFAULT_PASSWORD,
        ),
        environment=first(prefs.environment, options.get("environment"), environment, default=DEFAULT_ENVIRONMENT),
    )
