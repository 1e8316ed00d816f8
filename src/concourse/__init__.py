"""
Concourse driver - a Python client for the Concourse database.

Connects to a Concourse Server, authenticates, manages staged transactions
and routes each logical call (add, audit, browse, get, set, ...) to the
remote operation that matches the shape of its arguments.

Usage:
    from concourse import Concourse

    with Concourse.connect(username="admin", password="admin") as concourse:
        record = concourse.add("name", "Jeff")
        concourse.get("name", record=record)
"""

from .client import Concourse, connect
from .config import ClientPreferences, ConnectionSettings
from .connection.base import BaseConcourseConnection
from .connection.http import HTTPConnection
from .transaction import Transaction
from .types import Link, Tag
from .exceptions import (
    ConcourseError,
    ConnectionError,
    AuthenticationError,
    InvalidArgumentError,
    RemoteError,
    ServerError,
    TransactionError,
    ConfigurationError,
)

__version__ = "0.5.0"
__all__ = [
    # Client
    "Concourse",
    "connect",
    "Transaction",
    # Configuration
    "ClientPreferences",
    "ConnectionSettings",
    # Connections
    "BaseConcourseConnection",
    "HTTPConnection",
    # Values
    "Link",
    "Tag",
    # Exceptions
    "ConcourseError",
    "ConnectionError",
    "AuthenticationError",
    "InvalidArgumentError",
    "RemoteError",
    "ServerError",
    "TransactionError",
    "ConfigurationError",
]
