"""
The Concourse client handle.

Concourse is a self-tuning database with automatic indexing, version
control and ACID transactions. A ``Concourse`` handle owns one session
with one environment on one server: it logs in on construction, keeps the
access token and the staged transaction (if any), and turns each logical
call into exactly one remote operation.

Every operation accepts its arguments positionally, as keyword options
(with aliases such as ``time``/``ts`` for ``timestamp``), or as a mapping
passed as the first argument. Keyed options win over positional ones.
"""

import logging
from typing import Any, Literal, Self

from .config import ConnectionSettings, resolve_connection_settings
from .connection.base import BaseConcourseConnection
from .connection.http import HTTPConnection
from .dispatch import (
    Route,
    route_add,
    route_audit,
    route_browse,
    route_clear,
    route_find,
    route_get,
    route_remove,
    route_select,
    route_set,
    route_time,
)
from .exceptions import AuthenticationError, ConnectionError, RemoteError, ServerError, TransactionError
from .protocol.rpc import RPCMethod
from .resolver import extract_options, is_record_target, pick
from .transaction import Transaction
from .types import parse_audit

logger = logging.getLogger(__name__)


class Concourse:
    """
    A client connection to one environment of a Concourse Server.

    Usage:
        with Concourse.connect("localhost", 1717, "admin", "admin") as concourse:
            record = concourse.add("name", "Jeff")
            concourse.set("age", 30, record)
            concourse.get(keys=["name", "age"], record=record)

            with concourse.transaction():
                concourse.set("balance", 90, 1)
                concourse.set("balance", 110, 2)
    """

    @classmethod
    def connect(
        cls,
        host: Any = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        environment: str | None = None,
        **options: Any,
    ) -> Self:
        """
        Create a new client connection and return a handle to it.

        Args:
            host: Server host (default ``localhost``), or a mapping of options
            port: Server port (default 1717)
            username: Login username (default ``admin``)
            password: Login password (default ``admin``)
            environment: Environment to work in (default: server default)
            **options: Keyed options. Besides the connection parameters
                (``user``/``pass`` and friends are accepted as aliases):
                ``prefs`` names a preferences file whose settings win over
                everything else, ``protocol`` selects ``"cbor"`` or
                ``"json"``, ``timeout`` sets the request timeout, and
                ``connection`` supplies a ready transport.

        Raises:
            ConnectionError: If the server cannot be reached
            AuthenticationError: If the credentials are rejected
        """
        return cls(host, port, username, password, environment, **options)

    def __init__(
        self,
        host: Any = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        environment: str | None = None,
        **options: Any,
    ):
        host, options = extract_options(host, options)
        self._settings: ConnectionSettings = resolve_connection_settings(
            host=host,
            port=port,
            username=username,
            password=password,
            environment=environment,
            options=options,
        )
        self._connection: BaseConcourseConnection = options.get("connection") or HTTPConnection(
            host=self._settings.host,
            port=self._settings.port,
            timeout=float(pick(options, "timeout", default=30.0)),
            protocol=self._resolve_protocol(options.get("protocol")),
        )
        self._creds: Any = None
        self._transaction: Any = None

        try:
            self._connection.connect()
            self._authenticate()
        except ConnectionError as e:
            self._connection.close()
            raise ConnectionError(
                f"Could not connect to the Concourse Server at {self._settings.host}:{self._settings.port}"
            ) from e

    @staticmethod
    def _resolve_protocol(protocol: Any) -> Literal["json", "cbor"]:
        if protocol is None:
            return "cbor"
        if protocol not in ("json", "cbor"):
            raise ValueError(f"Invalid protocol '{protocol}'. Must be 'json' or 'cbor'.")
        return protocol  # type: ignore[no-any-return]

    def _authenticate(self) -> None:
        """Login and keep the access token for subsequent calls."""
        try:
            self._creds = self._connection.rpc(
                RPCMethod.LOGIN,
                [self._settings.username, self._settings.password, self._settings.environment],
            )
        except ServerError as e:
            raise ConnectionError(e.message, code=e.code) from e
        except RemoteError as e:
            self._connection.close()
            raise AuthenticationError(f"Authentication failed: {e.message}", code=e.code) from e
        logger.info(
            f"Connected to {self._settings.host}:{self._settings.port} as {self._settings.username} "
            f"(environment={self._settings.environment or 'default'})"
        )

    # Session state

    @property
    def host(self) -> str:
        return self._settings.host

    @property
    def port(self) -> int:
        return self._settings.port

    @property
    def username(self) -> str:
        return self._settings.username

    @property
    def environment(self) -> str:
        return self._settings.environment

    @property
    def in_transaction(self) -> bool:
        """Check if a transaction is staged."""
        return self._transaction is not None

    @property
    def is_connected(self) -> bool:
        """Check if the session is still logged in."""
        return self._creds is not None

    def __repr__(self) -> str:
        return f"Concourse({self._settings.host}:{self._settings.port}, environment={self._settings.environment!r})"

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.logout()

    def _call(self, method: str, params: list[Any]) -> Any:
        """Send a remote operation with the given session parameters."""
        if self._creds is None:
            raise ConnectionError("Not connected. The client has been logged out.")
        logger.debug(f"Invoking {method}")
        return self._connection.rpc(method, params)

    def _invoke(self, route: Route) -> Any:
        """Send a routed operation with the session parameters appended."""
        return self._call(route.method, [*route.params, self._creds, self._transaction, self._settings.environment])

    # Transactions

    def stage(self) -> None:
        """
        Start a new transaction.

        Until ``commit`` or ``abort``, every call works against the staged
        transaction instead of committing immediately.

        Raises:
            TransactionError: If a transaction is already staged
        """
        if self._transaction is not None:
            raise TransactionError("Transaction already active")
        self._transaction = self._call(RPCMethod.STAGE, [self._creds, self._settings.environment])
        logger.info("Staged transaction")

    def commit(self) -> Any:
        """
        Commit the staged transaction.

        The client returns to autocommit mode whatever the outcome.

        Returns:
            The server's verdict, or ``False`` if nothing was staged
        """
        if self._transaction is None:
            return False
        token = self._transaction
        self._transaction = None
        result = self._call(RPCMethod.COMMIT, [self._creds, token, self._settings.environment])
        logger.info(f"Committed transaction (result={result!r})")
        return result

    def abort(self) -> None:
        """
        Abort the staged transaction and discard its changes.

        After returning, the client works in autocommit mode until another
        transaction is staged. Does nothing when no transaction is staged.
        """
        if self._transaction is None:
            return
        token = self._transaction
        self._transaction = None
        self._call(RPCMethod.ABORT, [self._creds, token, self._settings.environment])
        logger.info("Aborted transaction")

    def transaction(self) -> Transaction:
        """Stage a transaction for the duration of a ``with`` block."""
        return Transaction(self)

    # Writes

    def add(self, key: Any = None, value: Any = None, records: Any = None, **options: Any) -> Any:
        """
        Append a value to a key within record(s) if it does not already exist.

        Without records, the value is added to a new record.

        Returns:
            The new record's id, a bool, or a ``{record: bool}`` mapping for
            several records
        """
        key, options = extract_options(key, options)
        key = pick(options, "key", key)
        value = pick(options, "value", value)
        records = pick(options, "records", records)
        return self._invoke(route_add(key, value, records))

    def set(self, key: Any = None, value: Any = None, records: Any = None, **options: Any) -> Any:
        """Atomically replace every value of a key in record(s) with ``value``."""
        key, options = extract_options(key, options)
        key = pick(options, "key", key)
        value = pick(options, "value", value)
        records = pick(options, "records", records)
        return self._invoke(route_set(key, value, records))

    def remove(self, key: Any = None, value: Any = None, records: Any = None, **options: Any) -> Any:
        """Remove a value from a key within record(s) if it exists."""
        key, options = extract_options(key, options)
        key = pick(options, "key", key)
        value = pick(options, "value", value)
        records = pick(options, "records", records)
        return self._invoke(route_remove(key, value, records))

    def clear(self, keys: Any = None, records: Any = None, **options: Any) -> None:
        """Remove every value of key(s), or of every key, in record(s)."""
        keys, options = extract_options(keys, options)
        keys = pick(options, "keys", keys)
        records = pick(options, "records", records)
        self._invoke(route_clear(keys, records))

    # Reads

    def audit(self, key: Any = None, record: Any = None, start: Any = None, end: Any = None, **options: Any) -> dict[int, str]:
        """
        Return a log of revisions.

        ``audit(record)`` covers every key in the record; ``audit(key,
        record)`` a single key. ``start`` and ``end`` (integers, datetimes
        or phrases such as ``"last week"``) narrow the window.

        Returns:
            ``{timestamp: description}`` for each revision
        """
        key, options = extract_options(key, options)
        key = pick(options, "key", key)
        record = pick(options, "record", record)
        start = pick(options, "start", start)
        end = pick(options, "end", end)
        return parse_audit(self._invoke(route_audit(key, record, start, end)))

    def browse(self, keys: Any = None, timestamp: Any = None, **options: Any) -> Any:
        """
        View the index of key(s): each value mapped to the records that hold it.

        Returns:
            ``{value: [records]}`` for one key, ``{key: {value: [records]}}``
            for several
        """
        keys, options = extract_options(keys, options)
        keys = pick(options, "keys", keys)
        timestamp = pick(options, "timestamp", timestamp)
        return self._invoke(route_browse(keys, timestamp))

    def get(
        self,
        keys: Any = None,
        criteria: Any = None,
        records: Any = None,
        timestamp: Any = None,
        **options: Any,
    ) -> Any:
        """
        Return the most recent value of key(s) in record(s) or in the records matching ``criteria``.

        Record ids may be given in the ``criteria`` position: ``get("name", 1)``.
        """
        keys, options = extract_options(keys, options)
        if records is None and is_record_target(criteria):
            criteria, records = None, criteria
        keys = pick(options, "keys", keys)
        criteria = pick(options, "criteria", criteria)
        records = pick(options, "records", records)
        timestamp = pick(options, "timestamp", timestamp)
        return self._invoke(route_get(keys, criteria, records, timestamp))

    def select(
        self,
        keys: Any = None,
        criteria: Any = None,
        records: Any = None,
        timestamp: Any = None,
        **options: Any,
    ) -> Any:
        """Return every value of key(s), or of all keys, in record(s) or in the records matching ``criteria``."""
        keys, options = extract_options(keys, options)
        if records is None and is_record_target(criteria):
            criteria, records = None, criteria
        keys = pick(options, "keys", keys)
        criteria = pick(options, "criteria", criteria)
        records = pick(options, "records", records)
        timestamp = pick(options, "timestamp", timestamp)
        return self._invoke(route_select(keys, criteria, records, timestamp))

    def find(self, criteria: Any = None, **options: Any) -> Any:
        """Return the records that match ``criteria``."""
        criteria, options = extract_options(criteria, options)
        criteria = pick(options, "criteria", criteria)
        return self._invoke(route_find(criteria))

    def time(self, phrase: Any = None, **options: Any) -> int:
        """Return the server's current time, or the time ``phrase`` describes, in microseconds."""
        phrase, options = extract_options(phrase, options)
        phrase = pick(options, "phrase", phrase)
        return self._invoke(route_time(phrase))

    # Session teardown

    def logout(self) -> None:
        """
        Terminate the session.

        Any staged transaction is aborted first. The transport is closed even
        if the server cannot be told about the logout.
        """
        if self._creds is None:
            return
        try:
            self.abort()
            self._call(RPCMethod.LOGOUT, [self._creds, self._settings.environment])
        finally:
            self._creds = None
            self._transaction = None
            self._connection.close()
        logger.info(f"Logged out of {self._settings.host}:{self._settings.port}")

    def exit(self) -> None:
        """Alias of ``logout``."""
        self.logout()

    close = exit


def connect(
    host: Any = None,
    port: int | None = None,
    username: str | None = None,
    password: str | None = None,
    environment: str | None = None,
    **options: Any,
) -> Concourse:
    """Create a new client connection. See ``Concourse.connect``."""
    return Concourse.connect(host, port, username, password, environment, **options)
