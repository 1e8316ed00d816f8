"""
Routing of logical operations to remote operation variants.

The Concourse Server exposes one remote operation per concrete argument
shape: ``addKeyValueRecord`` and ``addKeyValueRecords`` are different
calls, as are ``browseKeyTime`` and ``browseKeyTimestr``. Each function
here takes the resolved arguments of one logical operation and returns
the single ``Route`` to invoke. Arguments that fit no variant raise
``InvalidArgumentError``; nothing is sent in that case.

Session parameters (access token, transaction token, environment) are not
part of a route; the client appends them to every call.
"""

from dataclasses import dataclass, field
from typing import Any

from .protocol.rpc import RPCMethod
from .resolver import (
    as_keys,
    as_records,
    as_timestamp,
    is_collection,
    is_record,
    is_record_target,
    is_string_timestamp,
    require_arg,
)
from .exceptions import InvalidArgumentError


@dataclass(frozen=True)
class Route:
    """
    A remote operation and the positional parameters to send it.

    Attributes:
        method: Remote operation name
        params: Operation parameters, without the session parameters
    """

    method: str
    params: list[Any] = field(default_factory=list)


def _time_suffix(timestamp: Any) -> str:
    """``Time`` for numeric timestamps, ``Timestr`` for phrases, else nothing."""
    if timestamp is None:
        return ""
    return "Timestr" if is_string_timestamp(timestamp) else "Time"


def _keys_segment(keys: Any) -> str:
    return "Keys" if is_collection(keys) else "Key"


def _records_segment(records: Any) -> str:
    return "Records" if is_collection(records) else "Record"


def _with_timestamp(params: list[Any], timestamp: Any) -> list[Any]:
    if timestamp is not None:
        params.append(timestamp)
    return params


def route_add(key: Any, value: Any, records: Any = None) -> Route:
    """
    Route ``add``.

    Without records the server adds the value to a brand new record and
    returns its id.
    """
    records = as_records(records)
    if not isinstance(key, str) or value is None:
        require_arg("key and value", "add")
    if records is None:
        return Route(RPCMethod.ADD_KEY_VALUE, [key, value])
    if is_collection(records):
        return Route(RPCMethod.ADD_KEY_VALUE_RECORDS, [key, value, records])
    return Route(RPCMethod.ADD_KEY_VALUE_RECORD, [key, value, records])


def route_set(key: Any, value: Any, records: Any = None) -> Route:
    """Route ``set``; without records a new record is created."""
    records = as_records(records)
    if not isinstance(key, str) or value is None:
        require_arg("key and value", "set")
    if records is None:
        return Route(RPCMethod.SET_KEY_VALUE, [key, value])
    if is_collection(records):
        return Route(RPCMethod.SET_KEY_VALUE_RECORDS, [key, value, records])
    return Route(RPCMethod.SET_KEY_VALUE_RECORD, [key, value, records])


def route_remove(key: Any, value: Any, records: Any) -> Route:
    """Route ``remove``; key, value and record(s) are all required."""
    records = as_records(records)
    if not isinstance(key, str) or value is None or records is None:
        require_arg("key, value and record(s)", "remove")
    if is_collection(records):
        return Route(RPCMethod.REMOVE_KEY_VALUE_RECORDS, [key, value, records])
    return Route(RPCMethod.REMOVE_KEY_VALUE_RECORD, [key, value, records])


def route_audit(key: Any = None, record: Any = None, start: Any = None, end: Any = None) -> Route:
    """
    Route ``audit``.

    An integer in the ``key`` position is taken to be the record, so
    ``audit(17)`` audits record 17. ``start`` and ``end`` must either both
    be numeric or both be phrases.
    """
    if is_record(key):
        if record is not None:
            raise InvalidArgumentError("audit: key must be a string", operation="audit")
        key, record = None, key
    if key is not None and not isinstance(key, str):
        raise InvalidArgumentError("audit: key must be a string", operation="audit")
    if not is_record(record):
        require_arg("a record", "audit")
    start = as_timestamp(start)
    end = as_timestamp(end)
    if end is not None and start is None:
        require_arg("a start timestamp when an end timestamp is given", "audit")
    if start is not None and end is not None and is_string_timestamp(start) != is_string_timestamp(end):
        raise InvalidArgumentError(
            "audit: start and end must both be numeric or both be strings", operation="audit"
        )

    method = "audit"
    params: list[Any] = []
    if key is not None:
        method += "Key"
        params.append(key)
    method += "Record"
    params.append(record)
    if start is not None:
        method += "Startstr" if is_string_timestamp(start) else "Start"
        params.append(start)
    if end is not None:
        method += "Endstr" if is_string_timestamp(end) else "End"
        params.append(end)
    return Route(method, params)


def route_browse(keys: Any, timestamp: Any = None) -> Route:
    """Route ``browse`` over one key or a collection of keys."""
    keys = as_keys(keys)
    timestamp = as_timestamp(timestamp)
    if keys is None:
        require_arg("key or keys", "browse")
    method = "browse" + _keys_segment(keys) + _time_suffix(timestamp)
    return Route(method, _with_timestamp([keys], timestamp))


def _route_read(
    operation: str,
    keys: Any,
    criteria: Any,
    records: Any,
    timestamp: Any,
) -> Route:
    """
    Shared routing for ``get`` and ``select``.

    Record ids in the ``criteria`` position are taken to be the records, so
    ``get("name", 1)`` reads record 1.
    """
    if records is None and is_record_target(criteria):
        criteria, records = None, criteria
    keys = as_keys(keys)
    records = as_records(records)
    timestamp = as_timestamp(timestamp)
    if criteria is not None and records is not None:
        raise InvalidArgumentError(
            f"{operation}: specify either criteria or record(s), not both", operation=operation
        )
    if criteria is None and records is None:
        require_arg("criteria or record(s)", operation)
    if criteria is not None and not isinstance(criteria, str):
        raise InvalidArgumentError(f"{operation}: criteria must be a string", operation=operation)

    method = operation
    params: list[Any] = []
    if keys is not None:
        method += _keys_segment(keys)
        params.append(keys)
    if criteria is not None:
        method += "Ccl"
        params.append(criteria)
    else:
        method += _records_segment(records)
        params.append(records)
    method += _time_suffix(timestamp)
    return Route(method, _with_timestamp(params, timestamp))


def route_get(keys: Any, criteria: Any = None, records: Any = None, timestamp: Any = None) -> Route:
    """
    Route ``get``: the most recent value(s) of key(s) in record(s) or in
    the records matching ``criteria``.
    """
    if as_keys(keys) is None:
        require_arg("key or keys", "get")
    return _route_read("get", keys, criteria, records, timestamp)


def route_select(keys: Any = None, criteria: Any = None, records: Any = None, timestamp: Any = None) -> Route:
    """
    Route ``select``: like ``get`` but returns every value.

    Keys are optional, so ``select(1)`` selects every value in record 1.
    """
    if criteria is None and records is None and is_record_target(keys):
        keys, records = None, keys
    return _route_read("select", keys, criteria, records, timestamp)


def route_clear(keys: Any = None, records: Any = None) -> Route:
    """Route ``clear``: remove every value of key(s), or of all keys, in record(s)."""
    keys = as_keys(keys)
    records = as_records(records)
    if records is None:
        require_arg("record or records", "clear")
    method = "clear"
    params: list[Any] = []
    if keys is not None:
        method += _keys_segment(keys)
        params.append(keys)
    method += _records_segment(records)
    params.append(records)
    return Route(method, params)


def route_find(criteria: Any) -> Route:
    """Route ``find``."""
    if not isinstance(criteria, str) or not criteria:
        require_arg("criteria", "find")
    return Route(RPCMethod.FIND_CCL, [criteria])


def route_time(phrase: Any = None) -> Route:
    """Route ``time``: the server's current time, or the time a phrase describes."""
    if phrase is not None and not isinstance(phrase, str):
        raise InvalidArgumentError("time: phrase must be a string", operation="time")
    if phrase:
        return Route(RPCMethod.TIME_PHRASE, [phrase])
    return Route(RPCMethod.TIME)
