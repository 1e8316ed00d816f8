"""
Concourse RPC Protocol Implementation.

Handles the request/response messaging format used to talk to the
Concourse Server. Supports both JSON and CBOR serialization formats.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..types import Link, Tag, datetime_to_micros
from . import cbor as cbor_module


class ConcourseJSONEncoder(json.JSONEncoder):
    """
    Custom JSON encoder for Concourse values.

    Handles serialization of Python types that are not natively JSON serializable:
    - Link → "@<record>@"
    - Tag → plain string
    - datetime → integer microseconds since the epoch
    - set/tuple → list
    """

    def default(self, obj: Any) -> Any:
        """Encode non-standard types to JSON-serializable values."""
        if isinstance(obj, Link):
            return str(obj)
        if isinstance(obj, Tag):
            return obj.value
        if isinstance(obj, datetime):
            return datetime_to_micros(obj)
        if isinstance(obj, (set, frozenset, tuple)):
            return list(obj)
        return super().default(obj)


@dataclass
class RPCRequest:
    """
    RPC Request message format.

    Attributes:
        id: Unique request identifier for response matching
        method: Remote operation name (login, addKeyValueRecord, etc.)
        params: Positional operation parameters
    """

    method: str
    params: list[Any] = field(default_factory=list)
    id: int = 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "method": self.method,
            "params": list(self.params),
        }

    def to_json(self) -> str:
        """Serialize to JSON string with the Concourse value encoder."""
        return json.dumps(self.to_dict(), cls=ConcourseJSONEncoder)

    def to_cbor(self) -> bytes:
        """Serialize to CBOR bytes using the Concourse tags."""
        return cbor_module.encode(self.to_dict())


@dataclass
class RPCError:
    """
    RPC Error format.

    Attributes:
        code: Error code
        message: Error message
    """

    code: int
    message: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RPCError":
        """Create from dictionary."""
        return cls(
            code=data.get("code", -1),
            message=data.get("message", "Unknown error"),
        )


@dataclass
class RPCResponse:
    """
    RPC Response message format.

    Attributes:
        id: Request identifier this response matches
        result: Operation result (if successful)
        error: Error information (if failed)
    """

    id: int
    result: Any = None
    error: RPCError | None = None

    @property
    def is_error(self) -> bool:
        """Check if response is an error."""
        return self.error is not None

    @property
    def is_success(self) -> bool:
        """Check if response is successful."""
        return self.error is None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RPCResponse":
        """Parse from dictionary."""
        error = None
        if data.get("error") is not None:
            error = RPCError.from_dict(data["error"])

        return cls(
            id=data.get("id", 0),
            result=data.get("result"),
            error=error,
        )

    @classmethod
    def from_json(cls, json_str: str) -> "RPCResponse":
        """Parse from JSON string."""
        data = json.loads(json_str)
        return cls.from_dict(data)

    @classmethod
    def from_cbor(cls, cbor_data: bytes) -> "RPCResponse":
        """Parse from CBOR bytes."""
        data = cbor_module.decode(cbor_data)
        return cls.from_dict(data)


# Remote operation names as constants
class RPCMethod:
    """Remote operation name constants."""

    # Session
    LOGIN = "login"
    LOGOUT = "logout"
    TIME = "time"
    TIME_PHRASE = "timePhrase"

    # Transactions
    STAGE = "stage"
    COMMIT = "commit"
    ABORT = "abort"

    # Writes
    ADD_KEY_VALUE = "addKeyValue"
    ADD_KEY_VALUE_RECORD = "addKeyValueRecord"
    ADD_KEY_VALUE_RECORDS = "addKeyValueRecords"
    SET_KEY_VALUE = "setKeyValue"
    SET_KEY_VALUE_RECORD = "setKeyValueRecord"
    SET_KEY_VALUE_RECORDS = "setKeyValueRecords"
    REMOVE_KEY_VALUE_RECORD = "removeKeyValueRecord"
    REMOVE_KEY_VALUE_RECORDS = "removeKeyValueRecords"

    # Query
    FIND_CCL = "findCcl"

    # Read-side operations (audit, browse, get, select, clear) have one
    # remote variant per argument shape; their names are composed in
    # concourse.dispatch.
