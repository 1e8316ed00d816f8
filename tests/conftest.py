"""
Pytest configuration for the Concourse driver tests.

The Concourse Server is replaced by ``FakeConnection``, an in-memory
transport that records every remote call and answers with canned results.
"""

from typing import Any, Self

import pytest

from concourse import Concourse
from concourse.connection.base import BaseConcourseConnection
from concourse.protocol.rpc import RPCError, RPCRequest, RPCResponse

ACCESS_TOKEN = "access-token"
TRANSACTION_TOKEN = "transaction-token"
TEST_ENVIRONMENT = "test"


class FakeConnection(BaseConcourseConnection):
    """A transport that records calls instead of talking to a server."""

    def __init__(
        self,
        results: dict[str, Any] | None = None,
        errors: dict[str, Exception | RPCError] | None = None,
    ):
        super().__init__("localhost", 1717)
        self.calls: list[RPCRequest] = []
        self.results: dict[str, Any] = {
            "login": ACCESS_TOKEN,
            "stage": TRANSACTION_TOKEN,
            "commit": True,
            **(results or {}),
        }
        self.errors: dict[str, Exception | RPCError] = errors or {}
        self.closed = False

    def connect(self) -> Self:
        if "connect" in self.errors:
            raise self.errors["connect"]  # type: ignore[misc]
        self._connected = True
        return self

    def close(self) -> None:
        self._connected = False
        self.closed = True

    def _send_rpc(self, request: RPCRequest) -> RPCResponse:
        self.calls.append(request)
        error = self.errors.get(request.method)
        if isinstance(error, Exception):
            raise error
        if error is not None:
            return RPCResponse(id=request.id, error=error)
        return RPCResponse(id=request.id, result=self.results.get(request.method))

    @property
    def methods(self) -> list[str]:
        """Names of the remote operations invoked so far."""
        return [call.method for call in self.calls]

    @property
    def last(self) -> RPCRequest:
        """The most recent remote call."""
        return self.calls[-1]


@pytest.fixture
def connection() -> FakeConnection:
    """A fresh fake transport."""
    return FakeConnection()


@pytest.fixture
def concourse(connection: FakeConnection) -> Concourse:
    """A client logged in through the fake transport."""
    return Concourse.connect(environment=TEST_ENVIRONMENT, connection=connection)
