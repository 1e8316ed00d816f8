"""
Base Connection Interface for the Concourse driver.

Defines the abstract interface that every transport to the Concourse
Server must implement. The client handle only ever calls ``rpc``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Self

from ..exceptions import RemoteError
from ..protocol.rpc import RPCRequest, RPCResponse

logger = logging.getLogger(__name__)


class BaseConcourseConnection(ABC):
    """
    Abstract base class for Concourse Server connections.

    All transport implementations must inherit from this class.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = 30.0,
    ):
        """
        Initialize connection parameters.

        Args:
            host: Concourse Server host
            port: Concourse Server port
            timeout: Request timeout in seconds
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Check if connection is established."""
        return self._connected

    @property
    def address(self) -> str:
        """The ``host:port`` address of the server."""
        return f"{self.host}:{self.port}"

    # Abstract methods that must be implemented

    @abstractmethod
    def connect(self) -> Self:
        """Open the transport. Returns self for fluent API."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the transport."""
        ...

    @abstractmethod
    def _send_rpc(self, request: RPCRequest) -> RPCResponse:
        """
        Send an RPC request and receive response.

        Args:
            request: The RPC request to send

        Returns:
            The RPC response
        """
        ...

    # Context manager support

    def __enter__(self) -> Self:
        return self.connect()

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def rpc(self, method: str, params: list[Any] | None = None) -> Any:
        """
        Invoke a remote operation.

        Args:
            method: Remote operation name
            params: Positional operation parameters

        Returns:
            The operation's result

        Raises:
            RemoteError: If the server answers with an error
        """
        request = RPCRequest(method=method, params=params or [])
        response = self._send_rpc(request)

        if response.is_error:
            assert response.error is not None
            logger.debug(f"Remote error from {method}: {response.error.message}")
            raise RemoteError(
                message=response.error.message,
                method=method,
                code=response.error.code,
            )

        return response.result
