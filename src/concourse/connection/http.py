"""
HTTP Connection Implementation for the Concourse driver.

Every remote operation is a POST of an RPC message to the ``/rpc``
endpoint of the Concourse Server.
"""

from typing import Literal, Self

import httpx
from cbor2 import CBORDecodeError

from .base import BaseConcourseConnection
from ..protocol.cbor import decode as cbor_decode
from ..protocol.rpc import RPCRequest, RPCResponse
from ..exceptions import ConnectionError, ServerError


class HTTPConnection(BaseConcourseConnection):
    """
    HTTP-based connection to the Concourse Server.

    The session state (access token, transaction token, environment) lives
    in the client handle and travels inside each request's params, so the
    transport itself is stateless.

    Supports both JSON and CBOR protocols. CBOR is the default because it
    keeps links, tags and integer map keys intact.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 1717,
        timeout: float = 30.0,
        protocol: Literal["json", "cbor"] = "cbor",
        scheme: Literal["http", "https"] = "http",
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize HTTP connection.

        Args:
            host: Concourse Server host
            port: Concourse Server port
            timeout: Request timeout in seconds
            protocol: Serialization protocol ("json" or "cbor")
            scheme: URL scheme
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``)
        """
        if protocol not in ("json", "cbor"):
            raise ValueError(f"Invalid protocol '{protocol}'. Must be 'json' or 'cbor'.")

        super().__init__(host, port, timeout)
        self.url = f"{scheme}://{host}:{port}"
        self.protocol: Literal["json", "cbor"] = protocol
        self._transport = transport
        self._client: httpx.Client | None = None
        self._request_id = 0

    @property
    def headers(self) -> dict[str, str]:
        """Build request headers based on protocol setting."""
        if self.protocol == "cbor":
            content_type = "application/cbor"
        else:
            content_type = "application/json"
        return {"Accept": content_type, "Content-Type": content_type}

    def _next_request_id(self) -> int:
        """Generate next request ID."""
        self._request_id += 1
        return self._request_id

    def connect(self) -> Self:
        """Create the HTTP client. Returns self for fluent API."""
        if self._connected:
            return self

        self._client = httpx.Client(
            base_url=self.url,
            timeout=self.timeout,
            transport=self._transport,
        )
        self._connected = True
        return self

    def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            self._client.close()
            self._client = None
        self._connected = False

    def _send_rpc(self, request: RPCRequest) -> RPCResponse:
        """
        Send RPC request via HTTP POST to /rpc endpoint.

        Args:
            request: The RPC request to send

        Returns:
            The RPC response

        Raises:
            ConnectionError: If not connected or the server is unreachable
            ServerError: If the server answers with an HTTP error status or
                a body that cannot be decoded
        """
        if not self._client:
            raise ConnectionError("Not connected. Call connect() first.")

        request.id = self._next_request_id()
        content = request.to_cbor() if self.protocol == "cbor" else request.to_json()

        try:
            response = self._client.post("/rpc", content=content, headers=self.headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ServerError(
                message=f"HTTP error: {e.response.status_code} - {e.response.text}",
                method=request.method,
                code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise ConnectionError(f"Request to {self.address} failed: {e}") from e

        try:
            if self.protocol == "cbor":
                data = cbor_decode(response.content)
            else:
                data = response.json()
        except (CBORDecodeError, ValueError) as e:
            raise ServerError(f"Malformed response: {e}", method=request.method) from e
        if not isinstance(data, dict):
            raise ServerError(
                f"Malformed response: expected a message, got {type(data).__name__}",
                method=request.method,
            )
        return RPCResponse.from_dict(data)
