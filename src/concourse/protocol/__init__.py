"""
Concourse Protocol Module.

Implements the RPC message format used to talk to the Concourse Server.
Supports both JSON and CBOR serialization formats.
"""

from .rpc import RPCRequest, RPCResponse, RPCError, RPCMethod
from .cbor import (
    TAG_LINK,
    TAG_TAG,
    encode as cbor_encode,
    decode as cbor_decode,
)

__all__ = [
    # RPC
    "RPCRequest",
    "RPCResponse",
    "RPCError",
    "RPCMethod",
    # CBOR
    "TAG_LINK",
    "TAG_TAG",
    "cbor_encode",
    "cbor_decode",
]
