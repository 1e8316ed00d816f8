"""
CBOR Encoding/Decoding for the Concourse Protocol.

This module provides CBOR serialization support using Concourse's custom
tags. CBOR is the default protocol because it keeps integers, binary data
and the driver's value types (Link, Tag) distinct, which JSON cannot.

Custom CBOR Tags:
- TAG_NONE (6): None/null value
- TAG_DATETIME (12): DateTime as integer microseconds since the epoch
- TAG_LINK (40): Link to a record
- TAG_TAG (41): Tag (non-indexed string)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import cbor2
from cbor2 import CBORTag

from ..types import Link, Tag, datetime_to_micros, micros_to_datetime


# Concourse Custom CBOR Tags
TAG_NONE = 6
TAG_DATETIME = 12
TAG_LINK = 40
TAG_TAG = 41


def _preprocess_for_cbor(data: Any) -> Any:
    """
    Pre-process data before CBOR encoding.

    Recursively walks dicts, lists, tuples and sets so nested ``None`` values
    become ``CBORTag(TAG_NONE, None)`` and sets/tuples become arrays.
    cbor2 encodes datetimes natively (tags 0/1) without consulting the default
    hook, so they are tagged here.
    """
    if data is None:
        return CBORTag(TAG_NONE, None)
    if isinstance(data, datetime):
        return CBORTag(TAG_DATETIME, datetime_to_micros(data))
    if isinstance(data, dict):
        return {k: _preprocess_for_cbor(v) for k, v in data.items()}
    if isinstance(data, (list, tuple, set, frozenset)):
        return [_preprocess_for_cbor(item) for item in data]
    return data


def _cbor_default_encoder(encoder: Any, value: Any) -> None:
    """
    Custom CBOR encoder for Concourse types.

    Handles encoding of Python types to the Concourse CBOR format.
    """
    if isinstance(value, Link):
        encoder.encode(CBORTag(TAG_LINK, value.record))
    elif isinstance(value, Tag):
        encoder.encode(CBORTag(TAG_TAG, value.value))
    else:
        raise TypeError(f"Cannot CBOR encode {type(value)}")


def _cbor_tag_decoder(tag: CBORTag, immutable: bool = False) -> Any:
    """
    Custom CBOR tag decoder for Concourse types.

    Handles decoding of Concourse CBOR tags to Python types. cbor2 calls it
    as ``tag_hook(tag, immutable)``.
    """
    if tag.tag == TAG_NONE:
        return None
    elif tag.tag == TAG_LINK:
        return Link(record=int(tag.value))
    elif tag.tag == TAG_TAG:
        return Tag(value=str(tag.value))
    elif tag.tag == TAG_DATETIME:
        if isinstance(tag.value, int):
            return micros_to_datetime(tag.value)
        return tag.value
    else:
        # Return raw tagged value for unknown tags
        return tag.value


def encode(data: Any) -> bytes:
    """
    Encode data to CBOR bytes using Concourse's custom tags.

    Args:
        data: Python object to encode

    Returns:
        CBOR-encoded bytes
    """
    processed = _preprocess_for_cbor(data)
    result: bytes = cbor2.dumps(processed, default=_cbor_default_encoder)
    return result


def decode(data: bytes) -> Any:
    """
    Decode CBOR bytes to Python objects using Concourse's custom tags.

    Args:
        data: CBOR-encoded bytes

    Returns:
        Decoded Python object
    """
    return cbor2.loads(data, tag_hook=_cbor_tag_decoder)
