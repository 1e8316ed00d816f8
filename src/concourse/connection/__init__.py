"""
Concourse Connection Module.

Provides the transports the client handle talks through.
"""

from .base import BaseConcourseConnection
from .http import HTTPConnection

__all__ = [
    "BaseConcourseConnection",
    "HTTPConnection",
]
