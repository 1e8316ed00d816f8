"""
Concourse Command Line Interface.

Provides ``concourse-shell``, an interactive shell that connects to a
Concourse Server and runs driver operations typed at the prompt.
"""

from .commands import cli

__all__ = ["cli"]
