"""Adapters — command-execution sessions for remote and local hosts.

Public re-exports for convenient access.
"""

from remote_bootstrap.adapters.base import CommandResult, Transport
from remote_bootstrap.adapters.mock import MockTransport

__all__ = [
    "CommandResult",
    "MockTransport",
    "Transport",
]
