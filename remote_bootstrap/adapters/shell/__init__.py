"""Local shell transport."""

from remote_bootstrap.adapters.shell.local import LocalTransport

__all__ = ["LocalTransport"]
