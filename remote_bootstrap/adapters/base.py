"""
Transport base — the session contract between the installer and a host.

The orchestrator only talks to hosts through this protocol. A session
owns exactly one connection and runs one command at a time:

    execute(cmd)                  run to natural completion
    execute_until(cmd, predicate) return as soon as predicate(stdout) is
                                  true, leaving the remote process running
    close()                       release the connection (idempotent)

A command that runs and exits non-zero is a *result*. Only failures to
connect, authenticate, or move bytes raise ``TransportError``.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from pydantic import BaseModel

from remote_bootstrap.core.errors import (
    TransportBusyError,
    TransportError,
)

logger = logging.getLogger(__name__)

OutputPredicate = Callable[[str], bool]
OutputCallback = Callable[[str], None]


class CommandResult(BaseModel):
    """Captured output of one remote command."""

    stdout: str = ""
    stderr: str = ""
    exit_status: int | None = None  # None when returned early by execute_until

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class Transport(ABC):
    """Abstract base class for command-execution sessions.

    Subclasses implement the underscore hooks; the public methods add
    the one-command-at-a-time guard and the closed-session check.
    """

    def __init__(self) -> None:
        self._busy = threading.Lock()
        self._closed = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Short label for logs (e.g. ``ssh:user@host``)."""

    @property
    def closed(self) -> bool:
        return self._closed

    # ── Hooks ────────────────────────────────────────────────────

    @abstractmethod
    def _connect(self) -> None:
        """Open the underlying connection. Raise TransportError on failure."""

    @abstractmethod
    def _execute(self, command: str) -> CommandResult:
        """Run ``command`` to completion."""

    @abstractmethod
    def _execute_until(
        self,
        command: str,
        predicate: OutputPredicate,
        on_output: OutputCallback | None,
    ) -> CommandResult:
        """Run ``command`` until ``predicate(accumulated_stdout)`` holds or EOF."""

    @abstractmethod
    def _close(self) -> None:
        """Release the underlying connection. Must not raise."""

    # ── Public API ───────────────────────────────────────────────

    def connect(self) -> Transport:
        if self._closed:
            raise TransportError(f"{self.name}: session already closed")
        self._connect()
        logger.debug("%s: connected", self.name)
        return self

    def execute(self, command: str) -> CommandResult:
        with self._exclusive():
            logger.debug("%s: exec %s", self.name, _preview(command))
            result = self._execute(command)
            logger.debug("%s: exit status %s", self.name, result.exit_status)
            return result

    def execute_until(
        self,
        command: str,
        predicate: OutputPredicate,
        on_output: OutputCallback | None = None,
    ) -> CommandResult:
        with self._exclusive():
            logger.debug("%s: exec (partial) %s", self.name, _preview(command))
            return self._execute_until(command, predicate, on_output)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._close()
        logger.debug("%s: closed", self.name)

    def __enter__(self) -> Transport:
        return self.connect()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if self._closed:
            raise TransportError(f"{self.name}: session is closed")
        if not self._busy.acquire(blocking=False):
            raise TransportBusyError(
                f"{self.name}: another command is still running on this session"
            )
        try:
            yield
        finally:
            self._busy.release()


def _preview(command: str, limit: int = 200) -> str:
    """First line of a command, truncated for log output."""
    first = command.strip().splitlines()[0] if command.strip() else ""
    return first if len(first) <= limit else first[:limit] + "…"
