"""
Mock transport — scripted test double for the session contract.

Configured with rules that map a command (substring or predicate) to a
canned ``CommandResult`` or to a callable that builds one from the
command text. Every command issued is recorded in ``call_log``.
"""

from __future__ import annotations

from collections.abc import Callable

from remote_bootstrap.adapters.base import (
    CommandResult,
    OutputCallback,
    OutputPredicate,
    Transport,
)
from remote_bootstrap.core.errors import TransportError

CommandMatcher = str | Callable[[str], bool]
CommandResponse = CommandResult | Callable[[str], CommandResult]


class MockTransport(Transport):
    """Universal mock transport for testing.

    By default every command succeeds with empty output. Rules are
    checked in the order they were added; the first match wins.
    """

    def __init__(
        self,
        transport_name: str = "mock",
        default: CommandResult | None = None,
        connect_error: str | None = None,
    ):
        super().__init__()
        self._name = transport_name
        self._default = default or CommandResult(exit_status=0)
        self._connect_error = connect_error
        self._rules: list[tuple[CommandMatcher, CommandResponse]] = []
        self._call_log: list[str] = []
        self.connected = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[str]:
        """All commands this mock has received, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def add_response(self, match: CommandMatcher, response: CommandResponse) -> MockTransport:
        """Answer commands matching ``match`` with ``response``."""
        self._rules.append((match, response))
        return self

    def set_stdout(self, match: CommandMatcher, stdout: str, exit_status: int = 0) -> MockTransport:
        return self.add_response(match, CommandResult(stdout=stdout, exit_status=exit_status))

    def set_stderr(self, match: CommandMatcher, stderr: str, exit_status: int = 1) -> MockTransport:
        return self.add_response(match, CommandResult(stderr=stderr, exit_status=exit_status))

    def commands_matching(self, needle: str) -> list[str]:
        """Recorded commands containing ``needle``."""
        return [c for c in self._call_log if needle in c]

    def reset(self) -> None:
        """Clear call log and rules."""
        self._call_log.clear()
        self._rules.clear()

    # ── Hooks ────────────────────────────────────────────────────

    def _connect(self) -> None:
        if self._connect_error:
            raise TransportError(f"{self._name}: {self._connect_error}")
        self.connected = True

    def _close(self) -> None:
        self.connected = False

    def _respond(self, command: str) -> CommandResult:
        self._call_log.append(command)
        for match, response in self._rules:
            hit = match in command if isinstance(match, str) else match(command)
            if hit:
                return response(command) if callable(response) else response
        return self._default

    def _execute(self, command: str) -> CommandResult:
        return self._respond(command)

    def _execute_until(
        self,
        command: str,
        predicate: OutputPredicate,
        on_output: OutputCallback | None,
    ) -> CommandResult:
        result = self._respond(command)
        if on_output is not None and result.stdout:
            on_output(result.stdout)
        if predicate(result.stdout):
            return result.model_copy(update={"exit_status": None})
        return result
