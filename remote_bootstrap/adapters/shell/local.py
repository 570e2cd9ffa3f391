"""
Local transport — run the bootstrap pipeline against this machine.

Same contract as the SSH session, backed by ``subprocess``. Used by
``rbootstrap install --local`` and by the end-to-end tests, which run
the real generated script with stubbed system tools on ``PATH``.
"""

from __future__ import annotations

import codecs
import logging
import os
import subprocess
import tempfile
import threading

from remote_bootstrap.adapters.base import (
    CommandResult,
    OutputCallback,
    OutputPredicate,
    Transport,
)
from remote_bootstrap.core.errors import TransportError

logger = logging.getLogger(__name__)

BUFFER_SIZE = 4096


def _drain(stream) -> None:
    """Discard output from a detached process until it exits."""
    with stream:
        while stream.read(BUFFER_SIZE):
            pass


class LocalTransport(Transport):
    """Execute commands through a local shell.

    Args:
        shell: Shell binary that interprets each command string.
        env_overrides: Extra environment variables (e.g. ``HOME``, ``PATH``).
        cwd: Working directory for every command.
        timeout: Seconds before a run-to-completion command is abandoned.
    """

    def __init__(
        self,
        *,
        shell: str = "/bin/sh",
        env_overrides: dict[str, str] | None = None,
        cwd: str | None = None,
        timeout: int = 600,
    ):
        super().__init__()
        self._shell = shell
        self._env = os.environ.copy()
        if env_overrides:
            self._env.update(env_overrides)
        self._cwd = cwd
        self._timeout = timeout
        self._detached: list[subprocess.Popen] = []

    @property
    def name(self) -> str:
        return "local"

    def _connect(self) -> None:
        if not os.access(self._shell, os.X_OK):
            raise TransportError(f"local: shell not executable: {self._shell}")

    def _close(self) -> None:
        for proc in self._detached:
            if proc.poll() is None:
                proc.terminate()
        self._detached.clear()

    def _execute(self, command: str) -> CommandResult:
        try:
            result = subprocess.run(
                command,
                shell=True,
                executable=self._shell,
                env=self._env,
                cwd=self._cwd,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise TransportError(f"local: command timed out after {self._timeout}s") from e
        except OSError as e:
            raise TransportError(f"local: cannot run command: {e}") from e

        return CommandResult(
            stdout=result.stdout,
            stderr=result.stderr,
            exit_status=result.returncode,
        )

    def _execute_until(
        self,
        command: str,
        predicate: OutputPredicate,
        on_output: OutputCallback | None,
    ) -> CommandResult:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        stdout = ""

        with tempfile.TemporaryFile() as err_file:
            try:
                proc = subprocess.Popen(
                    command,
                    shell=True,
                    executable=self._shell,
                    env=self._env,
                    cwd=self._cwd,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=err_file,
                )
            except OSError as e:
                raise TransportError(f"local: cannot run command: {e}") from e

            assert proc.stdout is not None
            fd = proc.stdout.fileno()
            while True:
                data = os.read(fd, BUFFER_SIZE)
                if not data:
                    break
                chunk = decoder.decode(data)
                stdout += chunk
                if on_output is not None and chunk:
                    on_output(chunk)
                if predicate(stdout):
                    # A full pipe would stall the process on its next write
                    threading.Thread(
                        target=_drain, args=(proc.stdout,), name=f"drain-{proc.pid}", daemon=True
                    ).start()
                    self._detached.append(proc)
                    err_file.seek(0)
                    stderr = err_file.read().decode("utf-8", errors="replace")
                    return CommandResult(stdout=stdout, stderr=stderr, exit_status=None)

            status = proc.wait()
            proc.stdout.close()
            err_file.seek(0)
            stderr = err_file.read().decode("utf-8", errors="replace")

        stdout += decoder.decode(b"", final=True)
        return CommandResult(stdout=stdout, stderr=stderr, exit_status=status)
