"""
SSH transport — paramiko-backed command session.

One ``SSHTransport`` owns one ``paramiko.SSHClient``. Each command runs
on its own exec channel; stdout and stderr are drained together so a
chatty stderr can never stall the shared flow-control window.
"""

from __future__ import annotations

import codecs
import logging
import time

import paramiko

from remote_bootstrap.adapters.base import (
    CommandResult,
    OutputCallback,
    OutputPredicate,
    Transport,
)
from remote_bootstrap.core.errors import TransportError
from remote_bootstrap.core.models.target import SSHTarget

logger = logging.getLogger(__name__)

BUFFER_SIZE = 32768
POLL_INTERVAL_S = 0.05
KEEPALIVE_INTERVAL_S = 30


class SSHTransport(Transport):
    """Execute commands on a remote host over SSH.

    Args:
        target: Host, port, user and credentials. Opaque to the installer.
        accept_unknown_hosts: Auto-add unknown host keys instead of
            rejecting them. Known keys are always loaded from the user's
            ``known_hosts``.
        idle_timeout: Optional bound (seconds) on a command producing no
            output at all. ``None`` waits for as long as the host keeps
            the channel open.
    """

    def __init__(
        self,
        target: SSHTarget,
        *,
        accept_unknown_hosts: bool = False,
        idle_timeout: float | None = None,
    ):
        super().__init__()
        self._target = target
        self._accept_unknown_hosts = accept_unknown_hosts
        self._idle_timeout = idle_timeout
        self._client: paramiko.SSHClient | None = None
        self._detached: list[paramiko.Channel] = []

    @property
    def name(self) -> str:
        return f"ssh:{self._target.label}"

    @property
    def target(self) -> SSHTarget:
        return self._target

    # ── Connection ───────────────────────────────────────────────

    def _connect(self) -> None:
        client = paramiko.SSHClient()
        try:
            client.load_system_host_keys()
        except OSError as e:
            logger.debug("Cannot load known_hosts: %s", e)

        if self._accept_unknown_hosts:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        else:
            client.set_missing_host_key_policy(paramiko.RejectPolicy())

        connect_kwargs: dict = {
            "hostname": self._target.host,
            "port": self._target.port,
            "username": self._target.user,
            "timeout": self._target.connect_timeout,
            "allow_agent": True,
            "look_for_keys": self._target.identity_file is None,
        }
        if self._target.identity_file:
            connect_kwargs["key_filename"] = self._target.identity_file
        if self._target.password:
            connect_kwargs["password"] = self._target.password

        try:
            client.connect(**connect_kwargs)
        except paramiko.AuthenticationException as e:
            client.close()
            raise TransportError(f"{self.name}: authentication failed: {e}") from e
        except paramiko.BadHostKeyException as e:
            client.close()
            raise TransportError(f"{self.name}: host key mismatch: {e}") from e
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise TransportError(f"{self.name}: connection failed: {e}") from e

        transport = client.get_transport()
        if transport is not None:
            transport.set_keepalive(KEEPALIVE_INTERVAL_S)
        self._client = client

    def _close(self) -> None:
        for channel in self._detached:
            try:
                channel.close()
            except Exception as e:  # closing must never fail the caller
                logger.debug("Ignoring channel close error: %s", e)
        self._detached.clear()

        if self._client is not None:
            try:
                self._client.close()
            except Exception as e:
                logger.debug("Ignoring client close error: %s", e)
            self._client = None

    # ── Execution ────────────────────────────────────────────────

    def _open_channel(self, command: str) -> paramiko.Channel:
        if self._client is None:
            raise TransportError(f"{self.name}: not connected")
        transport = self._client.get_transport()
        if transport is None or not transport.is_active():
            raise TransportError(f"{self.name}: connection is no longer active")
        try:
            channel = transport.open_session()
            channel.exec_command(command)
            channel.shutdown_write()
        except (paramiko.SSHException, OSError) as e:
            raise TransportError(f"{self.name}: cannot start command: {e}") from e
        return channel

    def _execute(self, command: str) -> CommandResult:
        channel = self._open_channel(command)
        try:
            return self._pump(channel, None, None)
        finally:
            channel.close()

    def _execute_until(
        self,
        command: str,
        predicate: OutputPredicate,
        on_output: OutputCallback | None,
    ) -> CommandResult:
        channel = self._open_channel(command)
        result = self._pump(channel, predicate, on_output)
        if result.exit_status is None:
            # Predicate matched: the remote side keeps running until close().
            self._detached.append(channel)
        else:
            channel.close()
        return result

    def _pump(
        self,
        channel: paramiko.Channel,
        predicate: OutputPredicate | None,
        on_output: OutputCallback | None,
    ) -> CommandResult:
        """Drain stdout/stderr until exit, or until ``predicate`` matches."""
        out_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        err_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        stdout = ""
        stderr = ""
        last_data_at = time.monotonic()

        try:
            while True:
                progressed = False

                if channel.recv_ready():
                    data = channel.recv(BUFFER_SIZE)
                    if data:
                        chunk = out_decoder.decode(data)
                        stdout += chunk
                        progressed = True
                        if on_output is not None and chunk:
                            on_output(chunk)
                        if predicate is not None and predicate(stdout):
                            return CommandResult(stdout=stdout, stderr=stderr, exit_status=None)

                if channel.recv_stderr_ready():
                    data = channel.recv_stderr(BUFFER_SIZE)
                    if data:
                        stderr += err_decoder.decode(data)
                        progressed = True

                if (
                    channel.exit_status_ready()
                    and not channel.recv_ready()
                    and not channel.recv_stderr_ready()
                ):
                    status = channel.recv_exit_status()
                    stdout += out_decoder.decode(b"", final=True)
                    stderr += err_decoder.decode(b"", final=True)
                    return CommandResult(stdout=stdout, stderr=stderr, exit_status=status)

                if progressed:
                    last_data_at = time.monotonic()
                else:
                    if (
                        self._idle_timeout is not None
                        and time.monotonic() - last_data_at > self._idle_timeout
                    ):
                        raise TransportError(
                            f"{self.name}: no output for {self._idle_timeout:.0f}s"
                        )
                    time.sleep(POLL_INTERVAL_S)
        except (paramiko.SSHException, OSError) as e:
            raise TransportError(f"{self.name}: I/O error: {e}") from e
