"""
L5 Orchestration — Reinstall after remediation settings drift.

    Clean ──(remediation settings differ from snapshot)──▶ Dirty
    Dirty ──(activate, last target known)──▶ Reinstalling
    Reinstalling ──(always, success or failure)──▶ Clean

Intent is written before the operator is told anything: the dirty flag
and the new snapshot hit the state file first. After a reinstall the
flag is cleared whatever the outcome, so a failing host is never
retried in a loop; a crash mid-reinstall skips the clear and leaves
the flag set for the next activation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from remote_bootstrap.adapters.base import Transport
from remote_bootstrap.core.config.loader import (
    REMEDIATION_KEYS,
    SettingsStore,
    remediation_snapshot,
)
from remote_bootstrap.core.errors import describe_failure
from remote_bootstrap.core.models.install import InstallResult
from remote_bootstrap.core.models.state import (
    LAST_REMEDIATION_CONFIG_KEY,
    LAST_TARGET_KEY,
    NEEDS_REINSTALL_KEY,
)
from remote_bootstrap.core.models.target import SSHTarget
from remote_bootstrap.core.persistence.state_file import StateStore
from remote_bootstrap.core.services.server_install.execution.cleanup import (
    delete_remote_server_dirs,
)

logger = logging.getLogger(__name__)

Connector = Callable[[SSHTarget], Transport]
Installer = Callable[[Transport], InstallResult]
Notifier = Callable[[str], None]


class ReinstallPhase(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    REINSTALLING = "reinstalling"


def _normalize(value: Any) -> Any:
    return "" if value is None else value


def snapshots_equal(a: dict[str, Any] | None, b: dict[str, Any] | None) -> bool:
    """Compare two remediation snapshots value by value; missing and ``None`` equal ``""``."""
    a = a or {}
    b = b or {}
    keys = set(a) | set(b)
    return all(_normalize(a.get(k)) == _normalize(b.get(k)) for k in keys)


class ReinstallTrigger:
    """Watches remediation settings and replays the install when they drift.

    Args:
        settings: Live settings; watched through ``watch()``.
        state: Durable flag, snapshot and last target.
        connect: Opens a connected session to a target.
        install: Runs the installer over a session.
        folder_names: Server data folders to wipe before reinstalling.
        notify: Operator notification sink.
    """

    def __init__(
        self,
        settings: SettingsStore,
        state: StateStore,
        *,
        connect: Connector,
        install: Installer,
        folder_names: list[str] | tuple[str, ...] | Callable[[], list[str]],
        notify: Notifier | None = None,
    ):
        self.settings = settings
        self.state = state
        self._connect = connect
        self._install = install
        self._folder_names = folder_names
        self._notify = notify or (lambda message: logger.info("%s", message))
        self._reinstalling = False
        self._unsubscribe: Callable[[], None] | None = None

    # ── State ────────────────────────────────────────────────────

    @property
    def phase(self) -> ReinstallPhase:
        if self._reinstalling:
            return ReinstallPhase.REINSTALLING
        if self.state.get(NEEDS_REINSTALL_KEY, False):
            return ReinstallPhase.DIRTY
        return ReinstallPhase.CLEAN

    @property
    def last_target(self) -> SSHTarget | None:
        data = self.state.get(LAST_TARGET_KEY)
        return SSHTarget.model_validate(data) if data else None

    def remember_target(self, target: SSHTarget) -> None:
        """Record a successful install: the target and the settings it used."""
        self.state.update(
            **{
                LAST_TARGET_KEY: target.to_state(),
                LAST_REMEDIATION_CONFIG_KEY: remediation_snapshot(self.settings),
            }
        )

    # ── Clean → Dirty ────────────────────────────────────────────

    def watch(self) -> None:
        """Subscribe to the remediation settings."""
        if self._unsubscribe is None:
            self._unsubscribe = self.settings.subscribe(
                lambda key, old, new: self.check_drift(), keys=REMEDIATION_KEYS,
            )

    def unwatch(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def check_drift(self) -> bool:
        """Mark the server dirty if the remediation settings changed.

        Returns:
            True if the flag was raised by this call.
        """
        current = remediation_snapshot(self.settings)
        last = self.state.get(LAST_REMEDIATION_CONFIG_KEY)
        if last is not None and snapshots_equal(last, current):
            logger.info("Remediation settings event fired but values did not change")
            return False

        self.state.update(
            **{
                NEEDS_REINSTALL_KEY: True,
                LAST_REMEDIATION_CONFIG_KEY: current,
            }
        )
        self._notify(
            "Custom C runtime settings changed; the server will be reinstalled on next activation."
        )
        return True

    # ── Dirty → Reinstalling → Clean ─────────────────────────────

    def _folders(self) -> list[str]:
        names = self._folder_names
        return list(names() if callable(names) else names)

    def _reinstall(self, target: SSHTarget) -> InstallResult:
        transport = self._connect(target)
        try:
            removed = delete_remote_server_dirs(transport, self._folders())
            logger.info("%s: removed server dirs %s", transport.name, removed)
            return self._install(transport)
        finally:
            transport.close()

    def _clear(self) -> None:
        self._reinstalling = False
        self.state.update(**{NEEDS_REINSTALL_KEY: False})

    def activate(self) -> InstallResult | None:
        """Run a pending reinstall.

        Returns:
            The install result, or None when nothing was pending or no
            target is known yet (the flag then stays set).

        Raises:
            ServerBootstrapError: The reinstall failed; the flag is
                cleared anyway.
        """
        if self.phase is not ReinstallPhase.DIRTY:
            return None

        target = self.last_target
        if target is None:
            logger.warning("Reinstall pending but no previous target is known; keeping flag")
            return None

        logger.info("Reinstalling server on %s", target.label)
        self._reinstalling = True
        try:
            result = self._reinstall(target)
        except Exception as e:
            self._clear()
            self._notify(f"Server reinstall on {target.label} failed: {describe_failure(e)}: {e}")
            raise

        self._clear()
        self._notify(f"Server reinstalled on {target.label}, listening on {result.listening_on}")
        return result
