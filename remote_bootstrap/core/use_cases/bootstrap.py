"""
Bootstrap use cases — glue between settings, state and the installer.

The installer takes explicit parameters; this module is where they are
read from settings and where the reinstall trigger gets its session
factory and installer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from remote_bootstrap.adapters.base import Transport
from remote_bootstrap.adapters.shell.local import LocalTransport
from remote_bootstrap.adapters.ssh.connection import SSHTransport
from remote_bootstrap.core.config.loader import (
    RemoteSettings,
    SettingsStore,
    remediation_snapshot,
)
from remote_bootstrap.core.models.install import InstallResult, ServerIdentity
from remote_bootstrap.core.models.state import (
    LAST_REMEDIATION_CONFIG_KEY,
    LAST_TARGET_KEY,
    NEEDS_REINSTALL_KEY,
)
from remote_bootstrap.core.models.target import SSHTarget
from remote_bootstrap.core.persistence.state_file import StateStore
from remote_bootstrap.core.services.server_install.orchestration.orchestrator import (
    install_server,
)
from remote_bootstrap.core.services.server_install.orchestration.reinstall import (
    ReinstallTrigger,
)

logger = logging.getLogger(__name__)


def open_session(
    target: SSHTarget | None,
    *,
    accept_unknown_hosts: bool = False,
) -> Transport:
    """Connect to ``target``, or to this machine when ``target`` is None."""
    if target is None:
        return LocalTransport().connect()
    return SSHTransport(target, accept_unknown_hosts=accept_unknown_hosts).connect()


def run_install(
    transport: Transport,
    settings: RemoteSettings,
    *,
    server: ServerIdentity | None = None,
    extension_ids: list[str] | tuple[str, ...] = (),
    env_variables: list[str] | tuple[str, ...] = (),
    platform: str | None = None,
    use_socket_path: bool = False,
    download_url: str | None = None,
    download_url_template: str | None = None,
    diagnostics_dir: Path | None = None,
) -> InstallResult:
    """Run the installer with values from settings, overridden by arguments."""
    return install_server(
        transport,
        server=server or settings.server_identity(),
        download_url_template=download_url_template or settings.server_download_url_template or None,
        download_url=download_url or settings.server_download_url or None,
        extension_ids=extension_ids,
        env_variables=env_variables,
        platform=platform,
        use_socket_path=use_socket_path,
        remediation=settings.remediation_bundle(),
        required_glibc_version=settings.required_glibc_version,
        container_policy=settings.container_policy(),
        diagnostics_dir=diagnostics_dir,
    )


def build_trigger(
    store: SettingsStore,
    state: StateStore,
    *,
    accept_unknown_hosts: bool = False,
    notify: Callable[[str], None] | None = None,
) -> ReinstallTrigger:
    """Reinstall trigger wired to SSH sessions and the settings-driven installer."""

    def _install(transport: Transport) -> InstallResult:
        return run_install(transport, RemoteSettings.from_store(store))

    return ReinstallTrigger(
        store,
        state,
        connect=lambda target: open_session(target, accept_unknown_hosts=accept_unknown_hosts),
        install=_install,
        folder_names=lambda: [RemoteSettings.from_store(store).server_data_folder_name],
        notify=notify,
    )


@dataclass
class StatusResult:
    """Reinstall state as the CLI shows it."""

    phase: str = "clean"
    needs_reinstall: bool = False
    last_target: dict[str, Any] | None = None
    last_snapshot: dict[str, Any] | None = None
    current_snapshot: dict[str, Any] = field(default_factory=dict)
    state_path: Path | None = None

    def to_dict(self) -> dict:
        return {
            "phase": self.phase,
            "needs_reinstall": self.needs_reinstall,
            "last_target": self.last_target,
            "last_snapshot": self.last_snapshot,
            "current_snapshot": self.current_snapshot,
            "state_path": str(self.state_path) if self.state_path else None,
        }


def get_status(trigger: ReinstallTrigger) -> StatusResult:
    state = trigger.state
    return StatusResult(
        phase=trigger.phase.value,
        needs_reinstall=bool(state.get(NEEDS_REINSTALL_KEY, False)),
        last_target=state.get(LAST_TARGET_KEY),
        last_snapshot=state.get(LAST_REMEDIATION_CONFIG_KEY),
        current_snapshot=remediation_snapshot(trigger.settings),
        state_path=state.path,
    )
