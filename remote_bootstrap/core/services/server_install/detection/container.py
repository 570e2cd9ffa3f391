"""
L3 Detection — Controlled container marker.

A controlled container announces itself with a marker environment
variable, or with the marker written into a preference file such as
``/etc/environment``. Where to look is a ContainerMarkerPolicy choice:
on the remote host (default), in this process, or both.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from remote_bootstrap.adapters.base import Transport
from remote_bootstrap.core.models.compat import ContainerMarkerPolicy
from remote_bootstrap.core.services.server_install.domain.quoting import (
    check_env_name,
    sh_single_quote_wrap,
)
from remote_bootstrap.core.services.server_install.scripts.commands import posix_command

logger = logging.getLogger(__name__)

_HIT = "marker-found"


def _remote_probe_script(policy: ContainerMarkerPolicy) -> str:
    marker = check_env_name(policy.marker)
    lines = [f'if [ -n "${{{marker}:-}}" ]; then echo {_HIT}; exit 0; fi']
    for path in policy.preference_files:
        lines.append(
            f"if grep -qs {sh_single_quote_wrap(marker)} {sh_single_quote_wrap(path)}; "
            f"then echo {_HIT}; exit 0; fi"
        )
    lines.append("exit 0")
    return "\n".join(lines)


def detect_remote_marker(transport: Transport, policy: ContainerMarkerPolicy) -> bool:
    """Check the marker on the host behind ``transport``."""
    result = transport.execute(posix_command(_remote_probe_script(policy), shell="sh"))
    return _HIT in result.stdout


def detect_local_marker(
    policy: ContainerMarkerPolicy,
    environ: Mapping[str, str] | None = None,
) -> bool:
    """Check the marker in this process's environment and preference files."""
    env = os.environ if environ is None else environ
    if env.get(policy.marker):
        return True
    for path in policy.preference_files:
        try:
            if policy.marker in Path(path).read_text(encoding="utf-8", errors="replace"):
                return True
        except OSError:
            continue
    return False


def detect_controlled_container(
    transport: Transport | None,
    policy: ContainerMarkerPolicy,
    environ: Mapping[str, str] | None = None,
) -> bool:
    """Evaluate ``policy``; ``transport`` may be ``None`` for a local-only policy."""
    if policy.checks_local and detect_local_marker(policy, environ):
        logger.info("Controlled container marker %s found locally", policy.marker)
        return True
    if policy.checks_remote and transport is not None and detect_remote_marker(transport, policy):
        logger.info("Controlled container marker %s found on %s", policy.marker, transport.name)
        return True
    return False
