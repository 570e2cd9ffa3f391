"""
L4 Execution — Applying an ABI fix strategy on a host.

The only place the resolver's verdict turns into side effects. Every
strategy is idempotent: running it twice leaves the host as running it
once, and the second run reports ``changed=False``.
"""

from __future__ import annotations

import logging

from remote_bootstrap.adapters.base import CommandResult, Transport
from remote_bootstrap.core.models.compat import FixOutcome, FixStrategy
from remote_bootstrap.core.models.install import RemediationBundle
from remote_bootstrap.core.services.server_install.data.constants import (
    CONTAINER_RUNTIMES,
    GLIBC_SOURCE_URL,
)
from remote_bootstrap.core.services.server_install.scripts.bash_script import (
    render_compile_script,
    render_runtime_fix_script,
)
from remote_bootstrap.core.services.server_install.scripts.commands import posix_command

logger = logging.getLogger(__name__)


def _fields(stdout: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for line in stdout.splitlines():
        key, sep, value = line.strip().partition("==")
        if sep and value.endswith("=="):
            fields[key] = value[:-2]
    return fields


def _script_outcome(strategy: FixStrategy, result: CommandResult) -> FixOutcome:
    fields = _fields(result.stdout)
    ok = result.ok and fields.get("fixStatus") == "ok"
    if ok:
        changed = fields.get("changed") == "1"
        message = "runtime installed" if changed else "runtime already present"
    else:
        changed = False
        lines = [
            line for line in result.stdout.splitlines()
            if line.strip() and "==" not in line
        ]
        message = lines[-1] if lines else (result.stderr.strip() or "fix script failed")
    return FixOutcome(strategy=strategy, ok=ok, changed=changed, message=message)


def _apply_download(transport: Transport, bundle: RemediationBundle) -> FixOutcome:
    script = render_runtime_fix_script(bundle)
    return _script_outcome(FixStrategy.DOWNLOAD, transport.execute(posix_command(script)))


def _apply_compile(transport: Transport, source_url: str) -> FixOutcome:
    script = render_compile_script(source_url)
    return _script_outcome(FixStrategy.COMPILE, transport.execute(posix_command(script)))


def _apply_container(transport: Transport) -> FixOutcome:
    for runtime in CONTAINER_RUNTIMES:
        result = transport.execute(f"command -v {runtime}")
        if result.ok and result.stdout.strip():
            return FixOutcome(
                strategy=FixStrategy.CONTAINER,
                ok=True,
                message=f"container runtime available: {runtime} ({result.stdout.strip()})",
            )
    return FixOutcome(
        strategy=FixStrategy.CONTAINER,
        ok=False,
        message=f"no container runtime found (looked for {', '.join(CONTAINER_RUNTIMES)})",
    )


def apply_fix_strategy(
    transport: Transport,
    strategy: FixStrategy | str,
    bundle: RemediationBundle | None = None,
    *,
    source_url: str = GLIBC_SOURCE_URL,
) -> FixOutcome:
    """Apply ``strategy`` on the host behind ``transport``.

    download   install glibc, gcc runtime and patchelf into the deps dir
    compile    build glibc from ``source_url`` into the deps dir
    container  check that docker or podman is available (nothing is launched)
    skip       nothing

    A failed remote step is reported in the outcome, not raised; only
    transport failures propagate.
    """
    strategy = FixStrategy(strategy)
    logger.info("%s: applying fix strategy %s", transport.name, strategy.value)

    if strategy is FixStrategy.DOWNLOAD:
        outcome = _apply_download(transport, bundle or RemediationBundle())
    elif strategy is FixStrategy.COMPILE:
        outcome = _apply_compile(transport, source_url)
    elif strategy is FixStrategy.CONTAINER:
        outcome = _apply_container(transport)
    else:
        outcome = FixOutcome(strategy=FixStrategy.SKIP, ok=True, message="nothing to fix")

    log = logger.info if outcome.ok else logger.warning
    log("%s: %s → %s", transport.name, strategy.value, outcome.message)
    return outcome
