"""
L3 Detection — C runtime compatibility of a remote host.

Read-only probes: the host's glibc version and the ABI tags its
libstdc++ exports. The verdict itself is computed by
``domain.compat_policy.decide_strategy``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from remote_bootstrap.adapters.base import Transport
from remote_bootstrap.core.models.compat import CompatibilityDecision, ContainerMarkerPolicy
from remote_bootstrap.core.services.server_install.data.constants import (
    DOWNLOAD_STRATEGY_FLOOR,
    REQUIRED_ABI_SYMBOLS,
    REQUIRED_GLIBC_VERSION,
)
from remote_bootstrap.core.services.server_install.detection.container import (
    detect_controlled_container,
)
from remote_bootstrap.core.services.server_install.domain.compat_policy import (
    UNKNOWN_VERSION,
    decide_strategy,
    missing_abi_tags,
    parse_abi_tags,
)
from remote_bootstrap.core.services.server_install.domain.version_compare import (
    extract_version,
)
from remote_bootstrap.core.services.server_install.scripts.commands import posix_command

logger = logging.getLogger(__name__)

_LIBSTDCXX_CANDIDATES = (
    "/usr/lib64/libstdc++.so.6",
    "/usr/lib/x86_64-linux-gnu/libstdc++.so.6",
    "/usr/lib/aarch64-linux-gnu/libstdc++.so.6",
    "/usr/lib/libstdc++.so.6",
    "/lib64/libstdc++.so.6",
)

_ABI_TAGS_SCRIPT = "\n".join([
    "LIB=\"$(ldconfig -p 2>/dev/null | grep -F 'libstdc++.so.6 ' | head -n 1 | sed 's/.*=> //')\"",
    f"for c in {' '.join(_LIBSTDCXX_CANDIDATES)}; do",
    '    if [ -z "$LIB" ] && [ -f "$c" ]; then LIB="$c"; fi',
    "done",
    'if [ -n "$LIB" ]; then grep -aoE \'(GLIBCXX|CXXABI)_[0-9][0-9.]*\' "$LIB" | sort -u; fi',
])


def probe_glibc_version(transport: Transport) -> str:
    """Return the host's glibc version, or ``"unknown"`` (musl, macOS, ...)."""
    result = transport.execute("ldd --version")
    version = extract_version(result.stdout) if result.ok else None
    if version is None:
        result = transport.execute("getconf GNU_LIBC_VERSION")
        version = extract_version(result.stdout) if result.ok else None
    logger.debug("%s: glibc version %s", transport.name, version or UNKNOWN_VERSION)
    return version or UNKNOWN_VERSION


def probe_abi_tags(transport: Transport) -> set[str]:
    """ABI version tags exported by the host's ``libstdc++.so.6`` (empty if none found)."""
    result = transport.execute(posix_command(_ABI_TAGS_SCRIPT, shell="sh"))
    return parse_abi_tags(result.stdout)


def resolve_compatibility(
    transport: Transport,
    *,
    required_version: str = REQUIRED_GLIBC_VERSION,
    required_symbols: list[str] | tuple[str, ...] = REQUIRED_ABI_SYMBOLS,
    floor_version: str = DOWNLOAD_STRATEGY_FLOOR,
    container_policy: ContainerMarkerPolicy | None = None,
    environ: Mapping[str, str] | None = None,
) -> CompatibilityDecision:
    """Probe the host and decide how to make the server payload run there."""
    system_version = probe_glibc_version(transport)
    missing = missing_abi_tags(required_symbols, probe_abi_tags(transport))
    in_container = (
        container_policy is not None
        and detect_controlled_container(transport, container_policy, environ)
    )

    decision = decide_strategy(
        system_version,
        required_version,
        missing,
        floor_version=floor_version,
        in_controlled_container=in_container,
    )
    logger.info(
        "%s: glibc %s (required %s), %d missing ABI tag(s) → %s%s",
        transport.name,
        decision.system_version,
        decision.required_version,
        len(decision.missing_symbols),
        decision.strategy.value,
        " (controlled container)" if decision.overridden else "",
    )
    return decision
