"""
L1 Domain — ABI compatibility verdict (pure).

Turns probed facts (glibc version, missing libstdc++ tags) into a
CompatibilityDecision. The probing lives in detection/glibc.py.
No I/O, no subprocess.
"""

from __future__ import annotations

import re

from remote_bootstrap.core.models.compat import CompatibilityDecision, FixStrategy
from remote_bootstrap.core.services.server_install.data.constants import (
    DOWNLOAD_STRATEGY_FLOOR,
)
from remote_bootstrap.core.services.server_install.domain.version_compare import (
    compare_versions,
)

UNKNOWN_VERSION = "unknown"

_ABI_TAG_RE = re.compile(r"^(GLIBCXX|CXXABI|GLIBC)_[0-9][0-9.]*$")


def parse_abi_tags(text: str) -> set[str]:
    """Collect ``GLIBCXX_x.y.z``-style tags from ``grep -ao`` output."""
    return {line.strip() for line in text.splitlines() if _ABI_TAG_RE.match(line.strip())}


def missing_abi_tags(required: list[str] | tuple[str, ...], present: set[str]) -> list[str]:
    """Required tags absent from ``present``, in declaration order."""
    return [tag for tag in required if tag not in present]


def decide_strategy(
    system_version: str,
    required_version: str,
    missing_symbols: list[str],
    *,
    floor_version: str = DOWNLOAD_STRATEGY_FLOOR,
    in_controlled_container: bool = False,
) -> CompatibilityDecision:
    """Pick the fix strategy for one host.

    compatible                      → skip
    incompatible, glibc >= floor    → download
    incompatible, glibc < floor     → container
    glibc not detected              → container
    controlled container            → skip (overridden)

    ``compile`` is never chosen here; it must be requested explicitly.
    """
    known = system_version not in ("", UNKNOWN_VERSION)
    is_compatible = (
        known
        and compare_versions(system_version, required_version) >= 0
        and not missing_symbols
    )

    if in_controlled_container:
        strategy = FixStrategy.SKIP
    elif is_compatible:
        strategy = FixStrategy.SKIP
    elif known and compare_versions(system_version, floor_version) >= 0:
        strategy = FixStrategy.DOWNLOAD
    else:
        strategy = FixStrategy.CONTAINER

    return CompatibilityDecision(
        system_version=system_version or UNKNOWN_VERSION,
        required_version=required_version,
        missing_symbols=list(missing_symbols),
        is_compatible=is_compatible,
        strategy=strategy,
        overridden=in_controlled_container,
    )
