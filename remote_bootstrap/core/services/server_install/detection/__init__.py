"""
L3 Detection — ``__init__.py`` re-exports all detection functions.

These functions READ host state but never WRITE.
Remote commands, env var reads, file reads — all read-only.
"""

from remote_bootstrap.core.services.server_install.detection.container import (  # noqa: F401
    detect_controlled_container,
    detect_local_marker,
    detect_remote_marker,
)
from remote_bootstrap.core.services.server_install.detection.glibc import (  # noqa: F401
    probe_abi_tags,
    probe_glibc_version,
    resolve_compatibility,
)
from remote_bootstrap.core.services.server_install.detection.platform_probe import (  # noqa: F401
    POSIX,
    WINDOWS,
    classify_uname,
    detect_platform,
)
