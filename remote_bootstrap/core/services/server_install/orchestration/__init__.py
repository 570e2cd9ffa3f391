"""
L5 Orchestration — ``__init__.py`` re-exports top-level coordinators.

These are the entry points that external code calls.
"""

from remote_bootstrap.core.services.server_install.orchestration.orchestrator import (  # noqa: F401
    build_install_command,
    install_server,
    settle_remediation,
)
from remote_bootstrap.core.services.server_install.orchestration.reinstall import (  # noqa: F401
    ReinstallPhase,
    ReinstallTrigger,
    snapshots_equal,
)
