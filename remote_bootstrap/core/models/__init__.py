"""
Domain models — Pydantic types for the bootstrap pipeline.

All models are re-exported here for convenient access:

    from remote_bootstrap.core.models import InstallOptions, InstallResult, SSHTarget
"""

from remote_bootstrap.core.models.compat import (
    CompatibilityDecision,
    ContainerMarkerPolicy,
    FixOutcome,
    FixStrategy,
)
from remote_bootstrap.core.models.install import (
    InstallOptions,
    InstallResult,
    RemediationBundle,
    ServerIdentity,
    new_attempt_id,
)
from remote_bootstrap.core.models.state import BootstrapState
from remote_bootstrap.core.models.target import SSHTarget

__all__ = [
    # state.py
    "BootstrapState",
    # compat.py
    "CompatibilityDecision",
    "ContainerMarkerPolicy",
    "FixOutcome",
    "FixStrategy",
    # install.py
    "InstallOptions",
    "InstallResult",
    "RemediationBundle",
    # target.py
    "SSHTarget",
    "ServerIdentity",
    "new_attempt_id",
]
