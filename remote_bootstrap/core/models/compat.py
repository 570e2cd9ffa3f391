"""
Compatibility models — the ABI resolver's verdict and fix outcomes.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class FixStrategy(str, Enum):
    """How to make the server payload run on an older C runtime."""

    DOWNLOAD = "download"    # download-compatible-runtime
    COMPILE = "compile"      # compile-on-target (never auto-selected)
    CONTAINER = "container"  # run-in-container
    SKIP = "skip"            # nothing to fix


class CompatibilityDecision(BaseModel):
    """Output of the ABI compatibility resolver for one host."""

    system_version: str
    required_version: str
    missing_symbols: list[str] = Field(default_factory=list)
    is_compatible: bool
    strategy: FixStrategy
    overridden: bool = False  # forced to SKIP by a controlled container

    @property
    def needs_remediation(self) -> bool:
        """Whether the install script should provision an alternate runtime."""
        return self.strategy in (FixStrategy.DOWNLOAD, FixStrategy.COMPILE)


class FixOutcome(BaseModel):
    """Result of applying one fix strategy on a host."""

    strategy: FixStrategy
    ok: bool
    changed: bool = False  # False when the strategy was already satisfied
    message: str = ""


class ContainerMarkerPolicy(BaseModel):
    """How to recognise a controlled container that manages its own runtime.

    Inside such a container the custom runtime must never be grafted
    onto the server, whatever the resolver would otherwise decide.
    """

    model_config = ConfigDict(frozen=True)

    marker: str = "CLOUDDEV_CONTAINER"
    preference_files: tuple[str, ...] = ("/etc/environment",)
    # Where to look: on the remote host, in this process, or both
    source: Literal["remote", "local", "both"] = "remote"

    @property
    def checks_remote(self) -> bool:
        return self.source in ("remote", "both")

    @property
    def checks_local(self) -> bool:
        return self.source in ("local", "both")
