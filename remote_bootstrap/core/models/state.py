"""
BootstrapState — the persisted, process-wide state document.

Serialized to ``.state/remote-bootstrap.json``. Values are grouped
under a stable namespace so other tools can share the file without
colliding keys.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

STATE_NAMESPACE = "remoteBootstrap"

# Keys inside the namespace
NEEDS_REINSTALL_KEY = "needReinstallServer"
LAST_REMEDIATION_CONFIG_KEY = "lastGlibcConfig"
LAST_TARGET_KEY = "lastTarget"


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class BootstrapState(BaseModel):
    """Root state model — serialized to JSON."""

    schema_version: int = 1

    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    # namespace → key → value
    namespaces: dict[str, dict[str, Any]] = Field(default_factory=dict)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    def get(self, key: str, default: Any = None, namespace: str = STATE_NAMESPACE) -> Any:
        return self.namespaces.get(namespace, {}).get(key, default)

    def set(self, key: str, value: Any, namespace: str = STATE_NAMESPACE) -> None:
        if value is None:
            self.namespaces.get(namespace, {}).pop(key, None)
            return
        self.namespaces.setdefault(namespace, {})[key] = value
