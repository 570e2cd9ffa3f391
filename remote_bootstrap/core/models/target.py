"""
Remote target — connection parameters for one host.

These come from an external identity collaborator (ssh_config parsing,
key discovery); the bootstrap core treats them as opaque.
"""

from __future__ import annotations

from pydantic import BaseModel


class SSHTarget(BaseModel):
    """Where and as whom to connect."""

    host: str
    port: int = 22
    user: str | None = None
    identity_file: str | None = None
    password: str | None = None
    connect_timeout: float = 15.0

    @property
    def label(self) -> str:
        """``user@host:port`` for logs and notifications."""
        prefix = f"{self.user}@" if self.user else ""
        suffix = f":{self.port}" if self.port != 22 else ""
        return f"{prefix}{self.host}{suffix}"

    def to_state(self) -> dict:
        """Snapshot for the state file — secrets are never persisted."""
        return self.model_dump(exclude={"password"})
