"""SSH transport (paramiko)."""

from remote_bootstrap.adapters.ssh.connection import SSHTransport

__all__ = ["SSHTransport"]
