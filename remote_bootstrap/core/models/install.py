"""
Install models — the per-attempt request and its parsed outcome.

InstallOptions is built fresh for every attempt and never reused:
its ``id`` scopes the result markers in the remote output stream.
InstallResult is the typed view of the script's result block.
"""

from __future__ import annotations

import secrets

from pydantic import BaseModel, ConfigDict, Field


def new_attempt_id() -> str:
    """Random identifier for one install attempt (24 hex chars)."""
    return secrets.token_hex(12)


class ServerIdentity(BaseModel):
    """Which server build to install, and where it lives on the host."""

    model_config = ConfigDict(frozen=True)

    version: str
    commit: str
    quality: str = "stable"
    release: str | None = None  # VSCodium release suffix
    application_name: str = "codium-server"
    data_folder_name: str = ".vscodium-server"
    download_url_template: str | None = None


class RemediationBundle(BaseModel):
    """Alternate C runtime to provision before the server starts."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    glibc_url: str = ""
    gcc_url: str = ""
    patchelf_url: str = ""

    def disabled(self) -> RemediationBundle:
        """Same URLs, remediation switched off."""
        return self.model_copy(update={"enabled": False})


class InstallOptions(BaseModel):
    """Immutable configuration for a single install attempt."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_attempt_id)

    # ── Server identity ─────────────────────────────────────────
    version: str
    commit: str
    quality: str = "stable"
    release: str | None = None

    # ── Server launch ───────────────────────────────────────────
    extension_ids: tuple[str, ...] = ()
    env_variables: tuple[str, ...] = ()
    use_socket_path: bool = False
    server_application_name: str = "codium-server"
    server_data_folder_name: str = ".vscodium-server"

    # ── Download ────────────────────────────────────────────────
    download_url_template: str = ""
    download_url: str | None = None

    # ── ABI remediation ─────────────────────────────────────────
    remediation: RemediationBundle = Field(default_factory=RemediationBundle)

    @classmethod
    def for_server(
        cls,
        server: ServerIdentity,
        *,
        download_url_template: str,
        download_url: str | None = None,
        extension_ids: list[str] | tuple[str, ...] = (),
        env_variables: list[str] | tuple[str, ...] = (),
        use_socket_path: bool = False,
        remediation: RemediationBundle | None = None,
    ) -> InstallOptions:
        """Build options for a new attempt (fresh ``id``) from a server identity."""
        return cls(
            version=server.version,
            commit=server.commit,
            quality=server.quality,
            release=server.release,
            extension_ids=tuple(extension_ids),
            env_variables=tuple(env_variables),
            use_socket_path=use_socket_path,
            server_application_name=server.application_name,
            server_data_folder_name=server.data_folder_name,
            download_url_template=download_url_template,
            download_url=download_url or None,
            remediation=remediation or RemediationBundle(),
        )


class InstallResult(BaseModel):
    """Parsed outcome of a successful install attempt."""

    exit_code: int
    listening_on: int | str  # port number, or socket path in socket mode
    connection_token: str
    log_file: str
    os_release_id: str = ""
    arch: str = ""
    platform: str = ""
    tmp_dir: str = ""

    # Caller-whitelisted environment variables captured on the host
    env: dict[str, str] = Field(default_factory=dict)

    @property
    def uses_socket(self) -> bool:
        """True when the server listens on a socket path instead of a port."""
        return isinstance(self.listening_on, str)

    def to_dict(self, *, reveal_token: bool = False) -> dict:
        """Serializable view; the token is redacted unless asked for."""
        data = self.model_dump()
        if not reveal_token:
            data["connection_token"] = "***"
        return data
