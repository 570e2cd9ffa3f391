"""
Bootstrap error taxonomy.

Every failure of the bootstrap pipeline is one of four kinds, so the
caller can tell "could not reach host" apart from "host reached but
install failed" apart from "install succeeded but result unreadable":

    TransportError          connect / auth / I/O on the session
    ScriptGenerationError   rendering failed, nothing was executed
    RemoteExecutionFailure  result block reported a non-zero exit code
    ParseError              result block missing or malformed
"""

from __future__ import annotations

from enum import Enum


class ServerBootstrapError(Exception):
    """Base class for every bootstrap pipeline failure."""


class TransportError(ServerBootstrapError):
    """The session could not connect, authenticate, or move bytes."""


class TransportBusyError(TransportError):
    """A second command was issued while the session was still in use."""


class ScriptGenerationError(ServerBootstrapError):
    """The install script could not be rendered (raised before execution)."""


class ParseError(ServerBootstrapError):
    """The structured result block was missing or malformed."""


class FailureKind(str, Enum):
    """Classification of a remote install failure, from its error message."""

    UNSUPPORTED_PLATFORM = "unsupported_platform"
    UNSUPPORTED_ARCH = "unsupported_arch"
    INSTALL_DIR = "install_dir"
    NO_DOWNLOAD_TOOL = "no_download_tool"
    DOWNLOAD_FAILED = "download_failed"
    EXTRACT_FAILED = "extract_failed"
    CORRUPTED_PAYLOAD = "corrupted_payload"
    TOKEN_MISSING = "token_missing"
    SERVER_NOT_LISTENING = "server_not_listening"
    LOG_MISSING = "log_missing"
    MANUAL_INSTALL = "manual_install"
    REMEDIATION_FAILED = "remediation_failed"
    UNKNOWN = "unknown"


# Message prefixes emitted by the generated scripts, checked in order.
_KIND_PREFIXES: tuple[tuple[str, FailureKind], ...] = (
    ("Error platform not supported", FailureKind.UNSUPPORTED_PLATFORM),
    ("Error architecture not supported", FailureKind.UNSUPPORTED_ARCH),
    ("Error creating server install directory", FailureKind.INSTALL_DIR),
    ("Error no tool to download server binary", FailureKind.NO_DOWNLOAD_TOOL),
    ("Error downloading server", FailureKind.DOWNLOAD_FAILED),
    ("Error while extracting server contents", FailureKind.EXTRACT_FAILED),
    ("Error while installing the server binary", FailureKind.CORRUPTED_PAYLOAD),
    ("Error server contents are corrupted", FailureKind.CORRUPTED_PAYLOAD),
    ("Error server token file not found", FailureKind.TOKEN_MISSING),
    ("Error server did not start successfully", FailureKind.SERVER_NOT_LISTENING),
    ("Error server log file not found", FailureKind.LOG_MISSING),
    ("Error installing runtime dependencies", FailureKind.REMEDIATION_FAILED),
)


def classify_failure(message: str) -> FailureKind:
    """Map a verbatim script error message to a FailureKind."""
    text = (message or "").strip()
    for prefix, kind in _KIND_PREFIXES:
        if text.startswith(prefix):
            return kind
    if "needs manual installation" in text:
        return FailureKind.MANUAL_INSTALL
    return FailureKind.UNKNOWN


class RemoteExecutionFailure(ServerBootstrapError):
    """The install script ran but reported a non-zero exit code."""

    def __init__(self, exit_code: int, error_message: str = ""):
        self.exit_code = exit_code
        self.error_message = error_message
        self.kind = classify_failure(error_message)
        detail = error_message or "install script returned non-zero exit status"
        super().__init__(f"Couldn't install server on remote host: {detail} (exit {exit_code})")


def describe_failure(exc: BaseException) -> str:
    """Return the operator-facing category for a pipeline failure."""
    if isinstance(exc, TransportError):
        return "Could not reach host"
    if isinstance(exc, ScriptGenerationError):
        return "Could not generate install script"
    if isinstance(exc, RemoteExecutionFailure):
        return "Host reached but install failed"
    if isinstance(exc, ParseError):
        return "Install finished but result unreadable"
    return "Unexpected failure"
