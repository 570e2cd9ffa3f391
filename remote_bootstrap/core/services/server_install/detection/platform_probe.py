"""
L3 Detection — Remote platform and shell probe.

Runs ``uname -s`` and reads the answer, or the shell's complaint about
it, to tell POSIX hosts from Windows hosts and which Windows shell
received the command.
"""

from __future__ import annotations

import logging

from remote_bootstrap.adapters.base import Transport

logger = logging.getLogger(__name__)

POSIX = "posix"
WINDOWS = "windows"

# (stream, needle) → (platform, shell), checked in order
_SIGNATURES: tuple[tuple[str, str, str, str], ...] = (
    ("stdout", "windows32", WINDOWS, "powershell"),
    ("stdout", "MINGW64", WINDOWS, "bash"),
    ("stderr", "CommandNotFoundException", WINDOWS, "powershell"),
    ("stderr", "is not recognized as an internal or external command", WINDOWS, "cmd"),
)


def classify_uname(stdout: str, stderr: str) -> tuple[str, str] | None:
    """Map ``uname -s`` output to ``(platform, shell)``; ``None`` if not Windows."""
    streams = {"stdout": stdout or "", "stderr": stderr or ""}
    for stream, needle, platform, shell in _SIGNATURES:
        if needle in streams[stream]:
            return platform, shell
    return None


def detect_platform(transport: Transport, platform: str | None = None) -> tuple[str, str]:
    """Resolve ``(platform, shell)`` for the host behind ``transport``.

    The probe only runs when the platform is unknown or hinted as
    ``windows`` (to learn the shell). A hinted Windows host whose probe
    is inconclusive is assumed to run PowerShell.
    """
    if platform and platform != WINDOWS:
        return POSIX, "bash"

    result = transport.execute("uname -s")
    detected = classify_uname(result.stdout, result.stderr)
    if detected is None:
        detected = (WINDOWS, "powershell") if platform == WINDOWS else (POSIX, "bash")

    logger.debug("Detected platform: %s, %s", *detected)
    return detected
