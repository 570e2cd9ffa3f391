"""
Logging setup for rbootstrap.

``main.py`` calls :func:`setup_logging` once; modules log through
``logging.getLogger(__name__)``.  Console output goes to stderr so that
``--json`` output on stdout stays machine-readable.

Environment:
    RBOOT_LOG_LEVEL       console level when no CLI flag is given
    RBOOT_LOG_FILE        also write records to this file
    RBOOT_LOG_FILE_LEVEL  level for the file (defaults to the console level)
"""

from __future__ import annotations

import logging
import os
import re
import sys
from collections.abc import Mapping

ENV_LEVEL = "RBOOT_LOG_LEVEL"
ENV_FILE = "RBOOT_LOG_FILE"
ENV_FILE_LEVEL = "RBOOT_LOG_FILE_LEVEL"

# ── Formats per console level ───────────────────────────────────

_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
}
_CONSOLE_DEFAULT = ("%(message)s", None)

_FILE_FORMAT = ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%Y-%m-%d %H:%M:%S")

# paramiko logs every packet and key exchange at DEBUG/INFO
NOISY_LOGGERS = ("paramiko", "paramiko.transport")

_TOKEN_PATTERNS = (
    re.compile(r"(connectionToken==)[^=\s]+"),
    re.compile(r"(--connection-token(?:-file)?[= ])\S+"),
)


class TokenRedactingFilter(logging.Filter):
    """Mask connection tokens that end up in command output or argv dumps."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern in _TOKEN_PATTERNS:
            redacted = pattern.sub(r"\1***", redacted)
        if redacted != message:
            record.msg, record.args = redacted, None
        return True


def parse_level(level: str | None) -> int:
    """Level name to its numeric value; unknown names fall back to WARNING."""
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.WARNING


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level: --debug > --verbose > --quiet > RBOOT_LOG_LEVEL."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if environ is None else environ
    return env.get(ENV_LEVEL, "WARNING")


def _handler(handler: logging.Handler, level: int, fmt: tuple[str, str | None]) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt[0], datefmt=fmt[1]))
    handler.addFilter(TokenRedactingFilter())
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Install the stderr handler, plus a file handler when ``log_file`` is set.

    The root logger runs at the lower of the two handler levels so a
    DEBUG log file still fills up behind a quiet console.  Unless the
    console is at DEBUG, paramiko is held at WARNING.
    """
    console_level = parse_level(level)
    handlers = [
        _handler(
            logging.StreamHandler(sys.stderr),
            console_level,
            _CONSOLE_FORMATS.get(console_level, _CONSOLE_DEFAULT),
        )
    ]

    root_level = console_level
    if log_file:
        file_level = parse_level(log_file_level) if log_file_level else console_level
        root_level = min(root_level, file_level)
        handlers.append(_handler(logging.FileHandler(log_file, encoding="utf-8"), file_level, _FILE_FORMAT))

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False
