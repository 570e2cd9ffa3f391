"""
L1 Domain — Shell quoting and slot validation (pure).

Every value interpolated into a generated script passes through one of
these functions. Identifiers (extension ids, env var names) are
validated against a strict character set; free text (URLs, paths) is
escaped for the quoting context it lands in.
No I/O, no subprocess.
"""

from __future__ import annotations

import re

from remote_bootstrap.core.errors import ScriptGenerationError

_EXTENSION_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*(@[A-Za-z0-9_.+-]+)?$")
_ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_FOLDER_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")


def check_extension_id(ext_id: str) -> str:
    if not _EXTENSION_ID_RE.match(ext_id):
        raise ScriptGenerationError(f"Invalid extension id: {ext_id!r}")
    return ext_id


def check_env_name(name: str) -> str:
    if not _ENV_NAME_RE.match(name):
        raise ScriptGenerationError(f"Invalid environment variable name: {name!r}")
    return name


def check_folder_name(name: str) -> str:
    """A single path component under ``$HOME`` (no separators, no ``..``)."""
    if not _FOLDER_NAME_RE.match(name) or name in (".", ".."):
        raise ScriptGenerationError(f"Invalid folder name: {name!r}")
    return name


def check_text(value: str, what: str) -> str:
    """Free text must stay on one line and not collide with the wire format."""
    if _CONTROL_RE.search(value):
        raise ScriptGenerationError(f"{what} contains control characters")
    if "==" in value:
        raise ScriptGenerationError(f"{what} must not contain '=='")
    return value


# ── POSIX sh ────────────────────────────────────────────────────


def sh_double_quoted(value: str) -> str:
    """Escape for the inside of a double-quoted sh string.

    ``\\``, ``"``, ``$`` and backtick are the only characters that keep
    a special meaning between double quotes.
    """
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("$", "\\$")
        .replace("`", "\\`")
    )


def sh_single_quote_wrap(script: str) -> str:
    """Wrap text in single quotes, rewriting inner ``'`` as ``'\\''``.

    sh has no escaping inside single quotes, so each quote closes the
    string, emits an escaped quote, and reopens it.
    """
    return "'" + script.replace("'", "'\\''") + "'"


# ── PowerShell ──────────────────────────────────────────────────


def ps_double_quoted(value: str) -> str:
    """Escape for the inside of a double-quoted PowerShell string."""
    return (
        value.replace("`", "``")
        .replace('"', '`"')
        .replace("$", "`$")
    )


def ps_single_quoted(value: str) -> str:
    """Escape for the inside of a single-quoted PowerShell string."""
    return value.replace("'", "''")
