"""
L1 Domain — Download URL templates (pure).

Templates use ``${name}`` placeholders from a closed set. Unknown
placeholders are a generation-time error: they would otherwise reach
the host as literal text and fail the download much later.
No I/O, no subprocess.
"""

from __future__ import annotations

import re

from remote_bootstrap.core.errors import ScriptGenerationError
from remote_bootstrap.core.services.server_install.data.constants import URL_PLACEHOLDERS

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]*)\}")


def find_placeholders(template: str) -> list[str]:
    """Return every ``${name}`` placeholder name in ``template``, in order."""
    return _PLACEHOLDER_RE.findall(template)


def validate_url_template(template: str) -> None:
    """Reject templates with placeholders outside the documented set.

    Raises:
        ScriptGenerationError: On an unknown or malformed placeholder.
    """
    unknown = [p for p in find_placeholders(template) if p not in URL_PLACEHOLDERS]
    if unknown:
        raise ScriptGenerationError(
            f"Unknown placeholder(s) in download URL template: "
            f"{', '.join('${' + p + '}' for p in unknown)} "
            f"(allowed: {', '.join(URL_PLACEHOLDERS)})"
        )


def resolve_download_url(
    template: str,
    *,
    explicit_url: str | None = None,
    quality: str = "",
    version: str = "",
    commit: str = "",
    os: str | None = None,
    arch: str | None = None,
    release: str | None = None,
) -> str:
    """Resolve the download URL as far as the caller's knowledge goes.

    An explicit full URL always wins. Otherwise each placeholder is
    replaced wherever it occurs, in any order. ``os`` and ``arch`` left
    as ``None`` keep their ``${os}`` / ``${arch}`` placeholders so the
    host can fill them in once it has detected its platform.
    """
    if explicit_url:
        return explicit_url

    validate_url_template(template)
    values: dict[str, str | None] = {
        "quality": quality,
        "version": version,
        "commit": commit,
        "os": os,
        "arch": arch,
        "release": release or "",
    }

    def _sub(m: re.Match) -> str:
        value = values[m.group(1)]
        return m.group(0) if value is None else value

    return _PLACEHOLDER_RE.sub(_sub, template)
