"""
L1 Domain — Dotted version comparison (pure).

Total order over dotted-integer version strings. Missing trailing
components count as zero, so ``2.17 == 2.17.0``.
No I/O, no subprocess.
"""

from __future__ import annotations

import re

_VERSION_RE = re.compile(r"(\d+(?:\.\d+)*)")


def parse_version(version: str) -> tuple[int, ...]:
    """Parse ``"v2.17.1"`` into ``(2, 17, 1)``.

    Raises:
        ValueError: If the string holds no dotted integers.
    """
    text = version.strip().lstrip("vV")
    parts = text.split(".")
    try:
        return tuple(int(p) for p in parts)
    except ValueError as e:
        raise ValueError(f"Not a dotted version: {version!r}") from e


def compare_versions(v1: str, v2: str) -> int:
    """Compare two dotted versions left to right.

    Returns:
        ``-1`` if ``v1 < v2``, ``0`` if equal, ``1`` if ``v1 > v2``.
    """
    a = parse_version(v1)
    b = parse_version(v2)
    width = max(len(a), len(b))
    a = a + (0,) * (width - len(a))
    b = b + (0,) * (width - len(b))
    if a > b:
        return 1
    if a < b:
        return -1
    return 0


def extract_version(text: str) -> str | None:
    """Pull the last dotted version out of tool output.

    ``ldd --version`` prints e.g. ``ldd (GNU libc) 2.17`` or
    ``ldd (Ubuntu GLIBC 2.35-0ubuntu3.8) 2.35``; the trailing number
    is the one we want.
    """
    first_line = text.strip().splitlines()[0] if text.strip() else ""
    matches = _VERSION_RE.findall(first_line)
    dotted = [m for m in matches if "." in m]
    return dotted[-1] if dotted else None
