"""
L4 Execution — Diagnostic copies of generated scripts.

A copy of every rendered install script is written locally so a
failed install can be reproduced by hand. Best-effort: a failure to
write is logged and never aborts the install.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def save_script_copy(directory: Path | str, name: str, script: str) -> Path | None:
    """Write ``script`` to ``directory / name``; return the path, or None on failure."""
    path = Path(directory) / name
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(script, encoding="utf-8")
    except OSError as e:
        logger.error("Failed to save install script copy to %s: %s", path, e)
        return None
    logger.info("Saved install script copy to %s", path)
    return path
