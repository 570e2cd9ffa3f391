"""
L2 Rendering — Script template engine.

Processes template files with two mechanisms:
  1. Conditional blocks:  # __IF_FEATURE_xxx__ / # __IF_NOT_FEATURE_xxx__ / # __ENDIF__
  2. Slot substitution:   __SLOT_NAME__

The templates live in ``templates/`` and are real bash / PowerShell
files that editors can syntax-highlight. The conditional marker lines
are plain ``#`` comments in both languages.

Slot values are inserted verbatim: each renderer escapes its values
for the quoting context of the slot before handing them over. Slots
are substituted in a single pass, so a value can never introduce a
slot of its own.
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

from remote_bootstrap.core.errors import ScriptGenerationError

TEMPLATES_DIR = Path(__file__).parent / "templates"

_SLOT_RE = re.compile(r"__([A-Z][A-Z0-9_]*)__")
_IF_RE = re.compile(r"#\s*__IF_FEATURE_(\w+)__\s*\n(.*?)#\s*__ENDIF__\s*\n", re.DOTALL)
_IF_NOT_RE = re.compile(r"#\s*__IF_NOT_FEATURE_(\w+)__\s*\n(.*?)#\s*__ENDIF__\s*\n", re.DOTALL)


@lru_cache(maxsize=None)
def load_template(name: str) -> str:
    """Read a template file from the templates directory."""
    path = TEMPLATES_DIR / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ScriptGenerationError(f"Script template not found: {name}") from e


def check_unsubstituted(content: str, slots: dict[str, str]) -> list[str]:
    """Return slot names used in ``content`` that ``slots`` does not provide."""
    return sorted({name for name in _SLOT_RE.findall(content) if name not in slots})


def process_template(
    content: str,
    features: dict[str, bool],
    slots: dict[str, str],
) -> str:
    """Process a template with conditional blocks and slots.

        # __IF_FEATURE_xxx__
        ... included only if feature 'xxx' is enabled ...
        # __ENDIF__

    Blocks do not nest. ``slots`` keys are bare names (``"SERVER_DIR"``
    fills ``__SERVER_DIR__``).

    Raises:
        ScriptGenerationError: When a slot left in the template has no value.
    """
    content = _IF_RE.sub(
        lambda m: m.group(2) if features.get(m.group(1), False) else "",
        content,
    )
    content = _IF_NOT_RE.sub(
        lambda m: "" if features.get(m.group(1), False) else m.group(2),
        content,
    )

    unresolved = check_unsubstituted(content, slots)
    if unresolved:
        raise ScriptGenerationError(f"Unfilled template slot(s): {', '.join(unresolved)}")

    content = _SLOT_RE.sub(lambda m: slots[m.group(1)], content)

    # Clean up empty lines left by removed blocks (max 2 consecutive)
    return re.sub(r"\n{3,}", "\n\n", content)


def render_template(name: str, features: dict[str, bool], slots: dict[str, str]) -> str:
    """Load and process a named template."""
    return process_template(load_template(name), features, slots)
