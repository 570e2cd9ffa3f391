"""
State file persistence for BootstrapState.

One JSON document, ``.state/remote-bootstrap.json`` by default.  The
reinstall flag must survive a crash, so a save is only complete once
the data and the rename have both reached the disk.  A file that no
longer parses is moved aside rather than overwritten.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from remote_bootstrap.core.models.state import STATE_NAMESPACE, BootstrapState

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = ".state"
DEFAULT_STATE_FILE = "remote-bootstrap.json"
CORRUPT_SUFFIX = ".corrupt"


def default_state_path(root: Path | None = None) -> Path:
    """``<root or cwd>/.state/remote-bootstrap.json``."""
    return (root or Path.cwd()) / DEFAULT_STATE_DIR / DEFAULT_STATE_FILE


def _quarantine(path: Path, reason: object) -> None:
    target = path.with_name(path.name + CORRUPT_SUFFIX)
    try:
        path.replace(target)
    except OSError as e:
        logger.warning("Unreadable state %s (%s); could not move it aside: %s", path, reason, e)
        return
    logger.warning("Unreadable state %s (%s); kept as %s", path, reason, target.name)


def load_state(path: Path) -> BootstrapState:
    """Read the state document; missing or unreadable files give a fresh one."""
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        logger.info("No state file at %s, starting fresh", path)
        return BootstrapState()
    except OSError as e:
        logger.warning("Cannot read state file %s: %s", path, e)
        return BootstrapState()

    try:
        state = BootstrapState.model_validate_json(raw)
    except ValidationError as e:
        _quarantine(path, e.errors()[0]["msg"] if e.errors() else e)
        return BootstrapState()

    logger.debug("Loaded state from %s (updated_at=%s)", path, state.updated_at)
    return state


def _fsync_dir(directory: Path) -> None:
    # Directory fds are not openable on Windows
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def save_state(state: BootstrapState, path: Path) -> None:
    """Write ``state`` to ``path`` through a synced temp file and a rename."""
    state.touch()
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        tmp.replace(path)
        _fsync_dir(path.parent)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to save state to %s: %s", path, e)
        raise
    logger.debug("State saved to %s", path)


class StateStore:
    """Namespaced key/value view over the state file.

    Every ``update`` is flushed to disk before it returns, so a value
    written here survives a crash that happens right after.
    """

    def __init__(self, path: Path, namespace: str = STATE_NAMESPACE):
        self.path = path
        self.namespace = namespace
        self._state = load_state(path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._state.get(key, default, namespace=self.namespace)

    def update(self, **values: Any) -> None:
        """Set one or more keys (``None`` deletes) and flush atomically."""
        for key, value in values.items():
            self._state.set(key, value, namespace=self.namespace)
        save_state(self._state, self.path)

    def snapshot(self) -> dict[str, Any]:
        """Copy of every key in this store's namespace."""
        return dict(self._state.namespaces.get(self.namespace, {}))

    def reload(self) -> None:
        """Re-read the file, dropping in-memory values."""
        self._state = load_state(self.path)
