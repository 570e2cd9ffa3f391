"""Persistence — atomic state file storage."""

from remote_bootstrap.core.persistence.state_file import (  # noqa: F401
    StateStore,
    default_state_path,
    load_state,
    save_state,
)
