"""Observability — process-wide logging setup."""

from remote_bootstrap.core.observability.logging_config import (  # noqa: F401
    parse_level,
    setup_logging,
)
