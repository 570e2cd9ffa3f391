"""
L0 Data — ``__init__.py`` re-exports all data constants.
"""

from remote_bootstrap.core.services.server_install.data.constants import (  # noqa: F401
    ARCH_LABELS,
    CMD_MAX_COMMAND_LENGTH,
    DEFAULT_DOWNLOAD_URL_TEMPLATE,
    DEPS_FOLDER_NAME,
    DOWNLOAD_STRATEGY_FLOOR,
    KERNEL_PLATFORMS,
    LISTENING_MARKER,
    REQUIRED_ABI_SYMBOLS,
    REQUIRED_GLIBC_VERSION,
    URL_PLACEHOLDERS,
)
