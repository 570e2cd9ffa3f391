"""
L4 Execution — ``__init__.py`` re-exports all execution functions.

These functions WRITE: remote commands that change the host, and
local diagnostic files.
"""

from remote_bootstrap.core.services.server_install.execution.cleanup import (  # noqa: F401
    delete_remote_server_dirs,
)
from remote_bootstrap.core.services.server_install.execution.diagnostics import (  # noqa: F401
    save_script_copy,
)
from remote_bootstrap.core.services.server_install.execution.fix_strategies import (  # noqa: F401
    apply_fix_strategy,
)
