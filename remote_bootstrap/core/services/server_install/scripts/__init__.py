"""
L2 Rendering — ``__init__.py`` re-exports the script renderers.

Pure text generation from templates. Nothing here touches a host.
"""

from remote_bootstrap.core.services.server_install.scripts.bash_script import (  # noqa: F401
    render_bash_script,
    render_compile_script,
    render_remediation_block,
    render_runtime_fix_script,
)
from remote_bootstrap.core.services.server_install.scripts.commands import (  # noqa: F401
    WINDOWS_SHELLS,
    cmd_escape_script,
    posix_command,
    windows_command,
    windows_install_paths,
)
from remote_bootstrap.core.services.server_install.scripts.powershell_script import (  # noqa: F401
    render_powershell_script,
)
from remote_bootstrap.core.services.server_install.scripts.template import (  # noqa: F401
    check_unsubstituted,
    process_template,
    render_template,
)
