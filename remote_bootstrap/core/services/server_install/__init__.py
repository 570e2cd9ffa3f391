"""
Server installation service — package re-exports.

    from remote_bootstrap.core.services.server_install import install_server

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → scripts → detection →
execution → orchestration).
"""

# ── L0: Data ──
from remote_bootstrap.core.services.server_install.data.constants import (  # noqa: F401
    DEFAULT_DOWNLOAD_URL_TEMPLATE,
    REQUIRED_GLIBC_VERSION,
)

# ── L1: Domain ──
from remote_bootstrap.core.services.server_install.domain.output_parser import (  # noqa: F401
    parse_install_output,
)
from remote_bootstrap.core.services.server_install.domain.version_compare import (  # noqa: F401
    compare_versions,
)

# ── L2: Rendering ──
from remote_bootstrap.core.services.server_install.scripts.bash_script import (  # noqa: F401
    render_bash_script,
)
from remote_bootstrap.core.services.server_install.scripts.powershell_script import (  # noqa: F401
    render_powershell_script,
)

# ── L3: Detection ──
from remote_bootstrap.core.services.server_install.detection.container import (  # noqa: F401
    detect_controlled_container,
)
from remote_bootstrap.core.services.server_install.detection.glibc import (  # noqa: F401
    resolve_compatibility,
)
from remote_bootstrap.core.services.server_install.detection.platform_probe import (  # noqa: F401
    detect_platform,
)

# ── L4: Execution ──
from remote_bootstrap.core.services.server_install.execution.cleanup import (  # noqa: F401
    delete_remote_server_dirs,
)
from remote_bootstrap.core.services.server_install.execution.fix_strategies import (  # noqa: F401
    apply_fix_strategy,
)

# ── L5: Orchestration ──
from remote_bootstrap.core.services.server_install.orchestration.orchestrator import (  # noqa: F401
    install_server,
)
from remote_bootstrap.core.services.server_install.orchestration.reinstall import (  # noqa: F401
    ReinstallPhase,
    ReinstallTrigger,
)
