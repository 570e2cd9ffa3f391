"""
L2 Rendering — PowerShell install script for Windows hosts.

Windows hosts only have one server build (x64, which ARM64 runs under
emulation), so the download URL is fully resolved before rendering.
Runtime remediation never applies here.
"""

from __future__ import annotations

import logging

from remote_bootstrap.core.models.install import InstallOptions
from remote_bootstrap.core.services.server_install.data.constants import (
    LISTEN_POLL_ATTEMPTS,
    LISTEN_POLL_INTERVAL_S,
    LISTENING_MARKER,
    POWERSHELL_DOWNLOAD_TIMEOUT_S,
    SERVER_START_FLAGS,
    SERVER_TAIL_FLAGS,
    WINDOWS_X64_ARCHES,
)
from remote_bootstrap.core.services.server_install.domain.quoting import (
    check_env_name,
    check_extension_id,
    check_folder_name,
    check_text,
    ps_double_quoted,
)
from remote_bootstrap.core.services.server_install.domain.url_template import (
    resolve_download_url,
)
from remote_bootstrap.core.services.server_install.scripts.template import (
    render_template,
)

logger = logging.getLogger(__name__)

WINDOWS_PLATFORM = "win32"
WINDOWS_ARCH = "x64"


def _arch_test() -> str:
    return " -or ".join(f'($ARCH -eq "{arch}")' for arch in WINDOWS_X64_ARCHES)


def render_powershell_script(options: InstallOptions, *, keep_alive: bool = True) -> str:
    """Render the PowerShell install script for one attempt.

    With ``keep_alive`` the script stays attached until the launched
    server exits, so the session keeps the server's console alive.

    Raises:
        ScriptGenerationError: On an invalid slot value or URL template.
    """
    if options.remediation.enabled:
        logger.warning("Custom C runtime is not supported on Windows hosts; ignoring it")

    extensions = " ".join(
        f"--install-extension {check_extension_id(ext)}" for ext in options.extension_ids
    )
    url = resolve_download_url(
        options.download_url_template,
        explicit_url=options.download_url,
        quality=options.quality,
        version=options.version,
        commit=options.commit,
        os=WINDOWS_PLATFORM,
        arch=WINDOWS_ARCH,
        release=options.release,
    )
    check_text(url, "download URL")

    env_lines = "\n".join(
        f'    "{name}==$env:{name}=="' for name in map(check_env_name, options.env_variables)
    )

    slots = {
        "ATTEMPT_ID": options.id,
        "DISTRO_VERSION": ps_double_quoted(check_text(options.version, "version")),
        "DISTRO_COMMIT": ps_double_quoted(check_folder_name(options.commit)),
        "DISTRO_QUALITY": ps_double_quoted(check_text(options.quality, "quality")),
        "DISTRO_RELEASE": ps_double_quoted(check_text(options.release or "", "release")),
        "SERVER_APP_NAME": ps_double_quoted(check_folder_name(options.server_application_name)),
        "SERVER_INITIAL_EXTENSIONS": extensions,
        "SERVER_DATA_FOLDER": ps_double_quoted(check_folder_name(options.server_data_folder_name)),
        "DOWNLOAD_URL": ps_double_quoted(url),
        "DOWNLOAD_TIMEOUT": str(POWERSHELL_DOWNLOAD_TIMEOUT_S),
        "RESULT_ENV_LINES": env_lines,
        "WINDOWS_ARCH_TEST": _arch_test(),
        "START_FLAGS": SERVER_START_FLAGS,
        "TAIL_FLAGS": SERVER_TAIL_FLAGS,
        "LISTENING_MARKER": LISTENING_MARKER,
        "LISTEN_POLL_ATTEMPTS": str(LISTEN_POLL_ATTEMPTS),
        "LISTEN_POLL_INTERVAL_MS": str(int(LISTEN_POLL_INTERVAL_S * 1000)),
    }
    features = {
        "socket_path": options.use_socket_path,
        "keep_alive": keep_alive,
    }
    return render_template("install.ps1", features, slots)
