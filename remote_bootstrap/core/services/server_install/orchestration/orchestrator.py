"""
L5 Orchestration — Install the server on one host.

Ties the layers together for a single attempt:

    detect platform → settle remediation → resolve compatibility
        → render → execute → parse

Every input arrives as an explicit parameter; nothing here reads
settings. No retries: a failed attempt is reported and the caller
decides what happens next.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from remote_bootstrap.adapters.base import Transport
from remote_bootstrap.core.models.compat import (
    CompatibilityDecision,
    ContainerMarkerPolicy,
    FixStrategy,
)
from remote_bootstrap.core.models.install import (
    InstallOptions,
    InstallResult,
    RemediationBundle,
    ServerIdentity,
)
from remote_bootstrap.core.services.server_install.data.constants import (
    DEFAULT_DOWNLOAD_URL_TEMPLATE,
    REQUIRED_GLIBC_VERSION,
)
from remote_bootstrap.core.services.server_install.detection.container import (
    detect_controlled_container,
)
from remote_bootstrap.core.services.server_install.detection.glibc import (
    resolve_compatibility,
)
from remote_bootstrap.core.services.server_install.detection.platform_probe import (
    WINDOWS,
    detect_platform,
)
from remote_bootstrap.core.services.server_install.domain.output_parser import (
    parse_install_output,
)
from remote_bootstrap.core.services.server_install.execution.diagnostics import (
    save_script_copy,
)
from remote_bootstrap.core.services.server_install.scripts.bash_script import (
    render_bash_script,
)
from remote_bootstrap.core.services.server_install.scripts.commands import (
    posix_command,
    windows_command,
)
from remote_bootstrap.core.services.server_install.scripts.powershell_script import (
    render_powershell_script,
)

logger = logging.getLogger(__name__)


def settle_remediation(
    transport: Transport,
    remediation: RemediationBundle | None,
    *,
    platform: str,
    container_policy: ContainerMarkerPolicy | None = None,
    environ: Mapping[str, str] | None = None,
) -> RemediationBundle:
    """Return the bundle to render, switched off where it must not apply.

    Windows hosts never get a custom C runtime, and neither do hosts
    inside a controlled container.
    """
    bundle = remediation or RemediationBundle()
    if not bundle.enabled:
        return bundle
    if platform == WINDOWS:
        logger.warning("Custom C runtime is not supported on Windows hosts; disabling it")
        return bundle.disabled()
    if container_policy is not None and detect_controlled_container(
        transport, container_policy, environ,
    ):
        logger.info("Controlled container detected; custom C runtime disabled")
        return bundle.disabled()
    return bundle


def fold_decision(bundle: RemediationBundle, decision: CompatibilityDecision) -> RemediationBundle:
    """Keep the custom runtime only where the resolver asks for one."""
    if decision.needs_remediation:
        return bundle
    if decision.strategy is FixStrategy.CONTAINER:
        logger.warning(
            "glibc %s cannot take the custom runtime (needs >= %s); "
            "run the server in a container instead (rbootstrap compat fix --strategy container)",
            decision.system_version, decision.required_version,
        )
    else:
        logger.info("glibc %s is compatible; custom runtime not needed", decision.system_version)
    return bundle.disabled()


def build_install_command(
    options: InstallOptions,
    *,
    platform: str,
    shell: str,
) -> tuple[str, str]:
    """Render the script and wrap it for the host's shell.

    Returns:
        ``(script, command)``: the rendered script (for diagnostics)
        and the command line to execute.
    """
    if platform == WINDOWS:
        script = render_powershell_script(options)
        command = windows_command(
            script, shell, options.server_data_folder_name, options.commit,
        )
    else:
        script = render_bash_script(options)
        command = posix_command(script)
    return script, command


def install_server(
    transport: Transport,
    *,
    server: ServerIdentity,
    download_url_template: str | None = None,
    download_url: str | None = None,
    extension_ids: list[str] | tuple[str, ...] = (),
    env_variables: list[str] | tuple[str, ...] = (),
    platform: str | None = None,
    use_socket_path: bool = False,
    remediation: RemediationBundle | None = None,
    required_glibc_version: str = REQUIRED_GLIBC_VERSION,
    container_policy: ContainerMarkerPolicy | None = None,
    diagnostics_dir: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> InstallResult:
    """Install (or reuse) the server on the host behind ``transport``.

    Args:
        transport: A connected session; used strictly sequentially.
        server: Which server build to run.
        download_url_template: Overrides the server's own template.
        download_url: Full URL; wins over any template.
        extension_ids: Extensions installed on first start.
        env_variables: Remote env vars to capture into ``result.env``.
        platform: Known platform, or ``None`` / ``"windows"`` to probe.
        use_socket_path: Listen on a socket path instead of a TCP port.
        remediation: Custom C runtime bundle; applied only when the
            host's glibc needs it and is new enough to take it.
        required_glibc_version: Minimum glibc the server payload needs.
        container_policy: How to detect a controlled container.
        diagnostics_dir: Where to save a copy of the rendered script.
        environ: Local environment for a ``local`` container policy.

    Raises:
        TransportError: The session failed.
        ScriptGenerationError: Nothing was executed.
        RemoteExecutionFailure: The script reported a failure.
        ParseError: The result block was missing or malformed.
    """
    platform, shell = detect_platform(transport, platform)

    bundle = settle_remediation(
        transport,
        remediation,
        platform=platform,
        container_policy=container_policy,
        environ=environ,
    )
    if bundle.enabled:
        decision = resolve_compatibility(transport, required_version=required_glibc_version)
        bundle = fold_decision(bundle, decision)

    options = InstallOptions.for_server(
        server,
        download_url_template=(
            download_url_template
            or server.download_url_template
            or DEFAULT_DOWNLOAD_URL_TEMPLATE
        ),
        download_url=download_url,
        extension_ids=extension_ids,
        env_variables=env_variables,
        use_socket_path=use_socket_path,
        remediation=bundle,
    )
    script, command = build_install_command(options, platform=platform, shell=shell)

    if diagnostics_dir is not None:
        suffix = "ps1" if platform == WINDOWS else "sh"
        save_script_copy(diagnostics_dir, f"server-install-{options.commit}.{suffix}", script)

    logger.debug("Server install script:\n%s", script)
    logger.info(
        "%s: installing %s %s (%s/%s, attempt %s)",
        transport.name, server.application_name, server.version, platform, shell, options.id,
    )

    if platform == WINDOWS:
        end_marker = f"{options.id}: end"
        output = transport.execute_until(command, lambda stdout: end_marker in stdout)
    else:
        output = transport.execute(command)

    if output.stderr:
        logger.debug("Server install stderr:\n%s", output.stderr)
    logger.debug("Server install stdout:\n%s", output.stdout)

    result = parse_install_output(output.stdout, options.id, options.env_variables)
    logger.info(
        "%s: server listening on %s (log %s)",
        transport.name, result.listening_on, result.log_file,
    )
    return result
