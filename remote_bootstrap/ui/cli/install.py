"""
CLI commands for installing, removing and previewing the remote server.

Thin wrappers over ``remote_bootstrap.core.use_cases.bootstrap`` and
the ``server_install`` rendering layer.
"""

from __future__ import annotations

import json
from pathlib import Path

import click

from remote_bootstrap.ui.cli._common import (
    build_target,
    fail,
    settings_store,
    state_store,
    target_options,
)


def _server_identity(settings, version: str | None, commit: str | None):
    """Settings identity with command-line overrides."""
    if version:
        settings = settings.model_copy(update={"server_version": version})
    if commit:
        settings = settings.model_copy(update={"server_commit": commit})
    return settings.server_identity()


def _print_result(result, *, show_token: bool) -> None:
    click.secho("✅ Server is running", fg="green", bold=True)
    label = "Socket" if result.uses_socket else "Port"
    click.echo(f"   {label}:     {result.listening_on}")
    click.echo(f"   Token:    {result.connection_token if show_token else '***'}")
    click.echo(f"   Log:      {result.log_file}")
    if result.platform or result.arch:
        click.echo(f"   Platform: {result.platform}/{result.arch}")
    if result.os_release_id:
        click.echo(f"   OS:       {result.os_release_id}")
    for name, value in sorted(result.env.items()):
        click.echo(f"   ${name} = {value}")


# ── Install ─────────────────────────────────────────────────────


@click.command()
@target_options
@click.option(
    "--platform", type=click.Choice(["linux", "darwin", "freebsd", "windows"]), default=None,
    help="Skip detection for non-Windows platforms (windows is still probed).",
)
@click.option("--socket", "use_socket_path", is_flag=True, help="Listen on a socket path.")
@click.option("--extension", "extension_ids", multiple=True, help="Extension to install (repeatable).")
@click.option("--env", "env_variables", multiple=True, help="Remote env var to report (repeatable).")
@click.option("--url", "download_url", default=None, help="Full server download URL.")
@click.option("--url-template", "download_url_template", default=None, help="Download URL template.")
@click.option("--version", "server_version", default=None, help="Server version (overrides settings).")
@click.option("--commit", "server_commit", default=None, help="Server commit (overrides settings).")
@click.option(
    "--save-script", "diagnostics_dir", type=click.Path(file_okay=False), default=None,
    help="Directory to save a copy of the rendered script.",
)
@click.option("--show-token", is_flag=True, help="Print the connection token.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    host: str | None,
    user: str | None,
    port: int,
    identity_file: str | None,
    connect_timeout: float,
    accept_unknown_hosts: bool,
    local: bool,
    platform: str | None,
    use_socket_path: bool,
    extension_ids: tuple[str, ...],
    env_variables: tuple[str, ...],
    download_url: str | None,
    download_url_template: str | None,
    server_version: str | None,
    server_commit: str | None,
    diagnostics_dir: str | None,
    show_token: bool,
    as_json: bool,
) -> None:
    """Install (or reuse) and start the server on HOST."""
    from remote_bootstrap.core.config.loader import ConfigError, RemoteSettings
    from remote_bootstrap.core.errors import ServerBootstrapError
    from remote_bootstrap.core.use_cases.bootstrap import build_trigger, open_session, run_install

    target = build_target(
        host, user=user, port=port, identity_file=identity_file,
        connect_timeout=connect_timeout, local=local,
    )
    store = settings_store(ctx)

    try:
        settings = RemoteSettings.from_store(store)
        server = _server_identity(settings, server_version, server_commit)
    except ConfigError as e:
        fail(e)

    if not as_json and not ctx.obj.get("quiet", False):
        where = target.label if target else "localhost"
        click.secho(f"🚀 Installing {server.application_name} {server.version} on {where}...", fg="cyan")

    try:
        transport = open_session(target, accept_unknown_hosts=accept_unknown_hosts)
        try:
            result = run_install(
                transport,
                settings,
                server=server,
                extension_ids=extension_ids,
                env_variables=env_variables,
                platform=platform,
                use_socket_path=use_socket_path,
                download_url=download_url,
                download_url_template=download_url_template,
                diagnostics_dir=Path(diagnostics_dir) if diagnostics_dir else None,
            )
        finally:
            transport.close()
    except ServerBootstrapError as e:
        fail(e)

    if target is not None:
        build_trigger(store, state_store(ctx)).remember_target(target)

    if as_json:
        click.echo(json.dumps(result.to_dict(reveal_token=show_token), indent=2))
        return
    _print_result(result, show_token=show_token)


# ── Uninstall ───────────────────────────────────────────────────


@click.command()
@target_options
@click.option("--folder", "folders", multiple=True, help="Data folder to remove (repeatable).")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def uninstall(
    ctx: click.Context,
    host: str | None,
    user: str | None,
    port: int,
    identity_file: str | None,
    connect_timeout: float,
    accept_unknown_hosts: bool,
    local: bool,
    folders: tuple[str, ...],
    yes: bool,
) -> None:
    """Remove the server data folder(s) from HOST."""
    from remote_bootstrap.core.config.loader import ConfigError, RemoteSettings
    from remote_bootstrap.core.errors import ServerBootstrapError
    from remote_bootstrap.core.services.server_install import delete_remote_server_dirs
    from remote_bootstrap.core.use_cases.bootstrap import open_session

    target = build_target(
        host, user=user, port=port, identity_file=identity_file,
        connect_timeout=connect_timeout, local=local,
    )
    try:
        names = list(folders) or [RemoteSettings.from_store(settings_store(ctx)).server_data_folder_name]
    except ConfigError as e:
        fail(e)

    where = target.label if target else "localhost"
    if not yes:
        click.confirm(f"Delete ~/{', ~/'.join(names)} on {where}?", abort=True)

    try:
        transport = open_session(target, accept_unknown_hosts=accept_unknown_hosts)
        try:
            removed = delete_remote_server_dirs(transport, names)
        finally:
            transport.close()
    except ServerBootstrapError as e:
        fail(e)

    for name in names:
        if name in removed:
            click.secho(f"🗑️  Removed ~/{name}", fg="green")
        else:
            click.secho(f"❌ Could not remove ~/{name}", fg="red")


# ── Render ──────────────────────────────────────────────────────


@click.command()
@click.option(
    "--dialect", type=click.Choice(["bash", "powershell", "cmd"]), default="bash",
    show_default=True, help="Script flavor to render.",
)
@click.option("--command", "as_command", is_flag=True, help="Print the wrapped command line instead.")
@click.option("--socket", "use_socket_path", is_flag=True, help="Listen on a socket path.")
@click.option("--extension", "extension_ids", multiple=True, help="Extension to install (repeatable).")
@click.option("--env", "env_variables", multiple=True, help="Remote env var to report (repeatable).")
@click.option("--url", "download_url", default=None, help="Full server download URL.")
@click.option("--url-template", "download_url_template", default=None, help="Download URL template.")
@click.option("--version", "server_version", default=None, help="Server version (overrides settings).")
@click.option("--commit", "server_commit", default=None, help="Server commit (overrides settings).")
@click.pass_context
def render(
    ctx: click.Context,
    dialect: str,
    as_command: bool,
    use_socket_path: bool,
    extension_ids: tuple[str, ...],
    env_variables: tuple[str, ...],
    download_url: str | None,
    download_url_template: str | None,
    server_version: str | None,
    server_commit: str | None,
) -> None:
    """Print the install script without running it."""
    from remote_bootstrap.core.config.loader import ConfigError, RemoteSettings
    from remote_bootstrap.core.errors import ServerBootstrapError
    from remote_bootstrap.core.models.install import InstallOptions
    from remote_bootstrap.core.services.server_install.data.constants import (
        DEFAULT_DOWNLOAD_URL_TEMPLATE,
    )
    from remote_bootstrap.core.services.server_install.orchestration.orchestrator import (
        build_install_command,
    )

    try:
        settings = RemoteSettings.from_store(settings_store(ctx))
        server = _server_identity(settings, server_version, server_commit)
    except ConfigError as e:
        fail(e)

    bundle = settings.remediation_bundle()
    if dialect != "bash":
        bundle = bundle.disabled()

    try:
        options = InstallOptions.for_server(
            server,
            download_url_template=(
                download_url_template
                or server.download_url_template
                or DEFAULT_DOWNLOAD_URL_TEMPLATE
            ),
            download_url=download_url or settings.server_download_url or None,
            extension_ids=extension_ids,
            env_variables=env_variables,
            use_socket_path=use_socket_path,
            remediation=bundle,
        )
        if dialect == "bash":
            script, command = build_install_command(options, platform="posix", shell="bash")
        else:
            script, command = build_install_command(options, platform="windows", shell=dialect)
    except ServerBootstrapError as e:
        fail(e)

    click.echo(command if as_command else script)
