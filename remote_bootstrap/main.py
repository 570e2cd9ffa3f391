"""
Remote server bootstrap — CLI entrypoint.

Usage:
    rbootstrap --help
    rbootstrap install user@host
    rbootstrap compat check user@host
    rbootstrap status
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import click

from remote_bootstrap import __version__
from remote_bootstrap.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    resolve_level,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="rbootstrap")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to remote-bootstrap.yml (default: auto-detect).",
)
@click.option(
    "--state",
    "state_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to the state file (default: .state/remote-bootstrap.json).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    state_path: str | None,
) -> None:
    """Remote server bootstrap — install and start a remote dev server over SSH."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["state_path"] = Path(state_path) if state_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
        quiet_third_party=not debug,
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show reinstall state: phase, last target, remediation snapshot."""
    from remote_bootstrap.core.use_cases.bootstrap import build_trigger, get_status
    from remote_bootstrap.ui.cli._common import settings_store, state_store

    trigger = build_trigger(settings_store(ctx), state_store(ctx))
    result = get_status(trigger)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    phase_color = {"clean": "green", "dirty": "yellow", "reinstalling": "cyan"}.get(
        result.phase, "white"
    )
    click.secho("\n🖥️  Remote server", fg="cyan", bold=True)
    click.echo("   Phase:    ", nl=False)
    click.secho(result.phase, fg=phase_color)

    target = result.last_target
    if target:
        user = f"{target['user']}@" if target.get("user") else ""
        click.echo(f"   Target:   {user}{target['host']}:{target.get('port', 22)}")
    else:
        click.echo("   Target:   (none yet)")

    click.echo()
    click.secho("   Custom C runtime settings:", fg="white", bold=True)
    last = result.last_snapshot or {}
    for key, value in result.current_snapshot.items():
        marker = "" if last.get(key) == value else "  ← changed"
        click.echo(f"     • {key}: {value if value not in (None, '') else '-'}{marker}")

    if result.state_path:
        click.echo()
        click.echo(f"   State:    {result.state_path}")
    click.echo()


@cli.command()
@click.option(
    "--accept-unknown-hosts", is_flag=True,
    help="Trust host keys not in known_hosts.",
)
@click.option("--show-token", is_flag=True, help="Print the connection token.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def activate(ctx: click.Context, accept_unknown_hosts: bool, show_token: bool, as_json: bool) -> None:
    """Run a pending reinstall on the last known target."""
    from remote_bootstrap.core.errors import ServerBootstrapError
    from remote_bootstrap.core.use_cases.bootstrap import build_trigger
    from remote_bootstrap.ui.cli._common import fail, settings_store, state_store

    quiet = ctx.obj.get("quiet", False)
    notify = (lambda message: None) if (quiet or as_json) else (
        lambda message: click.secho(f"🔔 {message}", fg="yellow")
    )
    trigger = build_trigger(
        settings_store(ctx),
        state_store(ctx),
        accept_unknown_hosts=accept_unknown_hosts,
        notify=notify,
    )
    phase = trigger.phase.value

    try:
        result = trigger.activate()
    except ServerBootstrapError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps({
            "phase": phase,
            "reinstalled": result is not None,
            "result": result.to_dict(reveal_token=show_token) if result else None,
        }, indent=2))
        return

    if result is None:
        if phase == "dirty":
            click.secho("⚠️  Reinstall pending but no previous target is known", fg="yellow")
        else:
            click.secho("✅ Nothing to do — server is up to date", fg="green")
        return

    click.secho(f"✅ Server reinstalled, listening on {result.listening_on}", fg="green")


# ── Register subcommand groups ──────────────────────────────────

from remote_bootstrap.ui.cli.compat import compat  # noqa: E402
from remote_bootstrap.ui.cli.config import config  # noqa: E402
from remote_bootstrap.ui.cli.install import install, render, uninstall  # noqa: E402

cli.add_command(install)
cli.add_command(uninstall)
cli.add_command(render)
cli.add_command(compat)
cli.add_command(config)


if __name__ == "__main__":
    cli()
