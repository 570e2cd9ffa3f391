"""
CLI commands for C runtime compatibility — probe a host, apply a fix.
"""

from __future__ import annotations

import json

import click

from remote_bootstrap.ui.cli._common import (
    build_target,
    fail,
    settings_store,
    target_options,
)


@click.group()
def compat() -> None:
    """C runtime compatibility — check a host, fix it."""


def _policy_args(ctx: click.Context) -> dict:
    from remote_bootstrap.core.config.loader import ConfigError, RemoteSettings

    try:
        settings = RemoteSettings.from_store(settings_store(ctx))
    except ConfigError as e:
        fail(e)
    return {
        "required_version": settings.required_glibc_version,
        "container_policy": settings.container_policy(),
    }


@compat.command("check")
@target_options
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(
    ctx: click.Context,
    host: str | None,
    user: str | None,
    port: int,
    identity_file: str | None,
    connect_timeout: float,
    accept_unknown_hosts: bool,
    local: bool,
    as_json: bool,
) -> None:
    """Probe HOST's C runtime and print the chosen strategy."""
    from remote_bootstrap.core.errors import ServerBootstrapError
    from remote_bootstrap.core.services.server_install import resolve_compatibility
    from remote_bootstrap.core.use_cases.bootstrap import open_session

    target = build_target(
        host, user=user, port=port, identity_file=identity_file,
        connect_timeout=connect_timeout, local=local,
    )
    kwargs = _policy_args(ctx)

    try:
        transport = open_session(target, accept_unknown_hosts=accept_unknown_hosts)
        try:
            decision = resolve_compatibility(transport, **kwargs)
        finally:
            transport.close()
    except ServerBootstrapError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps(decision.model_dump(mode="json"), indent=2))
        return

    click.secho("🧬 C runtime", fg="cyan", bold=True)
    click.echo(f"   glibc:     {decision.system_version} (required {decision.required_version})")
    if decision.missing_symbols:
        click.secho(f"   Missing:   {', '.join(decision.missing_symbols)}", fg="yellow")
    else:
        click.echo("   Missing:   none")
    verdict = "✅ compatible" if decision.is_compatible else "❌ incompatible"
    click.echo(f"   Verdict:   {verdict}")
    note = " (controlled container)" if decision.overridden else ""
    click.echo(f"   Strategy:  {decision.strategy.value}{note}")


@compat.command("fix")
@target_options
@click.option(
    "--strategy",
    type=click.Choice(["auto", "download", "compile", "container", "skip"]),
    default="auto",
    show_default=True,
    help="Fix to apply; auto uses the resolver's choice.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def fix(
    ctx: click.Context,
    host: str | None,
    user: str | None,
    port: int,
    identity_file: str | None,
    connect_timeout: float,
    accept_unknown_hosts: bool,
    local: bool,
    strategy: str,
    as_json: bool,
) -> None:
    """Provision an alternate C runtime (or check for a container runtime) on HOST."""
    from remote_bootstrap.core.config.loader import ConfigError, RemoteSettings
    from remote_bootstrap.core.errors import ServerBootstrapError
    from remote_bootstrap.core.services.server_install import (
        apply_fix_strategy,
        resolve_compatibility,
    )
    from remote_bootstrap.core.use_cases.bootstrap import open_session

    target = build_target(
        host, user=user, port=port, identity_file=identity_file,
        connect_timeout=connect_timeout, local=local,
    )
    try:
        bundle = RemoteSettings.from_store(settings_store(ctx)).remediation_bundle()
    except ConfigError as e:
        fail(e)

    try:
        transport = open_session(target, accept_unknown_hosts=accept_unknown_hosts)
        try:
            if strategy == "auto":
                strategy = resolve_compatibility(transport, **_policy_args(ctx)).strategy.value
            outcome = apply_fix_strategy(transport, strategy, bundle)
        finally:
            transport.close()
    except ServerBootstrapError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps(outcome.model_dump(mode="json"), indent=2))
    elif outcome.ok:
        label = "applied" if outcome.changed else "already in place"
        click.secho(f"✅ {outcome.strategy.value}: {label} — {outcome.message}", fg="green")
    else:
        click.secho(f"❌ {outcome.strategy.value}: {outcome.message}", fg="red")

    if not outcome.ok:
        raise SystemExit(1)
