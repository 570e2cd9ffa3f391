"""
Shared CLI plumbing — target options, settings/state loading, failures.
"""

from __future__ import annotations

import functools
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, NoReturn

import click

from remote_bootstrap.core.config.loader import ConfigError, SettingsStore, load_settings
from remote_bootstrap.core.errors import ServerBootstrapError, describe_failure
from remote_bootstrap.core.models.target import SSHTarget
from remote_bootstrap.core.persistence.state_file import StateStore, default_state_path


def target_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """``HOST`` argument plus the SSH connection options."""

    @click.argument("host", required=False)
    @click.option("--user", "-u", default=None, help="Remote user name.")
    @click.option("--port", "-p", type=int, default=22, show_default=True, help="SSH port.")
    @click.option("--identity-file", "-i", type=click.Path(), default=None, help="Private key file.")
    @click.option("--connect-timeout", type=float, default=15.0, show_default=True, help="Seconds.")
    @click.option(
        "--accept-unknown-hosts", is_flag=True,
        help="Trust host keys not in known_hosts (adds them for this session).",
    )
    @click.option("--local", is_flag=True, help="Run against this machine instead of a host.")
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return func(*args, **kwargs)

    return wrapper


def build_target(
    host: str | None,
    *,
    user: str | None,
    port: int,
    identity_file: str | None,
    connect_timeout: float,
    local: bool,
) -> SSHTarget | None:
    """SSHTarget from CLI options, or None for ``--local``."""
    if local:
        return None
    if not host:
        raise click.UsageError("HOST is required unless --local is given.")
    if "@" in host and user is None:
        user, host = host.split("@", 1)
    return SSHTarget(
        host=host,
        port=port,
        user=user,
        identity_file=identity_file,
        connect_timeout=connect_timeout,
    )


def settings_store(ctx: click.Context) -> SettingsStore:
    config_path: Path | None = ctx.obj.get("config_path")
    try:
        return load_settings(config_path)
    except ConfigError as e:
        fail(e)


def state_store(ctx: click.Context) -> StateStore:
    state_path: Path | None = ctx.obj.get("state_path")
    return StateStore(state_path or default_state_path())


def fail(exc: BaseException) -> NoReturn:
    """Print the operator-facing category and message, then exit 1."""
    if isinstance(exc, ServerBootstrapError):
        click.secho(f"❌ {describe_failure(exc)}: {exc}", fg="red", err=True)
    else:
        click.secho(f"❌ {exc}", fg="red", err=True)
    sys.exit(1)
