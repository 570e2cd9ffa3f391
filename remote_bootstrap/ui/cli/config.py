"""
CLI commands for settings — show values, change them.

Changing a custom C runtime setting goes through the reinstall trigger,
so the next ``activate`` replays the install on the last target.
"""

from __future__ import annotations

import json

import click
import yaml

from remote_bootstrap.ui.cli._common import fail, settings_store, state_store


@click.group()
def config() -> None:
    """Settings — show, set."""


@config.command("show")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, as_json: bool) -> None:
    """Show the effective settings."""
    from remote_bootstrap.core.config.loader import ConfigError, RemoteSettings

    store = settings_store(ctx)
    try:
        settings = RemoteSettings.from_store(store)
    except ConfigError as e:
        fail(e)

    values = {key: getattr(settings, field) for field, key in RemoteSettings.KEYS.items()}
    if as_json:
        click.echo(json.dumps({"path": str(store.path), "settings": values}, indent=2, default=list))
        return

    click.secho(f"⚙️  {store.path}", fg="cyan", bold=True)
    for key, value in values.items():
        explicit = "" if store.get(key) is not None else "  (default)"
        click.echo(f"   {key} = {value!r}{explicit}")


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def set_value(ctx: click.Context, key: str, value: str) -> None:
    """Set KEY to VALUE (YAML scalar; ``null`` removes the key)."""
    from remote_bootstrap.core.config.loader import (
        ConfigError,
        RemoteSettings,
        SettingsStore,
        save_settings,
    )
    from remote_bootstrap.core.use_cases.bootstrap import build_trigger

    try:
        parsed = yaml.safe_load(value)
    except yaml.YAMLError:
        parsed = value

    store = settings_store(ctx)

    # The trigger only sees values that are already saved
    candidate = SettingsStore(store.as_dict(), path=store.path)
    if not candidate.set(key, parsed):
        click.echo(f"   {key} unchanged")
        return
    try:
        RemoteSettings.from_store(candidate)
        path = save_settings(candidate)
    except (ConfigError, OSError) as e:
        fail(e)

    quiet = ctx.obj.get("quiet", False)
    trigger = build_trigger(
        store,
        state_store(ctx),
        notify=(lambda message: None) if quiet else (
            lambda message: click.secho(f"🔔 {message}", fg="yellow")
        ),
    )
    trigger.watch()
    try:
        store.set(key, parsed)
    finally:
        trigger.unwatch()

    click.secho(f"✅ {key} = {parsed!r} ({path})", fg="green")
