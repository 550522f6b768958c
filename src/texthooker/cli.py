"""CLI commands for texthooker."""

from dataclasses import fields

import click

from texthooker.errors import ConfigurationError


def _load_config(urls: tuple[str, ...] = (), no_reconnect: bool = False):
    """Load config and apply command-line overrides."""
    from texthooker.config import Config, validate_websocket_url

    try:
        cfg = Config.load()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    if len(urls) > 2:
        raise click.BadParameter("at most two URLs are supported", param_hint="--url")
    try:
        cleaned = [validate_websocket_url(u) for u in urls]
    except ConfigurationError as e:
        raise click.BadParameter(str(e), param_hint="--url") from e

    if cleaned:
        cfg.connection.websocket_url = cleaned[0]
        cfg.connection.websocket_url_2 = cleaned[1] if len(cleaned) > 1 else ""
    if no_reconnect:
        cfg.connection.continuous_reconnect = False
    return cfg


@click.group()
@click.version_option(package_name="texthooker")
def main() -> None:
    """Display text lines streamed over a WebSocket."""
    pass


@main.command()
@click.option("--url", "urls", multiple=True, help="WebSocket URL (repeat for a second target)")
@click.option("--no-reconnect", is_flag=True, help="Disable automatic reconnection")
def tui(urls: tuple[str, ...], no_reconnect: bool) -> None:
    """Launch the interactive line viewer."""
    from texthooker.tui import run_tui

    run_tui(_load_config(urls, no_reconnect))


@main.command()
@click.option("--url", "urls", multiple=True, help="WebSocket URL (repeat for a second target)")
@click.option("--no-reconnect", is_flag=True, help="Disable automatic reconnection")
@click.option("--json", "as_json", is_flag=True, help="Print each line as a JSON object")
def listen(urls: tuple[str, ...], no_reconnect: bool, as_json: bool) -> None:
    """Print received lines to stdout until interrupted."""
    import asyncio

    from texthooker import logging as console
    from texthooker.listener import run_listener

    cfg = _load_config(urls, no_reconnect)
    if not any(cfg.connection.targets):
        console.no_targets()
        raise SystemExit(1)

    console.configure(cfg, source="listen")
    asyncio.run(run_listener(cfg, as_json=as_json))


@main.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Display current configuration."""
    cfg = _load_config()

    click.echo(f"Config file: {cfg.config_path}")
    click.echo(f"Exists: {cfg.config_path.exists()}")
    for section in ("connection", "display", "system"):
        click.echo()
        click.echo(f"[{section}]")
        values = getattr(cfg, section)
        for f in fields(values):
            click.echo(f"  {f.name} = {getattr(values, f.name)!r}")


@config.command("edit")
def config_edit() -> None:
    """Open config file in editor."""
    import os
    import subprocess

    from texthooker.config import Config

    cfg = Config()

    # Create config if it doesn't exist
    if not cfg.config_path.exists():
        cfg.save()
        click.echo(f"Created default config at {cfg.config_path}")

    editor = os.environ.get("EDITOR", "nano")
    subprocess.run([editor, str(cfg.config_path)])


@config.command("reset")
@click.confirmation_option(prompt="Reset config to defaults?")
def config_reset() -> None:
    """Reset configuration to defaults."""
    from texthooker.config import Config

    cfg = Config()
    cfg.save()
    click.echo(f"Config reset to defaults at {cfg.config_path}")


if __name__ == "__main__":
    main()
