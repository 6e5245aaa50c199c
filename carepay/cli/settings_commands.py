"""Settings CLI commands (settings.json).

Machine-local settings only: where the registry lives and which
profile.yaml to read. SmartHR connection settings are in 'carepay smarthr'.
"""

from pathlib import Path

import click

from carepay.sdk import (
    RegistryError,
    get_data_path,
    get_profile_path,
    get_registry_path,
    get_setting,
    get_settings_path,
    load_registry,
    load_settings,
    save_settings,
    set_setting,
)
from carepay.sdk.registry import REGISTRY_FILENAME


def _registry_summary() -> str:
    path = get_registry_path()
    if not path.exists():
        return "not created yet"
    try:
        registry = load_registry(path)
    except RegistryError:
        return "INVALID (run 'carepay staff list' for details)"
    active = sum(1 for s in registry.staff if not s.is_terminated)
    return f"{len(registry.offices)} office(s), {active} active / {len(registry.staff)} staff"


@click.group()
def settings():
    """Machine settings: data_dir (registry location) and profile path."""
    pass


@settings.command("show")
def settings_show():
    """Show settings.json and the paths carepay resolves from it."""
    settings_path = get_settings_path()
    current = load_settings()

    click.echo(f"Settings file: {settings_path}" + ("" if settings_path.exists() else " (not created)"))
    for key in sorted(current):
        click.echo(f"  {key}: {current[key]}")

    click.echo()
    click.echo(f"Profile:  {get_profile_path()}")
    click.echo(f"Data dir: {get_data_path()}" + ("" if current.get("data_dir") else " (default)"))
    click.echo(f"Registry: {get_registry_path()}")
    click.echo(f"          {_registry_summary()}")


@settings.command("data-dir")
@click.argument("path", required=False, type=click.Path(file_okay=False))
@click.option("--clear", is_flag=True, help="Revert to the default data directory")
def settings_data_dir(path, clear):
    """Show, set or clear the directory holding registry.json.

    An existing registry is not moved; copy registry.json yourself.

    \b
    Examples:
        carepay settings data-dir ~/carepay-data
        carepay settings data-dir --clear
    """
    if clear:
        current = load_settings()
        if current.pop("data_dir", None) is None:
            click.echo("data_dir was not set.")
            return
        save_settings(current)
        click.echo("Cleared data_dir setting.")
        click.echo(f"Registry is now read from: {get_registry_path()}")
        return

    if not path:
        click.echo(get_setting("data_dir") or f"{get_data_path()} (default)")
        return

    data_path = Path(path).expanduser().resolve()
    try:
        data_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise click.ClickException(f"Cannot use {data_path} as data directory: {e}")

    set_setting("data_dir", str(data_path))
    click.echo(f"Set data_dir: {data_path}")
    if not (data_path / REGISTRY_FILENAME).exists():
        click.echo(f"No {REGISTRY_FILENAME} there yet; it will be created on the next save.")
