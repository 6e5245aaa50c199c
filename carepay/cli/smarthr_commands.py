"""SmartHR connection CLI commands.

Manages the smarthr section of profile.yaml and lists SmartHR metadata
needed to set up office and qualification mappings.
"""

import os

import click

from carepay.sdk import (
    SmartHRNotConfiguredError,
    load_registry,
    load_smarthr_settings,
    require_smarthr_connection,
    resolve_access_token,
    save_smarthr_settings,
    store_access_token,
    RegistryError,
)
from carepay.sdk.config import TOKEN_ENV_VAR
from carepay.sdk.smarthr import SmartHRApiError, SmartHRClient
from carepay.sdk.smarthr.departments import unmapped_departments


def make_client() -> SmartHRClient:
    """SmartHR client from profile settings, or a ClickException."""
    try:
        subdomain, token = require_smarthr_connection()
    except SmartHRNotConfiguredError as e:
        raise click.ClickException(str(e))
    return SmartHRClient(subdomain, token)


@click.group("smarthr")
def smarthr():
    """SmartHR connection settings and metadata.

    \b
    Setup:
    1. carepay smarthr configure --subdomain <name> --token <token>
    2. carepay smarthr test
    3. carepay smarthr departments   (set office external_department_ref)
    4. carepay sync preview
    """
    pass


@smarthr.command("show")
def smarthr_show():
    """Show SmartHR connection settings (token masked)."""
    settings = load_smarthr_settings()
    token = resolve_access_token(settings)

    click.echo(f"Subdomain: {settings.subdomain or '(not set)'}")
    if token:
        source = TOKEN_ENV_VAR if os.environ.get(TOKEN_ENV_VAR) else "profile"
        click.echo(f"Access token: ****{token[-4:]} ({source})")
    else:
        click.echo("Access token: (not set)")
    click.echo(f"Store token in profile: {settings.store_token}")
    if settings.employment_type_filter:
        click.echo(f"Employment type filter: {', '.join(settings.employment_type_filter)}")
    else:
        click.echo("Employment type filter: (all employment types)")
    click.echo(f"Last synced: {settings.last_synced_at or 'never'}")


@smarthr.command("configure")
@click.option("--subdomain", help="Tenant subdomain (<subdomain>.smarthr.jp)")
@click.option("--token", help="API access token")
@click.option("--store-token/--no-store-token", default=None,
              help="Persist the (obfuscated) token in profile.yaml")
@click.option("--employment-type", "employment_types", multiple=True,
              help="Employment type id or name to sync (repeatable)")
@click.option("--clear-employment-types", is_flag=True, help="Sync all employment types")
def smarthr_configure(subdomain, token, store_token, employment_types, clear_employment_types):
    """Update SmartHR connection settings.

    The token is obfuscated, not encrypted. Use --no-store-token and the
    CAREPAY_SMARTHR_TOKEN environment variable to keep it out of the profile.
    """
    settings = load_smarthr_settings()
    updates = {}
    if subdomain is not None:
        updates["subdomain"] = subdomain.strip()
    if store_token is not None:
        updates["store_token"] = store_token
    if clear_employment_types:
        updates["employment_type_filter"] = []
    elif employment_types:
        updates["employment_type_filter"] = list(dict.fromkeys(employment_types))
    settings = settings.model_copy(update=updates)

    if token is not None:
        settings = store_access_token(settings, token.strip())
    elif store_token is False:
        settings = settings.model_copy(update={"access_token": ""})

    path = save_smarthr_settings(settings)
    click.echo(f"Saved SmartHR settings to: {path}")
    if token is not None and not settings.store_token:
        click.secho(f"Token not stored. Set {TOKEN_ENV_VAR} for sync commands.", fg="yellow")


@smarthr.command("test")
def smarthr_test():
    """Test the SmartHR connection."""
    client = make_client()
    try:
        client.test_connection()
    except SmartHRApiError as e:
        raise click.ClickException(f"Connection failed ({e.status}): {e.message}")
    click.echo(click.style("Connection OK", fg="green") + f" ({client.base_url})")


@smarthr.command("departments")
@click.option("--unmapped", is_flag=True, help="Only departments no office resolves to")
def smarthr_departments(unmapped):
    """List SmartHR departments (id and full path)."""
    client = make_client()
    try:
        departments = client.get_departments()
    except SmartHRApiError as e:
        raise click.ClickException(e.message)

    if unmapped:
        try:
            registry = load_registry()
        except RegistryError as e:
            raise click.ClickException(str(e))
        refs = unmapped_departments(departments, registry.offices, registry.department_mappings)
        if not refs:
            click.echo("All departments resolve to an office.")
            return
        for ref in refs:
            click.echo(f"  {ref.id or '-':<24} {ref.full_path or ref.name}")
        return

    for dept in departments:
        click.echo(f"  {dept.id or '-':<24} {dept.full_path_name or dept.name}")


@smarthr.command("employment-types")
def smarthr_employment_types():
    """List SmartHR employment types, marking those in the sync filter."""
    client = make_client()
    try:
        types = client.get_employment_types()
    except SmartHRApiError as e:
        raise click.ClickException(e.message)

    selected = set(load_smarthr_settings().employment_type_filter)
    for emp_type in types:
        marker = "*" if emp_type.id in selected or emp_type.name in selected else " "
        click.echo(f"{marker} {emp_type.id or '-':<24} {emp_type.name}")


@smarthr.command("fields")
def smarthr_fields():
    """List custom field templates (for qualification mappings)."""
    client = make_client()
    try:
        templates = client.get_custom_field_templates()
    except SmartHRApiError as e:
        raise click.ClickException(e.message)

    for template in templates:
        click.echo(f"  {template.id:<24} {template.name} [{template.type or '?'}]")
        for element in template.elements:
            click.echo(f"      {element.id or '-':<20} {element.name}")
