"""Base salary history CLI commands."""

import re

import click

from carepay.sdk import (
    RegistryError,
    StaffNotFoundError,
    load_registry,
    replace_staff,
    replace_staff_record,
    save_registry,
)
from carepay.sdk.comp import (
    RevisionNotFoundError,
    add_revision,
    format_month,
    get_effective_base_salary,
    migrate_base_salary,
    remove_revision,
    sort_history,
)

MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def _validate_month(ctx, param, value):
    if value is not None and not MONTH_RE.match(value):
        raise click.BadParameter(f"Invalid month '{value}'. Use YYYY-MM.")
    return value


def _get_staff(registry, staff_id):
    try:
        return registry.get_staff(staff_id)
    except StaffNotFoundError as e:
        raise click.ClickException(str(e))


def _load():
    try:
        return load_registry()
    except RegistryError as e:
        raise click.ClickException(str(e))


@click.group("salary")
def salary():
    """Base salary revision history."""
    pass


@salary.command("show")
@click.argument("staff_id")
@click.option("--as-of", callback=_validate_month, help="Evaluation month (YYYY-MM) to resolve.")
def salary_show(staff_id, as_of):
    """Show a staff member's base salary history."""
    registry = _load()
    staff = _get_staff(registry, staff_id)

    click.echo(f"{staff.name} ({staff.id})")
    click.echo(f"Current base salary: {staff.base_salary:,}")
    if as_of:
        click.echo(f"Effective for {format_month(as_of)}: {get_effective_base_salary(staff, as_of):,}")

    if not staff.base_salary_history:
        click.echo("\nNo revisions recorded. Run 'carepay salary migrate' to seed history.")
        return

    click.echo("\nRevisions:")
    for rev in sort_history(staff.base_salary_history):
        memo = f"  {rev.memo}" if rev.memo else ""
        click.echo(f"  {format_month(rev.effective_month)}  {rev.amount:>10,}  [{rev.id[:8]}]{memo}")


@salary.command("add")
@click.argument("staff_id")
@click.argument("month", callback=_validate_month)
@click.argument("amount", type=click.IntRange(min=0))
@click.option("--memo", help="Note for the revision.")
def salary_add(staff_id, month, amount, memo):
    """Add a revision: AMOUNT applies from MONTH (YYYY-MM)."""
    registry = _load()
    staff = add_revision(_get_staff(registry, staff_id), month, amount, memo)
    save_registry(replace_staff_record(registry, staff))
    click.echo(f"Added revision {format_month(month)}: {amount:,}")
    click.echo(f"Current base salary: {staff.base_salary:,}")


@salary.command("remove")
@click.argument("staff_id")
@click.argument("revision_id")
def salary_remove(staff_id, revision_id):
    """Remove a revision (REVISION_ID may be an 8-char prefix)."""
    registry = _load()
    staff = _get_staff(registry, staff_id)

    matches = [r.id for r in staff.base_salary_history if r.id.startswith(revision_id)]
    if len(matches) > 1:
        raise click.ClickException(f"Ambiguous revision id prefix: {revision_id}")
    full_id = matches[0] if matches else revision_id

    try:
        staff = remove_revision(staff, full_id)
    except RevisionNotFoundError as e:
        raise click.ClickException(str(e))

    save_registry(replace_staff_record(registry, staff))
    click.echo(f"Removed revision {full_id}")
    click.echo(f"Current base salary: {staff.base_salary:,}")


@salary.command("migrate")
def salary_migrate():
    """Seed a revision for every staff member without history."""
    registry = _load()
    migrated = [migrate_base_salary(s) for s in registry.staff]
    count = sum(1 for old, new in zip(registry.staff, migrated) if old is not new)

    if not count:
        click.echo("All staff already have salary history.")
        return

    save_registry(replace_staff(registry, migrated))
    click.echo(f"Seeded salary history for {count} staff member(s).")
