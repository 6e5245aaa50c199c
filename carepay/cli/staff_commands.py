"""Staff registry CLI commands."""

import json

import click

from carepay.sdk import RegistryError, load_registry
from carepay.sdk.comp import get_effective_base_salary
from carepay.sdk.qualifications import primary_allowance, select_primary_qualification


@click.group("staff")
def staff():
    """Staff registry commands."""
    pass


@staff.command("list")
@click.option("--office", "office_id", help="Only staff of this office id.")
@click.option("--as-of", help="Resolve base salary for this month (YYYY-MM).")
@click.option("--include-resigned", is_flag=True, help="Include staff with a termination date.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def staff_list(office_id, as_of, include_resigned, as_json):
    """List staff with primary qualification and base salary."""
    try:
        registry = load_registry()
    except RegistryError as e:
        raise click.ClickException(str(e))

    rows = []
    for s in registry.staff:
        if office_id and s.office_id != office_id:
            continue
        if s.is_terminated and not include_resigned:
            continue
        masters = registry.masters_for_office(s.office_id)
        primary = select_primary_qualification(s.qualification_ids, masters)
        office = registry.get_office(s.office_id)
        rows.append({
            "id": s.id,
            "name": s.name,
            "office": office.name if office else s.office_id,
            "primary_qualification": primary.name if primary else None,
            "allowance": primary_allowance(s.qualification_ids, masters),
            "base_salary": get_effective_base_salary(s, as_of) if as_of else s.base_salary,
            "termination_date": s.termination_date,
        })

    if as_json:
        click.echo(json.dumps(rows, indent=2, ensure_ascii=False))
        return

    if not rows:
        click.echo("No staff found.")
        return

    for row in rows:
        resigned = f"  (resigned {row['termination_date']})" if row["termination_date"] else ""
        click.echo(
            f"  {row['id'][:8]}  {row['name']:<16} {row['office']:<16} "
            f"{row['primary_qualification'] or '-':<12} {row['base_salary']:>10,}{resigned}"
        )
