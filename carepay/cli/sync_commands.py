"""SmartHR sync CLI commands.

'sync preview' shows what a sync would change; 'sync apply' applies it and
writes the registry once. A preview saved with --output can be applied
later with --preview, so the reviewed diff is exactly what gets applied.
"""

import json
from datetime import datetime, timezone
from pathlib import Path

import click
from pydantic import ValidationError

from carepay.sdk import (
    RegistryError,
    load_registry,
    load_smarthr_settings,
    replace_staff,
    save_registry,
    save_smarthr_settings,
)
from carepay.sdk.qualifications import select_primary_qualification
from carepay.sdk.schemas import SyncPreview
from carepay.sdk.smarthr import (
    SmartHRApiError,
    apply_sync_preview,
    build_department_index,
    generate_sync_preview,
)

from .smarthr_commands import make_client


def _load_registry_or_fail():
    try:
        return load_registry()
    except RegistryError as e:
        raise click.ClickException(str(e))


def build_preview(registry, settings) -> SyncPreview:
    """Fetch crews and departments from SmartHR and classify them."""
    client = make_client()
    try:
        crews = client.get_all_crews()
        departments = client.get_departments()
    except SmartHRApiError as e:
        raise click.ClickException(f"SmartHR error ({e.status}): {e.message}")

    return generate_sync_preview(
        crews,
        settings.employment_type_filter,
        registry.department_mappings,
        registry.qualification_mappings,
        registry.offices,
        registry.qualification_masters,
        registry.staff,
        department_index=build_department_index(departments),
    )


def _qualification_label(registry, item) -> str:
    masters = registry.masters_for_office(item.office_id)
    names = {q.id: q.name for q in masters}
    if not item.qualification_ids:
        return "-"
    primary = select_primary_qualification(item.qualification_ids, masters)
    labels = []
    for qual_id in item.qualification_ids:
        label = names.get(qual_id, qual_id)
        if primary and qual_id == primary.id:
            label += "*"
        labels.append(label)
    return ", ".join(labels)


def print_preview(preview: SyncPreview, registry) -> None:
    counts = preview.counts()
    click.echo(
        f"Add: {counts['to_add']}  Update: {counts['to_update']}  "
        f"Status changes: {counts['status_changes']}  Skipped: {counts['skipped']}  "
        f"Unchanged: {counts['unchanged']}"
    )

    if preview.to_add:
        click.echo("\nTo add:")
        for item in preview.to_add:
            click.echo(f"  + {item.employee_code or '-':<10} {item.name:<16} -> {item.office_name}  "
                       f"[{_qualification_label(registry, item)}]")
    if preview.to_update:
        click.echo("\nTo update:")
        for item in preview.to_update:
            click.echo(f"  ~ {item.employee_code or '-':<10} {item.name:<16} -> {item.office_name}  "
                       f"[{_qualification_label(registry, item)}]")
    if preview.status_changes:
        click.echo("\nStatus changes:")
        for change in preview.status_changes:
            label = "resigned" if change.change_type == "resigned" else "employment type"
            click.echo(f"  ! {change.employee_code or '-':<10} {change.name:<16} {label}: {change.detail}")
    if preview.skipped:
        click.echo("\nSkipped:")
        for item in preview.skipped:
            click.echo(f"  - {item.employee_code or '-':<10} {item.name:<16} {item.reason}")


@click.group("sync")
def sync():
    """Sync the staff registry from SmartHR."""
    pass


@sync.command("preview")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Save the preview to a JSON file.")
def sync_preview(as_json, output):
    """Show what a sync would add, update, change or skip."""
    registry = _load_registry_or_fail()
    preview = build_preview(registry, load_smarthr_settings())

    if output:
        Path(output).write_text(preview.model_dump_json(indent=2), encoding="utf-8")

    if as_json:
        click.echo(json.dumps(preview.model_dump(mode="json"), indent=2, ensure_ascii=False))
        return

    print_preview(preview, registry)
    if output:
        click.echo(f"\nSaved preview to: {output}")


@sync.command("apply")
@click.option("--preview", "preview_path", type=click.Path(exists=True, dir_okay=False),
              help="Apply a saved preview instead of fetching a new one.")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
def sync_apply(preview_path, yes):
    """Apply a sync preview to the staff registry.

    Adds, updates and status changes are applied together and the registry
    is written once. Salaries of existing staff are never changed.
    """
    registry = _load_registry_or_fail()
    settings = load_smarthr_settings()

    if preview_path:
        try:
            preview = SyncPreview.model_validate_json(Path(preview_path).read_text(encoding="utf-8"))
        except ValidationError as e:
            raise click.ClickException(f"Invalid preview file: {preview_path}\n{e}")
    else:
        preview = build_preview(registry, settings)

    print_preview(preview, registry)

    if preview.is_empty:
        click.echo("\nNothing to apply.")
        return

    if not yes:
        click.confirm("\nApply these changes?", abort=True)

    now = datetime.now(timezone.utc)
    staff = apply_sync_preview(preview, registry.staff, now=now)
    path = save_registry(replace_staff(registry, staff))
    save_smarthr_settings(settings.model_copy(update={"last_synced_at": now}))

    click.echo(click.style("\nSync applied.", fg="green") + f" Registry: {path}")
