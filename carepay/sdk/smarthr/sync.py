"""SmartHR -> staff registry reconciliation.

SDK layer - pure logic. generate_sync_preview() classifies every crew into
add / update / status change / skip without touching its inputs;
apply_sync_preview() turns an accepted preview into a new staff list.
Callers persist the returned list as one write (see registry.replace_staff);
applying part of a preview and saving in between can leave the registry
in a state no sync ever produced.

Classification order per crew:
    1. match existing staff (external id, then employee code)
    2. employment-type filter -> status change or skip
    3. hire/resignation dates  -> skip if not a calendar date
    4. resignation             -> status change or skip
    5. department -> office     -> skip if unresolved
    6. qualifications
    7. add, update, or unchanged
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from ..schemas import (
    BusinessType,
    CompensationRevision,
    DepartmentMapping,
    Office,
    QualificationMapping,
    QualificationMaster,
    SkippedItem,
    StaffRecord,
    StatusChangeItem,
    SyncItem,
    SyncPreview,
)
from .departments import resolve_department
from .employment import employment_type_of, is_included
from .qualifications import resolve_qualifications
from .schemas import Crew, is_iso_date, normalize_department

logger = logging.getLogger(__name__)

DEFAULT_BASE_SALARY = 200000
AUTO_REVISION_MEMO = "Created by SmartHR sync"

ALREADY_RESIGNED_REASON = "already resigned"
ALREADY_MATCHED_REASON = "staff record already matched by another employee record"


def _as_crew(crew) -> Crew:
    return crew if isinstance(crew, Crew) else Crew.model_validate(crew)


def _find_existing(crew: Crew, existing_staff: Sequence[StaffRecord]) -> Optional[StaffRecord]:
    for staff in existing_staff:
        if staff.external_employee_id == crew.id:
            return staff
    if crew.emp_code:
        for staff in existing_staff:
            if staff.external_employee_code == crew.emp_code:
                return staff
    return None


def _skip(crew: Crew, reason: str) -> SkippedItem:
    logger.debug(f"skip {crew.id} ({crew.display_name}): {reason}")
    return SkippedItem(
        external_id=crew.id,
        employee_code=crew.employee_code,
        name=crew.display_name,
        reason=reason,
    )


def _invalid_date_reason(crew: Crew) -> Optional[str]:
    for label, value in (("hire date", crew.entered_at), ("resignation date", crew.resigned_at)):
        if value and not is_iso_date(value):
            return f'{label} "{value}" is not a valid date'
    return None


def _is_unchanged(item: SyncItem, staff: StaffRecord) -> bool:
    """Whether every synced field of item already equals the staff record.

    qualification_ids compare as ordered lists: the order is part of the
    synced state because it breaks priority ties for the primary
    qualification, so a reordering alone is reported as an update.
    """
    return (
        staff.name == item.name
        and staff.office_id == item.office_id
        and list(staff.qualification_ids) == list(item.qualification_ids)
        and staff.hire_date == item.hire_date
        and staff.termination_date == item.termination_date
        and staff.external_employee_id == item.external_id
        and staff.external_employee_code == (item.employee_code or None)
    )


def generate_sync_preview(
    crews: Iterable,
    employment_type_filter: Iterable[str],
    department_mappings: Sequence[DepartmentMapping],
    qualification_mappings: Sequence[QualificationMapping],
    offices: Sequence[Office],
    qualification_masters: Mapping[BusinessType, Sequence[QualificationMaster]],
    existing_staff: Sequence[StaffRecord],
    *,
    department_index: Optional[Dict[str, str]] = None,
    qualification_code_hints: Optional[Dict[str, str]] = None,
) -> SyncPreview:
    """Classify SmartHR crews against the staff registry.

    Args:
        crews: Crew models or raw crew dicts, processed in order
        employment_type_filter: Employment type ids/names in scope (empty = all)
        department_mappings: Legacy manual department mappings
        qualification_mappings: Manual custom field -> qualification mappings
        offices: All offices
        qualification_masters: Qualification masters per business type
        existing_staff: Current staff registry
        department_index: SmartHR department name/full path -> id
        qualification_code_hints: SmartHR qualification code -> name hints

    Returns:
        SyncPreview. Unresolvable cases are reported as skipped or status
        change items; this function does not raise for them.
    """
    filter_set = frozenset(employment_type_filter)
    offices_by_id = {o.id: o for o in offices}

    to_add: List[SyncItem] = []
    to_update: List[SyncItem] = []
    unchanged: List[SyncItem] = []
    status_changes: List[StatusChangeItem] = []
    skipped: List[SkippedItem] = []

    claimed_staff_ids = set()

    for raw in crews:
        crew = _as_crew(raw)

        existing = _find_existing(crew, existing_staff)
        if existing is not None:
            if existing.id in claimed_staff_ids:
                skipped.append(_skip(crew, ALREADY_MATCHED_REASON))
                continue
            claimed_staff_ids.add(existing.id)

        # Employment type
        if not is_included(crew, filter_set):
            emp_type = employment_type_of(crew)
            if existing is not None and not existing.is_terminated:
                status_changes.append(StatusChangeItem(
                    staff_id=existing.id,
                    external_id=crew.id,
                    employee_code=crew.employee_code,
                    name=existing.name,
                    change_type="employment_type_changed",
                    detail=(
                        f'employment type changed to "{emp_type.name}"'
                        if emp_type else "employment type was unset"
                    ),
                ))
            else:
                skipped.append(_skip(
                    crew,
                    f'employment type "{emp_type.name}" is not in sync scope'
                    if emp_type else "employment type unset",
                ))
            continue

        # Dates must be storable before anything is proposed for this crew
        date_reason = _invalid_date_reason(crew)
        if date_reason:
            skipped.append(_skip(crew, date_reason))
            continue

        # Resignation
        if crew.resigned_at:
            if existing is not None and not existing.is_terminated:
                status_changes.append(StatusChangeItem(
                    staff_id=existing.id,
                    external_id=crew.id,
                    employee_code=crew.employee_code,
                    name=existing.name,
                    change_type="resigned",
                    detail=f"resigned on {crew.resigned_at}",
                    termination_date=crew.resigned_at,
                ))
            else:
                skipped.append(_skip(crew, ALREADY_RESIGNED_REASON))
            continue

        # Department -> office
        resolution = resolve_department(
            crew.department, offices, department_index, department_mappings
        )
        if not resolution.resolved:
            skipped.append(_skip(crew, resolution.skip_reason))
            continue
        office = offices_by_id[resolution.office_id]

        qualification_ids = resolve_qualifications(
            crew,
            qualification_masters.get(office.business_type, []),
            qualification_mappings,
            business_type=office.business_type,
            code_hints=qualification_code_hints,
        )

        dept = normalize_department(crew.department)
        item = SyncItem(
            external_id=crew.id,
            employee_code=crew.employee_code,
            name=crew.display_name,
            department_name=dept.name if dept else None,
            office_id=office.id,
            office_name=office.name,
            qualification_ids=qualification_ids,
            hire_date=crew.entered_at or None,
            termination_date=crew.resigned_at or None,
            matched_staff_id=existing.id if existing is not None else None,
        )

        if existing is None:
            to_add.append(item)
        elif _is_unchanged(item, existing):
            unchanged.append(item)
        else:
            to_update.append(item)

    preview = SyncPreview(
        to_add=to_add,
        to_update=to_update,
        status_changes=status_changes,
        skipped=skipped,
        unchanged=unchanged,
    )
    logger.debug(f"sync preview: {preview.counts()}")
    return preview


# =============================================================================
# Apply
# =============================================================================


def _new_staff(item: SyncItem, staff_id: str, revision_id: str, now: datetime) -> StaffRecord:
    effective_month = item.hire_date[:7] if item.hire_date else now.strftime("%Y-%m")
    revision = CompensationRevision(
        id=revision_id,
        effective_month=effective_month,
        amount=DEFAULT_BASE_SALARY,
        memo=AUTO_REVISION_MEMO,
        created_at=now,
    )
    return StaffRecord(
        id=staff_id,
        office_id=item.office_id,
        name=item.name,
        base_salary=DEFAULT_BASE_SALARY,
        qualification_ids=list(item.qualification_ids),
        base_salary_history=[revision],
        external_employee_id=item.external_id,
        external_employee_code=item.employee_code or None,
        hire_date=item.hire_date,
        termination_date=item.termination_date,
        last_synced_at=now,
    )


def apply_sync_preview(
    preview: SyncPreview,
    existing_staff: Sequence[StaffRecord],
    *,
    now: Optional[datetime] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> List[StaffRecord]:
    """Apply an accepted preview and return the complete new staff list.

    - to_add: new records with DEFAULT_BASE_SALARY and one auto-created
      revision at the hire month (current month if no hire date)
    - to_update: directory fields and external linkage are overwritten;
      salary and salary history are never touched
    - status_changes: 'resigned' sets the termination date (records are
      kept); 'employment_type_changed' only refreshes last_synced_at

    Items whose staff id is no longer in existing_staff are ignored.

    Args:
        preview: Preview from generate_sync_preview()
        existing_staff: Staff registry the preview was generated against
        now: Sync timestamp (default: current UTC time)
        id_factory: Generates staff and revision ids (default: uuid4)

    Returns:
        New staff list: existing records in their original order, then adds.
    """
    now = now or datetime.now(timezone.utc)
    new_id = id_factory or (lambda: str(uuid.uuid4()))

    staff_by_id: Dict[str, StaffRecord] = {s.id: s for s in existing_staff}
    order = [s.id for s in existing_staff]

    for item in preview.to_update:
        current = staff_by_id.get(item.matched_staff_id or "")
        if current is None:
            logger.warning(f"update target {item.matched_staff_id} not found, ignoring")
            continue
        staff_by_id[current.id] = current.model_copy(update={
            "name": item.name,
            "office_id": item.office_id,
            "qualification_ids": list(item.qualification_ids),
            "hire_date": item.hire_date,
            "termination_date": item.termination_date,
            "external_employee_id": item.external_id,
            "external_employee_code": item.employee_code or None,
            "last_synced_at": now,
        })

    for change in preview.status_changes:
        current = staff_by_id.get(change.staff_id)
        if current is None:
            logger.warning(f"status change target {change.staff_id} not found, ignoring")
            continue
        if change.change_type == "resigned" and change.termination_date:
            update = {"termination_date": change.termination_date, "last_synced_at": now}
        else:
            update = {"last_synced_at": now}
        staff_by_id[current.id] = current.model_copy(update=update)

    added = [_new_staff(item, new_id(), new_id(), now) for item in preview.to_add]

    logger.info(
        f"applied sync: {len(added)} added, {len(preview.to_update)} updated, "
        f"{len(preview.status_changes)} status change(s)"
    )
    return [staff_by_id[staff_id] for staff_id in order] + added
