"""Resolve and edit base salary revision history.

SDK layer - pure logic over StaffRecord snapshots. No CLI or presentation.

Revisions have a fixed-width effective month (YYYY-MM), so months compare
correctly as plain strings. When several revisions share a month, the one
recorded last (created_at) wins. Every edit returns a new StaffRecord with
base_salary recomputed from the full history.
"""

import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from ..schemas import CompensationRevision, StaffRecord


MIGRATION_MEMO = "initial migration"
MIGRATION_DEFAULT_MONTH = "2000-01"


class RevisionNotFoundError(LookupError):
    """Raised when a revision id is not present in a staff member's history."""
    pass


def _created_key(created_at: datetime) -> datetime:
    # Naive timestamps are treated as UTC so mixed inputs stay comparable.
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=timezone.utc)
    return created_at


def _order_key(revision: CompensationRevision):
    return (revision.effective_month, _created_key(revision.created_at))


def latest_revision(history: Iterable[CompensationRevision]) -> Optional[CompensationRevision]:
    """Return the revision with the greatest (effective_month, created_at), or None."""
    history = list(history)
    if not history:
        return None
    return max(history, key=_order_key)


def resolve_base_salary(
    history: Iterable[CompensationRevision],
    as_of_month: str,
    fallback: int,
) -> int:
    """Resolve the base salary applicable to an evaluation month.

    Args:
        history: Revisions of one staff member (any order)
        as_of_month: Evaluation month (YYYY-MM)
        fallback: Amount to use when no revision is effective yet

    Returns:
        Amount of the latest revision effective on or before as_of_month,
        or fallback if there is none.
    """
    applicable = [rev for rev in history if rev.effective_month <= as_of_month]
    latest = latest_revision(applicable)
    if latest is None:
        return fallback
    return latest.amount


def get_effective_base_salary(staff: StaffRecord, as_of_month: str) -> int:
    """Base salary for an evaluation month, falling back to staff.base_salary."""
    return resolve_base_salary(staff.base_salary_history, as_of_month, staff.base_salary)


def _with_history(staff: StaffRecord, history: List[CompensationRevision]) -> StaffRecord:
    latest = latest_revision(history)
    base_salary = latest.amount if latest is not None else staff.base_salary
    return staff.model_copy(update={
        "base_salary_history": history,
        "base_salary": base_salary,
    })


def add_revision(
    staff: StaffRecord,
    effective_month: str,
    amount: int,
    memo: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    revision_id: Optional[str] = None,
) -> StaffRecord:
    """Append a revision and return the updated staff record.

    Args:
        staff: Staff record to revise
        effective_month: First month the amount applies (YYYY-MM)
        amount: New monthly base salary
        memo: Optional note
        now: Timestamp to record as created_at (default: current UTC time)
        revision_id: Revision id (default: random UUID)

    Returns:
        New StaffRecord; base_salary is the latest revision overall, which
        is not necessarily the one just added (back-dated revisions).
    """
    revision = CompensationRevision(
        id=revision_id or str(uuid.uuid4()),
        effective_month=effective_month,
        amount=amount,
        memo=memo,
        created_at=now or datetime.now(timezone.utc),
    )
    return _with_history(staff, [*staff.base_salary_history, revision])


def remove_revision(staff: StaffRecord, revision_id: str) -> StaffRecord:
    """Remove a revision by id.

    Removing the last remaining revision keeps the prior base_salary.

    Raises:
        RevisionNotFoundError: If revision_id is not in the history
    """
    history = [rev for rev in staff.base_salary_history if rev.id != revision_id]
    if len(history) == len(staff.base_salary_history):
        raise RevisionNotFoundError(f"Revision not found: {revision_id}")
    return _with_history(staff, history)


def update_revision(staff: StaffRecord, revision_id: str, **updates) -> StaffRecord:
    """Edit effective_month, amount or memo of an existing revision.

    Raises:
        RevisionNotFoundError: If revision_id is not in the history
        ValueError: If updates touch id/created_at or an unknown field
    """
    allowed = {"effective_month", "amount", "memo"}
    invalid = set(updates) - allowed
    if invalid:
        raise ValueError(f"Cannot update revision fields: {', '.join(sorted(invalid))}")

    found = False
    history = []
    for rev in staff.base_salary_history:
        if rev.id == revision_id:
            found = True
            # Re-validate so a bad month or negative amount is rejected
            rev = CompensationRevision.model_validate({**rev.model_dump(), **updates})
        history.append(rev)

    if not found:
        raise RevisionNotFoundError(f"Revision not found: {revision_id}")
    return _with_history(staff, history)


def migrate_base_salary(staff: StaffRecord, *, now: Optional[datetime] = None) -> StaffRecord:
    """Seed a history for records created before revisions existed.

    Records that already have a history are returned unchanged. The seed
    revision starts at the hire month, or 2000-01 when the hire date is
    unknown, and carries the current base_salary.
    """
    if staff.base_salary_history:
        return staff

    effective_month = staff.hire_date[:7] if staff.hire_date else MIGRATION_DEFAULT_MONTH
    seed = CompensationRevision(
        id=str(uuid.uuid4()),
        effective_month=effective_month,
        amount=staff.base_salary,
        memo=MIGRATION_MEMO,
        created_at=now or datetime.now(timezone.utc),
    )
    return staff.model_copy(update={"base_salary_history": [seed]})


def sort_history(history: Iterable[CompensationRevision]) -> List[CompensationRevision]:
    """Return revisions oldest first (for display)."""
    return sorted(history, key=_order_key)


def format_month(month: str) -> str:
    """Format YYYY-MM as 'YYYY年MM月'."""
    year, m = month.split("-")
    return f"{year}年{m}月"
