"""Primary qualification selection.

A staff member may hold several qualifications but only the primary one's
allowance is paid. The primary is the held qualification with the lowest
priority number; ties keep the order of the staff member's own list.
Used by sync review output, payroll and the staff listing.
"""

from typing import Iterable, List, Optional, Sequence

from .schemas import QualificationMaster


def held_qualifications(
    held_ids: Sequence[str],
    masters: Iterable[QualificationMaster],
) -> List[QualificationMaster]:
    """Masters for held_ids, in held_ids order. Unknown ids are dropped."""
    by_id = {q.id: q for q in masters}
    result = []
    seen = set()
    for qual_id in held_ids:
        if qual_id in by_id and qual_id not in seen:
            seen.add(qual_id)
            result.append(by_id[qual_id])
    return result


def select_primary_qualification(
    held_ids: Sequence[str],
    masters: Iterable[QualificationMaster],
) -> Optional[QualificationMaster]:
    """Return the primary qualification, or None if none of held_ids is known."""
    held = held_qualifications(held_ids, masters)
    if not held:
        return None
    # sorted() is stable, so equal priorities keep held_ids order
    return sorted(held, key=lambda q: q.priority)[0]


def primary_allowance(
    held_ids: Sequence[str],
    masters: Iterable[QualificationMaster],
) -> int:
    """Allowance of the primary qualification (0 if none)."""
    primary = select_primary_qualification(held_ids, masters)
    return primary.allowance if primary else 0
