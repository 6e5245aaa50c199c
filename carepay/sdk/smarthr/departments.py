"""Map SmartHR departments to offices.

Resolution order (first hit wins, and the order matters: manual mappings
are a last resort, not an override):

1. Canonical department id: the department's own id, else a lookup of its
   full path, then its short name, in the department index.
2. Office whose external_department_ref equals the canonical id.
3. Heuristics over office refs, one pass per rule across all offices:
   ref equals id or name, then full path ends with ref, then full path
   contains ref.
4. Legacy manual DepartmentMapping table (id, name, full path).

The substring rules can match an office whose ref happens to be a
fragment of an unrelated path. They are kept because existing office
refs rely on them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..schemas import DepartmentMapping, Office
from .schemas import DepartmentRef, normalize_department

logger = logging.getLogger(__name__)

DEPARTMENT_UNSET_REASON = "department unset"


@dataclass(frozen=True)
class DepartmentResolution:
    """Outcome of department resolution: exactly one of office_id/skip_reason is set."""

    office_id: Optional[str] = None
    skip_reason: Optional[str] = None
    matched_by: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.office_id is not None


def build_department_index(departments: Iterable[Any]) -> Dict[str, str]:
    """Map short name and full path of each SmartHR department to its id.

    Args:
        departments: DepartmentPayload objects or dicts from /departments

    Returns:
        Dict of name -> id and full_path_name -> id. When two departments
        share a short name the first one wins; full paths are unique.
    """
    index: Dict[str, str] = {}
    for dept in departments:
        if isinstance(dept, dict):
            dept_id, name, full_path = dept.get("id"), dept.get("name"), dept.get("full_path_name")
        else:
            dept_id, name, full_path = dept.id, dept.name, dept.full_path_name
        if not dept_id:
            continue
        if full_path:
            index[full_path] = dept_id
        if name and name not in index:
            index[name] = dept_id
    return index


def canonical_department_id(dept: DepartmentRef, department_index: Dict[str, str]) -> Optional[str]:
    """Best-known SmartHR id for a normalized department."""
    if dept.id:
        return dept.id
    if dept.full_path and dept.full_path in department_index:
        return department_index[dept.full_path]
    return department_index.get(dept.name)


def _match_office_heuristic(dept: DepartmentRef, offices: Sequence[Office]) -> Optional[tuple]:
    refs = [(o, o.external_department_ref) for o in offices if o.external_department_ref]

    for office, ref in refs:
        if ref == dept.id or ref == dept.name:
            return office, "exact"

    if dept.full_path:
        for office, ref in refs:
            if dept.full_path.endswith(ref):
                return office, "path_suffix"
        for office, ref in refs:
            if ref in dept.full_path:
                return office, "path_contains"

    return None


def _match_legacy_mapping(
    dept: DepartmentRef,
    legacy_mappings: Sequence[DepartmentMapping],
) -> Optional[DepartmentMapping]:
    for mapping in legacy_mappings:
        if dept.id and mapping.external_department_id == dept.id:
            return mapping
        if mapping.external_department_name == dept.name:
            return mapping
        if dept.full_path and (
            mapping.external_department_full_path == dept.full_path
            # older mappings stored the full path in the name column
            or mapping.external_department_name == dept.full_path
        ):
            return mapping
    return None


def resolve_department(
    department: Any,
    offices: Sequence[Office],
    department_index: Optional[Dict[str, str]] = None,
    legacy_mappings: Sequence[DepartmentMapping] = (),
) -> DepartmentResolution:
    """Resolve a crew's department (string, object, or DepartmentRef) to an office.

    Args:
        department: Raw or normalized SmartHR department
        offices: All offices
        department_index: Name/full path -> SmartHR id (see build_department_index)
        legacy_mappings: Manual department mappings

    Returns:
        DepartmentResolution with office_id and matched_by on success,
        skip_reason otherwise. Never raises for unmapped departments.
    """
    dept = department if isinstance(department, DepartmentRef) else normalize_department(department)
    if dept is None:
        return DepartmentResolution(skip_reason=DEPARTMENT_UNSET_REASON)

    office_ids = {o.id for o in offices}

    canonical_id = canonical_department_id(dept, department_index or {})
    if canonical_id:
        for office in offices:
            if office.external_department_ref == canonical_id:
                return DepartmentResolution(office_id=office.id, matched_by="department_id")

    heuristic = _match_office_heuristic(dept, offices)
    if heuristic:
        office, rule = heuristic
        logger.debug(f"department '{dept.full_path or dept.name}' matched office {office.id} by {rule}")
        return DepartmentResolution(office_id=office.id, matched_by=rule)

    mapping = _match_legacy_mapping(dept, legacy_mappings)
    if mapping:
        if mapping.office_id not in office_ids:
            return DepartmentResolution(
                skip_reason=f'department "{dept.name}" is mapped to an office that does not exist'
            )
        return DepartmentResolution(office_id=mapping.office_id, matched_by="legacy_mapping")

    return DepartmentResolution(skip_reason=f'department "{dept.name}" has no office mapping')


def unmapped_departments(
    departments: Iterable[Any],
    offices: Sequence[Office],
    legacy_mappings: Sequence[DepartmentMapping] = (),
) -> List[DepartmentRef]:
    """SmartHR departments that no office or legacy mapping resolves to."""
    departments = list(departments)
    index = build_department_index(departments)
    result = []
    for raw in departments:
        dept = normalize_department(raw.model_dump() if hasattr(raw, "model_dump") else raw)
        if dept and not resolve_department(dept, offices, index, legacy_mappings).resolved:
            result.append(dept)
    return result
