"""Employment-type filter for sync scope."""

from typing import Any, Collection, Optional

from .schemas import Crew, EmploymentTypeRef, normalize_employment_type


def is_included(employee: Any, filter_set: Collection[str]) -> bool:
    """Whether an employee's employment type is within sync scope.

    Args:
        employee: Crew, EmploymentTypeRef, or raw employment_type value
        filter_set: Employment type ids and/or names to sync. Empty = all.

    Returns:
        True if filter_set is empty, or the employment type's id or name
        is in it. An unset employment type is out of scope once a filter
        is configured.
    """
    if not filter_set:
        return True

    emp_type = employment_type_of(employee)
    if emp_type is None:
        return False
    return emp_type.id in filter_set or emp_type.name in filter_set


def employment_type_of(employee: Any) -> Optional[EmploymentTypeRef]:
    if isinstance(employee, EmploymentTypeRef):
        return employee
    if isinstance(employee, Crew):
        return normalize_employment_type(employee.employment_type)
    return normalize_employment_type(employee)
