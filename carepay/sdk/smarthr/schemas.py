"""Pydantic schemas for SmartHR API payloads.

The API is inconsistent about department and employment_type: depending on
the embed parameters and tenant they arrive as a plain string or as an
object. DepartmentRef and EmploymentTypeRef normalize both forms at the
boundary so the resolvers never branch on representation.

Unknown keys are ignored (extra='ignore'): crews carry many more fields
than sync uses.
"""

import re
from datetime import date
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_LOOSE_DATE_RE = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})(?:[T ].*)?$")


def normalize_date(value: Optional[str]) -> Optional[str]:
    """Normalize a SmartHR date to YYYY-MM-DD.

    Accepts "2024-04-01", "2024/4/1" and ISO timestamps such as
    "2024-04-01T00:00:00+09:00" (the date part is kept as given). Values
    that are not a calendar date are returned unchanged; check them with
    is_iso_date().
    """
    if not value:
        return None
    match = _LOOSE_DATE_RE.match(value.strip())
    if not match:
        return value
    try:
        return date(*(int(part) for part in match.groups())).isoformat()
    except ValueError:
        return value


def is_iso_date(value: Optional[str]) -> bool:
    return bool(value) and ISO_DATE_RE.match(value) is not None


class NamedRef(BaseModel):
    """An {id, name} object as embedded by the API."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None


class DepartmentPayload(NamedRef):
    """Department object as returned by /departments or embedded in a crew."""

    full_path_name: Optional[str] = None


class CustomFieldTemplateRef(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None


class CustomField(BaseModel):
    """Crew custom field. value is a string, an enum element object, or null."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    value: Union[NamedRef, str, int, float, None] = None
    template: Optional[CustomFieldTemplateRef] = None

    @property
    def field_name(self) -> str:
        """Template name, falling back to the field's own name."""
        if self.template and self.template.name:
            return self.template.name
        return self.name or ""

    @property
    def template_id(self) -> Optional[str]:
        return self.template.id if self.template else None

    @property
    def has_value(self) -> bool:
        return self.value is not None and self.value != ""


class Crew(BaseModel):
    """SmartHR employee ("crew") record. Read-only for a sync pass."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    emp_code: Optional[str] = None
    last_name: str = ""
    first_name: str = ""
    department: Union[DepartmentPayload, str, None] = None
    employment_type: Union[NamedRef, str, None] = None
    custom_fields: List[CustomField] = Field(default_factory=list)
    entered_at: Optional[str] = None
    resigned_at: Optional[str] = None

    @field_validator("entered_at", "resigned_at")
    @classmethod
    def _normalize_dates(cls, value: Optional[str]) -> Optional[str]:
        return normalize_date(value)

    @property
    def display_name(self) -> str:
        return f"{self.last_name} {self.first_name}".strip()

    @property
    def employee_code(self) -> str:
        return self.emp_code or ""


class CustomFieldTemplate(BaseModel):
    """Custom field template from /crew_custom_field_templates."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str
    type: Optional[str] = None
    elements: List[NamedRef] = Field(default_factory=list)


# =============================================================================
# Normalized references
# =============================================================================


class DepartmentRef(BaseModel):
    """Normalized department: optional id, short name, optional full path."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: Optional[str] = None
    name: str
    full_path: Optional[str] = None


class EmploymentTypeRef(BaseModel):
    """Normalized employment type."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: Optional[str] = None
    name: str


def normalize_department(department: Any) -> Optional[DepartmentRef]:
    """Normalize a department given as a path string, object, or dict.

    A string is a '/'-separated full path; its last segment is the name.
    Objects without a name fall back to the last segment of their full path.

    Returns:
        DepartmentRef, or None if the department is unset or unusable
    """
    if not department:
        return None

    if isinstance(department, str):
        name = department.split("/")[-1] or department
        return DepartmentRef(name=name, full_path=department)

    if isinstance(department, dict):
        department = DepartmentPayload.model_validate(department)

    full_path = getattr(department, "full_path_name", None) or None
    name = department.name or (full_path.split("/")[-1] if full_path else None)
    if not name:
        return None
    return DepartmentRef(id=department.id or None, name=name, full_path=full_path)


def normalize_employment_type(employment_type: Any) -> Optional[EmploymentTypeRef]:
    """Normalize an employment type given as a string, object, or dict.

    A bare string serves as both id and name.
    """
    if not employment_type:
        return None

    if isinstance(employment_type, str):
        return EmploymentTypeRef(id=employment_type, name=employment_type)

    if isinstance(employment_type, dict):
        employment_type = NamedRef.model_validate(employment_type)

    if not employment_type.name and not employment_type.id:
        return None
    return EmploymentTypeRef(
        id=employment_type.id or None,
        name=employment_type.name or employment_type.id,
    )
