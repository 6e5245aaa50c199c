"""Pydantic schemas for carepay registry and sync data.

All schemas use extra='forbid' to reject unknown fields, ensuring
typos in registry files cause clear errors rather than silent ignoring.
Models are frozen: changes go through model_copy(update=...) so that
sync and salary functions can stay pure.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class BusinessType(str, Enum):
    """Business type of an office. Qualification masters are scoped per type."""

    HOME_CARE = "HOME_CARE"
    HOME_NURSING = "HOME_NURSING"


# =============================================================================
# Registry Schemas - Offices, masters, staff
# =============================================================================


class CompensationRevision(BaseModel):
    """One effective-dated change to a staff member's base salary."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(..., description="Revision identifier")
    effective_month: str = Field(
        ..., pattern=MONTH_PATTERN, description="First month the amount applies (YYYY-MM)"
    )
    amount: int = Field(..., ge=0, description="Monthly base salary in yen")
    memo: Optional[str] = Field(default=None, description="Free-form note")
    created_at: datetime = Field(..., description="When the revision was recorded")


class StaffRecord(BaseModel):
    """Staff member as stored in the registry.

    base_salary is a cached copy of the latest revision amount; the
    functions in comp.salary_history keep it in step with the history.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    office_id: str
    name: str
    base_salary: int = Field(..., ge=0, description="Current base salary (latest revision)")
    qualification_ids: List[str] = Field(
        default_factory=list,
        description="Held qualifications; unique, insertion order is significant",
    )
    base_salary_history: List[CompensationRevision] = Field(default_factory=list)
    external_employee_id: Optional[str] = Field(default=None, description="SmartHR crew id")
    external_employee_code: Optional[str] = Field(default=None, description="SmartHR emp_code")
    hire_date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    termination_date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    last_synced_at: Optional[datetime] = None

    @property
    def is_terminated(self) -> bool:
        return bool(self.termination_date)


class QualificationMaster(BaseModel):
    """Qualification with its monthly allowance.

    Lower priority numbers take precedence when a staff member holds
    several qualifications (see qualifications.select_primary_qualification).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    allowance: int = Field(default=0, ge=0)
    priority: int = Field(..., description="Lower value = higher precedence")
    external_code: Optional[str] = Field(
        default=None, description="Code used by SmartHR custom fields (e.g. 'certified_care_worker')"
    )


class Office(BaseModel):
    """Care-service office."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    business_type: BusinessType
    external_department_ref: Optional[str] = Field(
        default=None, description="SmartHR department id (or path fragment) this office maps to"
    )


class DepartmentMapping(BaseModel):
    """Manually curated SmartHR department -> office association."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    external_department_id: str
    external_department_name: str
    external_department_full_path: Optional[str] = None
    office_id: str


class QualificationMapping(BaseModel):
    """Manually curated SmartHR custom field value -> qualification association.

    external_value_id of None matches any non-empty value of the field.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    external_field_id: str
    external_field_name: str
    external_value_id: Optional[str] = None
    external_value_name: Optional[str] = None
    qualification_id: str
    business_type: BusinessType


# =============================================================================
# Sync Preview Schemas
# =============================================================================


class SyncItem(BaseModel):
    """Proposed add or update of one staff record."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    external_id: str
    employee_code: str = ""
    name: str
    department_name: Optional[str] = None
    office_id: str
    office_name: str = ""
    qualification_ids: List[str] = Field(default_factory=list)
    hire_date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    termination_date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    matched_staff_id: Optional[str] = None


ChangeType = Literal["resigned", "employment_type_changed"]


class StatusChangeItem(BaseModel):
    """Resignation or employment-type change of an existing staff member."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    staff_id: str
    external_id: str
    employee_code: str = ""
    name: str
    change_type: ChangeType
    detail: str
    termination_date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)


class SkippedItem(BaseModel):
    """External employee left out of the sync, with a human-readable reason."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    external_id: str
    employee_code: str = ""
    name: str
    reason: str


class SyncPreview(BaseModel):
    """Reviewable diff between SmartHR and the registry.

    unchanged holds matched employees whose synced fields already equal
    the registry; they are listed for review but never applied.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    to_add: List[SyncItem] = Field(default_factory=list)
    to_update: List[SyncItem] = Field(default_factory=list)
    status_changes: List[StatusChangeItem] = Field(default_factory=list)
    skipped: List[SkippedItem] = Field(default_factory=list)
    unchanged: List[SyncItem] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when applying the preview would change nothing."""
        return not (self.to_add or self.to_update or self.status_changes)

    def counts(self) -> Dict[str, int]:
        return {
            "to_add": len(self.to_add),
            "to_update": len(self.to_update),
            "status_changes": len(self.status_changes),
            "skipped": len(self.skipped),
            "unchanged": len(self.unchanged),
        }
