"""Local staff registry storage.

The registry is a single JSON document (<data_dir>/registry.json) holding
offices, qualification masters, mappings and staff. It is always written
as a whole: save_registry() writes a temp file next to the target and
replaces it, so readers see either the old or the new registry.

Sync results must go through replace_staff() + save_registry() in one
step; never save after applying only part of a preview.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import get_data_path
from .schemas import (
    BusinessType,
    DepartmentMapping,
    Office,
    QualificationMapping,
    QualificationMaster,
    StaffRecord,
)

# Configure logging based on LOG_LEVEL environment variable
_log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, _log_level, logging.INFO),
    format="%(asctime)s.%(msecs)03d %(levelname)s: %(message)s",
    datefmt="%H:%M:%S"
)
logger = logging.getLogger(__name__)

REGISTRY_FILENAME = "registry.json"


class RegistryError(Exception):
    """Raised when the registry file cannot be read or is invalid."""
    pass


class StaffNotFoundError(LookupError):
    """Raised when a staff id is not in the registry."""
    pass


class Registry(BaseModel):
    """Everything sync and payroll read from storage."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    offices: List[Office] = Field(default_factory=list)
    qualification_masters: Dict[BusinessType, List[QualificationMaster]] = Field(default_factory=dict)
    department_mappings: List[DepartmentMapping] = Field(default_factory=list)
    qualification_mappings: List[QualificationMapping] = Field(default_factory=list)
    staff: List[StaffRecord] = Field(default_factory=list)

    def get_office(self, office_id: str) -> Optional[Office]:
        for office in self.offices:
            if office.id == office_id:
                return office
        return None

    def get_staff(self, staff_id: str) -> StaffRecord:
        """Staff record by id.

        Raises:
            StaffNotFoundError: If no staff record has this id
        """
        for staff in self.staff:
            if staff.id == staff_id:
                return staff
        raise StaffNotFoundError(f"Staff not found: {staff_id}")

    def masters_for_office(self, office_id: str) -> List[QualificationMaster]:
        office = self.get_office(office_id)
        if office is None:
            return []
        return self.qualification_masters.get(office.business_type, [])


def get_registry_path() -> Path:
    """Path to registry.json in the data directory."""
    return get_data_path() / REGISTRY_FILENAME


def load_registry(path: Optional[Path] = None) -> Registry:
    """Load the registry.

    Returns:
        Registry (empty if the file does not exist)

    Raises:
        RegistryError: If the file is not valid JSON or fails validation
    """
    path = path or get_registry_path()
    if not path.exists():
        logger.debug(f"no registry at {path}, starting empty")
        return Registry()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return Registry.model_validate(data)
    except json.JSONDecodeError as e:
        raise RegistryError(f"Registry is not valid JSON: {path}\n{e}") from e
    except ValidationError as e:
        raise RegistryError(f"Registry failed validation: {path}\n{e}") from e


def save_registry(registry: Registry, path: Optional[Path] = None) -> Path:
    """Write the whole registry atomically.

    Returns:
        Path to the saved registry file
    """
    path = path or get_registry_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=".registry-", suffix=".json", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(registry.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    logger.debug(f"saved registry ({len(registry.staff)} staff) to {path}")
    return path


def replace_staff(registry: Registry, staff: Sequence[StaffRecord]) -> Registry:
    """Registry with its staff collection replaced as a whole."""
    return registry.model_copy(update={"staff": list(staff)})


def replace_staff_record(registry: Registry, record: StaffRecord) -> Registry:
    """Registry with one staff record replaced by id.

    Raises:
        StaffNotFoundError: If record.id is not in the registry
    """
    registry.get_staff(record.id)
    return replace_staff(registry, [record if s.id == record.id else s for s in registry.staff])
