"""comp - Base salary history and effective-dated resolution."""

from .salary_history import (
    RevisionNotFoundError,
    add_revision,
    format_month,
    get_effective_base_salary,
    latest_revision,
    migrate_base_salary,
    remove_revision,
    resolve_base_salary,
    sort_history,
    update_revision,
)

__all__ = [
    "RevisionNotFoundError",
    "add_revision",
    "format_month",
    "get_effective_base_salary",
    "latest_revision",
    "migrate_base_salary",
    "remove_revision",
    "resolve_base_salary",
    "sort_history",
    "update_revision",
]
