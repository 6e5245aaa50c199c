"""Tests for apply_sync_preview() and sync idempotency."""

import itertools
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from carepay.sdk.registry import Registry
from carepay.sdk.schemas import (
    BusinessType,
    CompensationRevision,
    Office,
    QualificationMaster,
    StaffRecord,
    StatusChangeItem,
    SyncItem,
    SyncPreview,
)
from carepay.sdk.smarthr.sync import (
    AUTO_REVISION_MEMO,
    DEFAULT_BASE_SALARY,
    apply_sync_preview,
    generate_sync_preview,
)


NOW = datetime(2024, 6, 15, 9, 0, tzinfo=timezone.utc)

OFFICES = [
    Office(id="office-001", name="テスト事業所A", business_type=BusinessType.HOME_CARE,
           external_department_ref="dept-001"),
    Office(id="office-002", name="テスト事業所B", business_type=BusinessType.HOME_CARE,
           external_department_ref="dept-002"),
]

MASTERS = {
    BusinessType.HOME_CARE: [
        QualificationMaster(id="qual-001", name="介護福祉士", allowance=15000, priority=1),
        QualificationMaster(id="qual-002", name="初任者研修", allowance=5000, priority=2),
    ],
}


def id_factory():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


def make_staff(staff_id="staff-001", **overrides):
    fields = {
        "id": staff_id,
        "office_id": "office-001",
        "name": "山田 太郎",
        "base_salary": 250000,
        "qualification_ids": ["qual-002"],
        "base_salary_history": [CompensationRevision(
            id="rev-1", effective_month="2020-04", amount=250000,
            created_at=datetime(2020, 4, 1, tzinfo=timezone.utc),
        )],
        "external_employee_id": "crew-001",
        "external_employee_code": "EMP001",
        "hire_date": "2020-04-01",
    }
    fields.update(overrides)
    return StaffRecord(**fields)


def make_item(**overrides):
    fields = {
        "external_id": "crew-002",
        "employee_code": "EMP002",
        "name": "佐藤 花子",
        "office_id": "office-001",
        "office_name": "テスト事業所A",
        "qualification_ids": ["qual-001"],
        "hire_date": "2023-10-01",
    }
    fields.update(overrides)
    return SyncItem(**fields)


def make_crew(crew_id, emp_code, last_name, first_name, dept_id="dept-001", **overrides):
    crew = {
        "id": crew_id,
        "emp_code": emp_code,
        "last_name": last_name,
        "first_name": first_name,
        "department": {"id": dept_id, "name": dept_id},
        "employment_type": {"id": "emp-001", "name": "正社員"},
        "custom_fields": [{"value": "介護福祉士", "template": {"id": "tpl-1", "name": "資格①"}}],
        "entered_at": "2021-04-01",
    }
    crew.update(overrides)
    return crew


def run_preview(crews, staff, employment_filter=()):
    return generate_sync_preview(crews, employment_filter, [], [], OFFICES, MASTERS, staff)


class TestApplyAdds:

    def test_new_staff_gets_default_salary_and_revision(self):
        result = apply_sync_preview(SyncPreview(to_add=[make_item()]), [], now=NOW, id_factory=id_factory())

        assert len(result) == 1
        staff = result[0]
        assert staff.id == "id-1"
        assert staff.base_salary == DEFAULT_BASE_SALARY == 200000
        assert len(staff.base_salary_history) == 1
        revision = staff.base_salary_history[0]
        assert revision.id == "id-2"
        assert revision.effective_month == "2023-10"
        assert revision.amount == DEFAULT_BASE_SALARY
        assert revision.memo == AUTO_REVISION_MEMO
        assert revision.created_at == NOW
        assert staff.qualification_ids == ["qual-001"]
        assert staff.external_employee_id == "crew-002"
        assert staff.external_employee_code == "EMP002"
        assert staff.hire_date == "2023-10-01"
        assert staff.last_synced_at == NOW

    def test_no_hire_date_uses_current_month(self):
        result = apply_sync_preview(SyncPreview(to_add=[make_item(hire_date=None)]), [], now=NOW)
        assert result[0].base_salary_history[0].effective_month == "2024-06"

    def test_default_ids_are_unique(self):
        items = [make_item(), make_item(external_id="crew-003", employee_code="EMP003")]
        result = apply_sync_preview(SyncPreview(to_add=items), [], now=NOW)
        ids = [s.id for s in result] + [s.base_salary_history[0].id for s in result]
        assert len(set(ids)) == 4

    def test_adds_appended_after_existing(self):
        existing = [make_staff()]
        result = apply_sync_preview(SyncPreview(to_add=[make_item()]), existing, now=NOW)
        assert [s.id for s in result][0] == "staff-001"
        assert len(result) == 2


class TestApplyUpdates:

    def test_update_overwrites_directory_fields_only(self):
        existing = make_staff()
        item = make_item(
            external_id="crew-001", employee_code="EMP001", name="山田 太郎",
            office_id="office-002", office_name="テスト事業所B",
            qualification_ids=["qual-001", "qual-002"], hire_date="2020-04-01",
            matched_staff_id="staff-001",
        )
        [updated] = apply_sync_preview(SyncPreview(to_update=[item]), [existing], now=NOW)

        assert updated.office_id == "office-002"
        assert updated.qualification_ids == ["qual-001", "qual-002"]
        assert updated.last_synced_at == NOW
        assert updated.base_salary == existing.base_salary
        assert updated.base_salary_history == existing.base_salary_history

    def test_unknown_update_target_ignored(self):
        existing = [make_staff()]
        item = make_item(matched_staff_id="staff-gone")
        assert apply_sync_preview(SyncPreview(to_update=[item]), existing, now=NOW) == existing

    def test_unchanged_items_not_applied(self):
        existing = [make_staff()]
        item = make_item(matched_staff_id="staff-001", office_id="office-002")
        result = apply_sync_preview(SyncPreview(unchanged=[item]), existing, now=NOW)
        assert result == existing

    def test_existing_list_not_mutated(self):
        existing = [make_staff()]
        before = [s.model_dump() for s in existing]
        item = make_item(matched_staff_id="staff-001", office_id="office-002")
        apply_sync_preview(SyncPreview(to_update=[item], to_add=[make_item()]), existing, now=NOW)
        assert [s.model_dump() for s in existing] == before
        assert len(existing) == 1


class TestApplyStatusChanges:

    def change(self, **overrides):
        fields = {
            "staff_id": "staff-001",
            "external_id": "crew-001",
            "employee_code": "EMP001",
            "name": "山田 太郎",
            "change_type": "resigned",
            "detail": "resigned on 2024-05-31",
            "termination_date": "2024-05-31",
        }
        fields.update(overrides)
        return StatusChangeItem(**fields)

    def test_resigned_sets_termination_date(self):
        [staff] = apply_sync_preview(SyncPreview(status_changes=[self.change()]), [make_staff()], now=NOW)
        assert staff.termination_date == "2024-05-31"
        assert staff.is_terminated
        assert staff.last_synced_at == NOW
        assert staff.base_salary == 250000

    def test_employment_type_change_only_touches_timestamp(self):
        existing = make_staff()
        change = self.change(change_type="employment_type_changed",
                             detail='employment type changed to "業務委託"', termination_date=None)
        [staff] = apply_sync_preview(SyncPreview(status_changes=[change]), [existing], now=NOW)
        assert staff.last_synced_at == NOW
        assert staff.model_copy(update={"last_synced_at": None}) == existing

    def test_unknown_status_change_target_ignored(self):
        existing = [make_staff()]
        change = self.change(staff_id="staff-gone")
        assert apply_sync_preview(SyncPreview(status_changes=[change]), existing, now=NOW) == existing


class TestIdempotency:

    def test_second_pass_is_empty(self):
        existing = [
            make_staff("staff-001", office_id="office-002"),
            make_staff("staff-002", name="鈴木 一郎", external_employee_id="crew-002",
                       external_employee_code="EMP002"),
        ]
        crews = [
            make_crew("crew-001", "EMP001", "山田", "太郎"),
            make_crew("crew-002", "EMP002", "鈴木", "一郎", resigned_at="2024-05-31"),
            make_crew("crew-003", "EMP003", "佐藤", "花子", dept_id="dept-002"),
        ]

        first = run_preview(crews, existing)
        assert first.counts()["to_add"] == 1
        assert first.counts()["to_update"] == 1
        assert first.counts()["status_changes"] == 1

        applied = apply_sync_preview(first, existing, now=NOW)
        second = run_preview(crews, applied)

        assert second.to_add == []
        assert second.to_update == []
        assert second.status_changes == []
        assert {i.external_id for i in second.unchanged} == {"crew-001", "crew-003"}
        assert [s.external_id for s in second.skipped] == ["crew-002"]

    def test_employment_type_change_reported_each_pass(self):
        existing = [make_staff()]
        crews = [make_crew("crew-001", "EMP001", "山田", "太郎",
                           employment_type={"id": "emp-003", "name": "業務委託"})]

        first = run_preview(crews, existing, {"emp-001"})
        applied = apply_sync_preview(first, existing, now=NOW)
        second = run_preview(crews, applied, {"emp-001"})

        assert [c.change_type for c in second.status_changes] == ["employment_type_changed"]
        assert second.to_add == second.to_update == []


class TestSmartHRDates:

    def test_slash_dates_apply_to_valid_registry(self):
        existing = [make_staff()]
        crews = [
            make_crew("crew-001", "EMP001", "山田", "太郎", resigned_at="2024/5/31"),
            make_crew("crew-002", "EMP002", "佐藤", "花子", entered_at="2024/04/01"),
            make_crew("crew-003", "EMP003", "鈴木", "一郎", entered_at="2024-04-02T00:00:00+09:00"),
        ]

        applied = apply_sync_preview(run_preview(crews, existing), existing, now=NOW)
        registry = Registry.model_validate(Registry(staff=applied).model_dump(mode="json"))

        by_code = {s.external_employee_code: s for s in registry.staff}
        assert by_code["EMP001"].termination_date == "2024-05-31"
        assert by_code["EMP002"].hire_date == "2024-04-01"
        assert by_code["EMP002"].base_salary_history[0].effective_month == "2024-04"
        assert by_code["EMP003"].hire_date == "2024-04-02"

    def test_bad_date_never_reaches_registry(self):
        existing = [make_staff()]
        crews = [
            make_crew("crew-001", "EMP001", "山田", "太郎", entered_at="2021/4/1", resigned_at="31.05.2024"),
            make_crew("crew-002", "EMP002", "佐藤", "花子", entered_at="2024-04-31"),
        ]

        preview = run_preview(crews, existing)
        assert preview.is_empty
        assert apply_sync_preview(preview, existing, now=NOW) == existing

    def test_preview_items_reject_bad_dates(self):
        with pytest.raises(ValidationError):
            make_item(hire_date="2024/04/01")
        with pytest.raises(ValidationError):
            SyncPreview.model_validate({"status_changes": [{
                "staff_id": "staff-001", "external_id": "crew-001", "name": "山田 太郎",
                "change_type": "resigned", "detail": "resigned", "termination_date": "2024/05/31",
            }]})
