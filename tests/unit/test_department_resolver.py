"""Tests for SmartHR department -> office resolution."""

import pytest

from carepay.sdk.schemas import BusinessType, DepartmentMapping, Office
from carepay.sdk.smarthr.departments import (
    build_department_index,
    canonical_department_id,
    resolve_department,
    unmapped_departments,
)
from carepay.sdk.smarthr.schemas import DepartmentRef, normalize_department


OFFICES = [
    Office(id="office-001", name="テスト事業所A", business_type=BusinessType.HOME_CARE,
           external_department_ref="dept-001"),
    Office(id="office-002", name="テスト事業所B", business_type=BusinessType.HOME_NURSING,
           external_department_ref="dept-002"),
]

DEPARTMENT_INDEX = {
    "テスト部署A": "dept-001",
    "本部/テスト部署A": "dept-001",
    "テスト部署B": "dept-002",
}


class TestNormalizeDepartment:

    def test_path_string(self):
        dept = normalize_department("本部/介護/テスト部署A")
        assert dept == DepartmentRef(id=None, name="テスト部署A", full_path="本部/介護/テスト部署A")

    def test_object(self):
        dept = normalize_department({"id": "dept-001", "name": "テスト部署A", "full_path_name": "本部/テスト部署A"})
        assert dept == DepartmentRef(id="dept-001", name="テスト部署A", full_path="本部/テスト部署A")

    def test_object_without_name_uses_path_tail(self):
        dept = normalize_department({"id": "d", "full_path_name": "本部/訪問看護"})
        assert dept.name == "訪問看護"

    @pytest.mark.parametrize("value", [None, "", {}])
    def test_unset(self, value):
        assert normalize_department(value) is None


class TestBuildDepartmentIndex:

    def test_indexes_name_and_full_path(self):
        index = build_department_index([
            {"id": "dept-001", "name": "テスト部署A", "full_path_name": "本部/テスト部署A"},
        ])
        assert index == {"本部/テスト部署A": "dept-001", "テスト部署A": "dept-001"}

    def test_first_short_name_wins(self):
        index = build_department_index([
            {"id": "d1", "name": "介護", "full_path_name": "東/介護"},
            {"id": "d2", "name": "介護", "full_path_name": "西/介護"},
        ])
        assert index["介護"] == "d1"
        assert index["西/介護"] == "d2"

    def test_canonical_prefers_own_id_then_path_then_name(self):
        assert canonical_department_id(DepartmentRef(id="x", name="テスト部署A"), DEPARTMENT_INDEX) == "x"
        assert canonical_department_id(
            DepartmentRef(name="テスト部署A", full_path="本部/テスト部署A"), DEPARTMENT_INDEX) == "dept-001"
        assert canonical_department_id(DepartmentRef(name="テスト部署B"), DEPARTMENT_INDEX) == "dept-002"
        assert canonical_department_id(DepartmentRef(name="未知"), DEPARTMENT_INDEX) is None


class TestResolveDepartment:

    def test_object_by_id(self):
        result = resolve_department(
            {"id": "dept-001", "name": "テスト部署A", "full_path_name": "本部/テスト部署A"},
            OFFICES, DEPARTMENT_INDEX,
        )
        assert result.office_id == "office-001"
        assert result.matched_by == "department_id"

    def test_path_string_via_index(self):
        result = resolve_department("本部/テスト部署A", OFFICES, DEPARTMENT_INDEX)
        assert result.office_id == "office-001"
        assert result.matched_by == "department_id"

    def test_heuristic_exact_name(self):
        offices = [Office(id="o1", name="A", business_type=BusinessType.HOME_CARE,
                          external_department_ref="訪問介護")]
        result = resolve_department("本部/訪問介護", offices, {})
        assert result.office_id == "o1"
        assert result.matched_by == "exact"

    def test_heuristic_suffix_before_contains(self):
        offices = [
            Office(id="contains", name="C", business_type=BusinessType.HOME_CARE,
                   external_department_ref="東京"),
            Office(id="suffix", name="S", business_type=BusinessType.HOME_CARE,
                   external_department_ref="東京/訪問介護"),
        ]
        result = resolve_department("本部/東京/訪問介護", offices, {})
        assert result.office_id == "suffix"
        assert result.matched_by == "path_suffix"

    def test_heuristic_contains(self):
        offices = [Office(id="o1", name="A", business_type=BusinessType.HOME_CARE,
                          external_department_ref="東京")]
        result = resolve_department("本部/東京/訪問介護", offices, {})
        assert result.office_id == "o1"
        assert result.matched_by == "path_contains"

    def test_canonical_id_beats_heuristic(self):
        offices = [
            Office(id="by-name", name="N", business_type=BusinessType.HOME_CARE,
                   external_department_ref="テスト部署A"),
            Office(id="by-id", name="I", business_type=BusinessType.HOME_CARE,
                   external_department_ref="dept-001"),
        ]
        result = resolve_department("本部/テスト部署A", offices, DEPARTMENT_INDEX)
        assert result.office_id == "by-id"

    def test_heuristic_beats_legacy_mapping(self):
        offices = OFFICES + [Office(id="o-h", name="H", business_type=BusinessType.HOME_CARE,
                                    external_department_ref="訪問介護")]
        legacy = [DepartmentMapping(external_department_id="z", external_department_name="訪問介護",
                                    office_id="office-002")]
        result = resolve_department("本部/訪問介護", offices, {}, legacy)
        assert result.office_id == "o-h"

    @pytest.mark.parametrize("mapping_kwargs", [
        {"external_department_id": "dept-009", "external_department_name": "other"},
        {"external_department_id": "x", "external_department_name": "未知の部署"},
        {"external_department_id": "x", "external_department_name": "other",
         "external_department_full_path": "本部/未知の部署"},
        {"external_department_id": "x", "external_department_name": "本部/未知の部署"},
    ])
    def test_legacy_mapping_fallback(self, mapping_kwargs):
        legacy = [DepartmentMapping(office_id="office-002", **mapping_kwargs)]
        dept = {"id": "dept-009", "name": "未知の部署", "full_path_name": "本部/未知の部署"}
        result = resolve_department(dept, OFFICES, DEPARTMENT_INDEX, legacy)
        assert result.office_id == "office-002"
        assert result.matched_by == "legacy_mapping"

    def test_legacy_mapping_to_missing_office_is_skip(self):
        legacy = [DepartmentMapping(external_department_id="dept-009", external_department_name="未知の部署",
                                    office_id="gone")]
        result = resolve_department({"id": "dept-009", "name": "未知の部署"}, OFFICES, {}, legacy)
        assert not result.resolved
        assert "does not exist" in result.skip_reason

    def test_unresolved_reason_names_department(self):
        result = resolve_department(
            {"id": "unknown-dept", "name": "未知の部署", "full_path_name": "本部/未知の部署"},
            OFFICES, DEPARTMENT_INDEX,
        )
        assert not result.resolved
        assert "未知の部署" in result.skip_reason

    def test_unset_department(self):
        result = resolve_department(None, OFFICES, DEPARTMENT_INDEX)
        assert result.skip_reason == "department unset"

    def test_unmapped_departments(self):
        departments = [
            {"id": "dept-001", "name": "テスト部署A", "full_path_name": "本部/テスト部署A"},
            {"id": "dept-777", "name": "経理", "full_path_name": "本社/経理"},
        ]
        refs = unmapped_departments(departments, OFFICES)
        assert [r.id for r in refs] == ["dept-777"]
