"""Tests for the SmartHR API client (fake requests session, no network)."""

import pytest
import requests

from carepay.sdk.smarthr.client import (
    CONNECTIVITY_ERROR_MESSAGE,
    CREW_EMBED,
    SmartHRApiError,
    SmartHRClient,
)


class FakeResponse:
    def __init__(self, *, status_code=200, json_data=None, invalid_json=False):
        self.status_code = status_code
        self._json_data = json_data if json_data is not None else []
        self._invalid_json = invalid_json
        self.ok = status_code < 400

    def json(self):
        if self._invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json_data


class FakeSession:
    """Serves queued responses, or pages of a row list keyed by endpoint."""

    def __init__(self, responses=None, pages=None, error=None):
        self.responses = list(responses or [])
        self.pages = pages or {}
        self.error = error
        self.get_calls = []

    def get(self, url, headers=None, params=None, timeout=None):
        self.get_calls.append({"url": url, "headers": headers, "params": dict(params or {}),
                               "timeout": timeout})
        if self.error:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        endpoint = url.split("/api/v1", 1)[1]
        rows = self.pages.get(endpoint, [])
        per_page = params["per_page"]
        start = (params["page"] - 1) * per_page
        return FakeResponse(json_data=rows[start:start + per_page])


def make_client(session, per_page=100):
    return SmartHRClient("example", "secret-token", session=session, per_page=per_page)


class TestRequests:

    def test_base_url_and_auth_header(self):
        session = FakeSession(responses=[FakeResponse(json_data=[{"id": "c1"}])])
        client = make_client(session)

        assert client.test_connection() is True

        call = session.get_calls[0]
        assert call["url"] == "https://example.smarthr.jp/api/v1/crews"
        assert call["headers"]["Authorization"] == "Bearer secret-token"
        assert call["params"] == {"per_page": 1}
        assert call["timeout"] == 30.0

    def test_crews_request_embeds_related_objects(self):
        session = FakeSession(pages={"/crews": [{"id": "c1"}]})
        make_client(session).get_all_crews()
        assert session.get_calls[0]["params"]["embed"] == CREW_EMBED

    def test_crews_parsed(self):
        rows = [{
            "id": "c1",
            "emp_code": "EMP001",
            "last_name": "山田",
            "first_name": "太郎",
            "department": "本部/テスト部署A",
            "employment_type": {"id": "emp-001", "name": "正社員"},
            "custom_fields": [{"value": {"id": "x", "name": "介護福祉士"}, "template": {"id": "t", "name": "資格①"}}],
            "entered_at": "2020-04-01",
            "tel_number": "ignored",
        }]
        [crew] = make_client(FakeSession(pages={"/crews": rows})).get_all_crews()
        assert crew.display_name == "山田 太郎"
        assert crew.department == "本部/テスト部署A"
        assert crew.custom_fields[0].field_name == "資格①"


class TestPagination:

    def test_walks_pages_until_short_page(self):
        rows = [{"id": f"d{i}", "name": f"部署{i}"} for i in range(5)]
        session = FakeSession(pages={"/departments": rows})

        departments = make_client(session, per_page=2).get_departments()

        assert [d.id for d in departments] == ["d0", "d1", "d2", "d3", "d4"]
        assert [c["params"]["page"] for c in session.get_calls] == [1, 2, 3]

    def test_stops_on_empty_page(self):
        rows = [{"id": f"e{i}", "name": f"type{i}"} for i in range(4)]
        session = FakeSession(pages={"/employment_types": rows})

        types = make_client(session, per_page=2).get_employment_types()

        assert len(types) == 4
        assert [c["params"]["page"] for c in session.get_calls] == [1, 2, 3]

    def test_empty_collection(self):
        session = FakeSession(pages={})
        assert make_client(session).get_custom_field_templates() == []
        assert len(session.get_calls) == 1


class TestErrors:

    @pytest.mark.parametrize("status, fragment", [
        (401, "invalid"),
        (403, "forbidden"),
        (404, "not found"),
        (429, "rate limit"),
        (500, "500"),
    ])
    def test_status_mapping(self, status, fragment):
        session = FakeSession(responses=[FakeResponse(status_code=status)])
        with pytest.raises(SmartHRApiError) as exc_info:
            make_client(session).get_departments()
        assert exc_info.value.status == status
        assert fragment in exc_info.value.message

    def test_auth_and_rate_limit_flags(self):
        assert SmartHRApiError(401, "x").is_auth_error
        assert SmartHRApiError(429, "x").is_rate_limited
        assert not SmartHRApiError(500, "x").is_auth_error

    def test_connectivity_failure_is_status_zero(self):
        session = FakeSession(error=requests.ConnectionError("connection refused"))
        with pytest.raises(SmartHRApiError) as exc_info:
            make_client(session).test_connection()
        assert exc_info.value.status == 0
        assert exc_info.value.message == CONNECTIVITY_ERROR_MESSAGE

    def test_timeout_is_status_zero(self):
        session = FakeSession(error=requests.Timeout("timed out"))
        with pytest.raises(SmartHRApiError) as exc_info:
            make_client(session).get_all_crews()
        assert exc_info.value.status == 0

    def test_invalid_json_is_status_zero(self):
        session = FakeSession(responses=[FakeResponse(invalid_json=True)])
        with pytest.raises(SmartHRApiError) as exc_info:
            make_client(session).get_departments()
        assert exc_info.value.status == 0

    def test_error_on_later_page_propagates(self):
        session = FakeSession(responses=[
            FakeResponse(json_data=[{"id": "d1"}, {"id": "d2"}]),
            FakeResponse(status_code=429),
        ])
        with pytest.raises(SmartHRApiError) as exc_info:
            make_client(session, per_page=2).get_departments()
        assert exc_info.value.is_rate_limited
