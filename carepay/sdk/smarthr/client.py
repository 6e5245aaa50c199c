"""SmartHR REST API client.

Thin wrapper over requests: bearer-token auth, page-number pagination and
mapping of HTTP failures to SmartHRApiError. List endpoints are walked
sequentially with per_page/page until a page shorter than per_page (or an
empty page) is returned.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import requests

from .schemas import Crew, CustomFieldTemplate, DepartmentPayload, NamedRef

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 100
DEFAULT_TIMEOUT = 30.0
CREW_EMBED = "department,employment_type,custom_fields"

CONNECTIVITY_ERROR_MESSAGE = "Could not reach SmartHR. Check the network connection."

STATUS_MESSAGES = {
    401: "Access token is invalid",
    403: "Access to the SmartHR API is forbidden for this token",
    404: "Resource not found",
    429: "SmartHR API rate limit reached. Wait a while and retry",
}


class SmartHRApiError(Exception):
    """Raised for any SmartHR API or connectivity failure.

    status is the HTTP status code, or 0 when no usable response was received.
    """

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(message)

    @property
    def is_auth_error(self) -> bool:
        return self.status == 401

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429


def error_for_status(status: int) -> SmartHRApiError:
    """Build the SmartHRApiError for a non-2xx status code."""
    message = STATUS_MESSAGES.get(status, f"SmartHR API error: {status}")
    return SmartHRApiError(status, message)


class SmartHRClient:
    """Read-only client for the SmartHR v1 API."""

    def __init__(
        self,
        subdomain: str,
        access_token: str,
        *,
        session: Optional[requests.Session] = None,
        per_page: int = DEFAULT_PER_PAGE,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.subdomain = subdomain
        self.session = session or requests.Session()
        self.per_page = max(1, int(per_page))
        self.timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    @property
    def base_url(self) -> str:
        return f"https://{self.subdomain}.smarthr.jp/api/v1"

    # Public API -----------------------------------------------------------------

    def test_connection(self) -> bool:
        """Fetch a single crew to verify subdomain and token.

        Raises:
            SmartHRApiError: On any failure (never returns False)
        """
        self._get("/crews", {"per_page": 1})
        return True

    def get_all_crews(self) -> List[Crew]:
        """All crews with department, employment type and custom fields embedded."""
        rows = self._get_all("/crews", {"embed": CREW_EMBED})
        return [Crew.model_validate(row) for row in rows]

    def get_departments(self) -> List[DepartmentPayload]:
        rows = self._get_all("/departments")
        return [DepartmentPayload.model_validate(row) for row in rows]

    def get_employment_types(self) -> List[NamedRef]:
        rows = self._get_all("/employment_types")
        return [NamedRef.model_validate(row) for row in rows]

    def get_custom_field_templates(self) -> List[CustomFieldTemplate]:
        rows = self._get_all("/crew_custom_field_templates")
        return [CustomFieldTemplate.model_validate(row) for row in rows]

    # Internal helpers -----------------------------------------------------------

    def _get_all(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        results: List[Dict[str, Any]] = []
        page = 1
        while True:
            page_params = {**(params or {}), "per_page": self.per_page, "page": page}
            rows = self._get(endpoint, page_params)
            if not rows:
                break
            results.extend(rows)
            logger.debug(f"{endpoint} page {page}: {len(rows)} row(s)")
            if len(rows) < self.per_page:
                break
            page += 1
        return results

    def _get(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.get(
                url, headers=self._headers, params=params, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.debug(f"GET {endpoint} failed: {e}")
            raise SmartHRApiError(0, CONNECTIVITY_ERROR_MESSAGE) from e

        if not response.ok:
            logger.debug(f"GET {endpoint} returned {response.status_code}")
            raise error_for_status(response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise SmartHRApiError(0, f"Invalid JSON from SmartHR ({endpoint})") from e
