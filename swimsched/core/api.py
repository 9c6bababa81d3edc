"""PostgREST client for the hosted schedule tables, with retry and rate limiting."""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import requests

from swimsched.core.constants import EXCEPTIONS_TABLE, TEMPLATES_TABLE, WORKOUTS_TABLE

logger = logging.getLogger(__name__)


class APIError(RuntimeError):
    """Raised for API failures after retries."""


class ScheduleAPI:
    """Thin wrapper around the team database's REST endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: Optional[str] = None,
        rate_limit_delay: float = 0.0,
        max_retries: int = 3,
        timeout_seconds: int = 30,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token or api_key
        self.rate_limit_delay = rate_limit_delay
        self.max_retries = max_retries
        self.timeout_seconds = timeout_seconds
        self._has_sent_request = False

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Any] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                if self.rate_limit_delay > 0 and self._has_sent_request:
                    time.sleep(self.rate_limit_delay)

                self._has_sent_request = True
                logger.debug("%s %s params=%s", method, path, params)
                response = requests.request(
                    method=method,
                    url=url,
                    headers=self._headers,
                    params=params,
                    json=json_data,
                    timeout=self.timeout_seconds,
                )
                if response.status_code in (429, 500, 502, 503, 504):
                    raise requests.HTTPError(response.text, response=response)
                response.raise_for_status()

                if not response.text:
                    return []
                return response.json()
            except (requests.RequestException, ValueError) as exc:
                last_error = exc
                if attempt >= self.max_retries:
                    break
                logger.debug("Attempt %d for %s %s failed: %s", attempt, method, path, exc)
                time.sleep(min(2**attempt, 8))

        raise APIError(f"API request failed for {method} {path}: {last_error}")

    def get(self, table: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("GET", f"/rest/v1/{table}", params=params)

    def post(self, table: str, rows: Sequence[Dict[str, Any]]) -> Any:
        return self._request("POST", f"/rest/v1/{table}", json_data=list(rows))

    def delete(self, table: str, params: Dict[str, Any]) -> Any:
        return self._request("DELETE", f"/rest/v1/{table}", params=params)

    def _rows(self, payload: Any) -> List[Dict[str, Any]]:
        return [row for row in payload if isinstance(row, dict)] if isinstance(payload, list) else []

    def get_templates(self, start: date, end: date) -> List[Dict[str, Any]]:
        """Templates whose season window overlaps ``start..end``."""
        params = {
            "select": "*",
            "season_start_date": f"lte.{end.isoformat()}",
            "season_end_date": f"gte.{start.isoformat()}",
            "order": "display_order.asc,group_name.asc,day_of_week.asc,start_time.asc",
        }
        return self._rows(self.get(TEMPLATES_TABLE, params=params))

    def get_exceptions(self, start: date, end: date) -> List[Dict[str, Any]]:
        params = {
            "select": "*",
            "and": f"(exception_date.gte.{start.isoformat()},exception_date.lte.{end.isoformat()})",
            "order": "exception_date.asc,created_at.asc",
        }
        return self._rows(self.get(EXCEPTIONS_TABLE, params=params))

    def get_workouts(self, start: date, end: date, coach_id: Optional[str] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "select": "*",
            "and": f"(scheduled_date.gte.{start.isoformat()},scheduled_date.lte.{end.isoformat()})",
        }
        if coach_id:
            params["coach_id"] = f"eq.{coach_id}"
        return self._rows(self.get(WORKOUTS_TABLE, params=params))

    def create_exceptions(self, rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self._rows(self.post(EXCEPTIONS_TABLE, rows))

    def create_templates(self, rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self._rows(self.post(TEMPLATES_TABLE, rows))

    def delete_templates(self, ids: Sequence[str]) -> Any:
        if not ids:
            return []
        return self.delete(TEMPLATES_TABLE, params={"id": f"in.({','.join(ids)})"})
