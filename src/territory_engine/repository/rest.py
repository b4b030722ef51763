"""
REST territory repository - PostgREST / Supabase style HTTP store.

Reads active rows with ``GET /rest/v1/<table>?is_active=eq.true`` and
inserts with ``POST /rest/v1/<table>`` asking for the created row back.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

import requests

from ..exceptions import RepositoryError
from ..models import GeoPoint, Territory, boundary_to_wkt
from ..utils.constants import DEFAULT_REQUEST_TIMEOUT_S, DEFAULT_TERRITORY_TABLE
from . import DEFAULT_MAX_RETRIES, TerritoryRepository, with_retry

logger = logging.getLogger(__name__)


class RestTerritoryRepository(TerritoryRepository):
    """
    Territory store reached over HTTP.

    Config options:
        base_url: Project URL, e.g. https://xyz.supabase.co (required)
        api_key: Sent as both ``apikey`` and bearer token
        table: Table name (default: territories)
        timeout_s: Per-request timeout
        max_retries: Retries on network errors and 5xx
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        table: str = DEFAULT_TERRITORY_TABLE,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        max_retries: int = DEFAULT_MAX_RETRIES,
        session: requests.Session | None = None,
    ):
        self._endpoint = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._timeout = timeout_s
        self._max_retries = max_retries
        self._session = session or requests.Session()

        self._headers = {"Content-Type": "application/json"}
        if api_key:
            self._headers["apikey"] = api_key
            self._headers["Authorization"] = f"Bearer {api_key}"

        logger.debug(f"RestTerritoryRepository initialized: {self._endpoint}")

    def load_all(self) -> list[Territory]:
        response = self._request(
            "load",
            lambda: self._session.get(
                self._endpoint,
                params={"select": "*", "is_active": "eq.true"},
                headers=self._headers,
                timeout=self._timeout,
            ),
        )
        rows = self._json(response, "load")
        if not isinstance(rows, list):
            raise RepositoryError("Unexpected response body for territory list", operation="load")

        territories = []
        for row in rows:
            try:
                territories.append(Territory.from_record(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed territory row {row.get('id', '?')}: {e}")

        logger.info(f"Loaded {len(territories)} territories")
        return territories

    def save(
        self,
        boundary: Sequence[GeoPoint],
        area_m2: float,
        owner_id: str,
        started_at: datetime | None = None,
    ) -> Territory:
        payload = self._build_row(boundary, area_m2, owner_id, started_at)
        response = self._request(
            "save",
            lambda: self._session.post(
                self._endpoint,
                json=payload,
                headers={**self._headers, "Prefer": "return=representation"},
                timeout=self._timeout,
            ),
        )

        body = self._json(response, "save")
        row = body[0] if isinstance(body, list) and body else body
        if not isinstance(row, dict) or "id" not in row:
            raise RepositoryError("Store did not return the created territory", operation="save")

        # Fill anything the store did not echo back from what was sent
        territory = Territory.from_record({**payload, **row})
        logger.info(f"Saved territory {territory.id} ({territory.formatted_area})")
        return territory

    @staticmethod
    def _build_row(
        boundary: Sequence[GeoPoint],
        area_m2: float,
        owner_id: str,
        started_at: datetime | None,
    ) -> dict[str, Any]:
        lats = [p.latitude for p in boundary]
        lons = [p.longitude for p in boundary]
        return {
            "user_id": owner_id,
            "path": [p.to_dict() for p in boundary],
            "polygon": boundary_to_wkt(list(boundary)),
            "bbox_min_lat": min(lats),
            "bbox_max_lat": max(lats),
            "bbox_min_lon": min(lons),
            "bbox_max_lon": max(lons),
            "area": area_m2,
            "point_count": len(boundary),
            "is_active": True,
            "started_at": started_at.isoformat() if started_at else None,
            "completed_at": datetime.now(timezone.utc).isoformat(),
        }

    def _request(self, operation: str, func) -> requests.Response:
        try:
            response = with_retry(func, max_retries=self._max_retries)
        except requests.RequestException as e:
            logger.error(f"Territory {operation} failed: {e}")
            raise RepositoryError(f"Territory {operation} failed: {e}", operation=operation, cause=e) from e

        if not response.ok:
            logger.error(f"Territory {operation} failed: HTTP {response.status_code}")
            raise RepositoryError(
                f"Territory {operation} failed: HTTP {response.status_code} {response.text[:200]}",
                operation=operation,
            )
        return response

    @staticmethod
    def _json(response: requests.Response, operation: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RepositoryError(f"Invalid JSON from store: {e}", operation=operation, cause=e) from e
