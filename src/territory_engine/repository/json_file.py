"""
JSON file territory repository.

The file holds a JSON array of store rows in the same shape the REST store
uses (user_id, path, area, polygon, bbox_*, ...), so exports from one can be
loaded by the other.
"""

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from ..exceptions import RepositoryError
from ..models import GeoPoint, Territory
from . import TerritoryRepository

logger = logging.getLogger(__name__)


class JsonFileTerritoryRepository(TerritoryRepository):
    """
    Territories stored as a JSON array on disk.

    A missing file is an empty store. Writes are atomic (temp file + rename).
    Rows that cannot be parsed are skipped with a warning.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def load_all(self) -> list[Territory]:
        with self._lock:
            rows = self._read_rows()

        territories = []
        for row in rows:
            if not row.get("is_active", True):
                continue
            try:
                territories.append(Territory.from_record(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed territory row {row.get('id', '?')}: {e}")

        logger.debug(f"Loaded {len(territories)} territories from {self.path}")
        return territories

    def save(
        self,
        boundary: Sequence[GeoPoint],
        area_m2: float,
        owner_id: str,
        started_at: datetime | None = None,
    ) -> Territory:
        try:
            territory = Territory(
                id=str(uuid.uuid4()),
                owner_id=owner_id,
                boundary=tuple(boundary),
                area_m2=area_m2,
                created_at=datetime.now(timezone.utc),
            )
        except ValueError as e:
            raise RepositoryError(str(e), operation="save", cause=e) from e

        record = territory.to_record()
        record["started_at"] = started_at.isoformat() if started_at else None

        with self._lock:
            rows = self._read_rows()
            rows.append(record)
            self._write_rows(rows)

        logger.info(f"Saved territory {territory.id} to {self.path}")
        return territory

    def _read_rows(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RepositoryError(f"Cannot read {self.path}: {e}", operation="load", cause=e) from e

        if not isinstance(data, list):
            raise RepositoryError(f"{self.path} must contain a JSON array", operation="load")
        return data

    def _write_rows(self, rows: list[dict[str, Any]]) -> None:
        """Atomically replace the file."""
        temp_file = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(rows, f, indent=2)
            temp_file.replace(self.path)
        except OSError as e:
            raise RepositoryError(f"Cannot write {self.path}: {e}", operation="save", cause=e) from e
