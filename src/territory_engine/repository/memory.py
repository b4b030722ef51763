"""
In-memory territory repository.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Iterable, Sequence

from ..exceptions import RepositoryError
from ..models import CoordinateFrame, GeoPoint, Territory
from . import TerritoryRepository

logger = logging.getLogger(__name__)


class InMemoryTerritoryRepository(TerritoryRepository):
    """Keeps territories in a list. Thread-safe."""

    def __init__(self, territories: Iterable[Territory] = ()):
        self._lock = threading.Lock()
        self._territories: list[Territory] = list(territories)

    def load_all(self) -> list[Territory]:
        with self._lock:
            return list(self._territories)

    def add(self, territory: Territory) -> None:
        with self._lock:
            self._territories.append(territory)

    def save(
        self,
        boundary: Sequence[GeoPoint],
        area_m2: float,
        owner_id: str,
        started_at: datetime | None = None,
    ) -> Territory:
        if len(boundary) < 3:
            raise RepositoryError("Boundary needs at least 3 points", operation="save")
        if any(p.frame != CoordinateFrame.STORAGE for p in boundary):
            raise RepositoryError("Boundary must be in the storage frame", operation="save")

        territory = Territory(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            boundary=tuple(boundary),
            area_m2=area_m2,
            created_at=datetime.now(timezone.utc),
        )
        self.add(territory)
        logger.debug(f"Stored territory {territory.id} ({territory.formatted_area})")
        return territory

    def __len__(self) -> int:
        with self._lock:
            return len(self._territories)
