"""
Territory repositories - pluggable storage backends for claimed territories.

Provides a common interface for different stores:
- memory: In-process list (tests, embedding)
- json: JSON file of store rows on disk
- rest: PostgREST / Supabase HTTP API

The engine only calls ``load_all()`` before a start check or on refresh and
``save(...)`` after an explicit confirm. Both raise RepositoryError on failure.
"""

import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Sequence

import requests

from ..config.schemas import RepositoryConfig
from ..models import GeoPoint, Territory

logger = logging.getLogger(__name__)

# Retry configuration
DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY = 1.0  # seconds


def with_retry(
    func: Callable[[], requests.Response],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
) -> requests.Response:
    """
    Execute a request function with exponential backoff retry.

    Retries on transient network errors (timeout, connection error) and 5xx.
    Does NOT retry on 4xx client errors (bad request, unauthorized, etc).

    Args:
        func: Callable that performs the request and returns Response
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds, doubles each retry

    Returns:
        The last Response (successful, 4xx, or 5xx once retries run out)

    Raises:
        requests.RequestException: If all retries exhausted on network errors
    """
    for attempt in range(max_retries + 1):
        try:
            response = func()
            # Don't retry client errors (4xx) - those won't fix themselves
            if response.status_code < 500 or attempt >= max_retries:
                return response
            delay = base_delay * (2**attempt)
            logger.warning(
                f"Server error {response.status_code}, retry {attempt + 1}/{max_retries} in {delay}s"
            )
            time.sleep(delay)

        except (requests.Timeout, requests.ConnectionError) as e:
            if attempt >= max_retries:
                raise
            delay = base_delay * (2**attempt)
            logger.warning(f"Network error, retry {attempt + 1}/{max_retries} in {delay}s: {e}")
            time.sleep(delay)

    raise requests.RequestException("Retry exhausted")


class TerritoryRepository(ABC):
    """
    Abstract base class for territory stores.

    Implementations return storage-frame geometry and raise RepositoryError
    for every failure so the caller can keep its state and retry.
    """

    @abstractmethod
    def load_all(self) -> list[Territory]:
        """Return every active territory."""

    @abstractmethod
    def save(
        self,
        boundary: Sequence[GeoPoint],
        area_m2: float,
        owner_id: str,
        started_at: datetime | None = None,
    ) -> Territory:
        """
        Persist a new territory.

        Args:
            boundary: Storage-frame ring (unclosed)
            area_m2: Validated area
            owner_id: Claimant
            started_at: When the claim walk started

        Returns:
            The stored Territory with its assigned id
        """


def create_repository(config: RepositoryConfig | None = None) -> TerritoryRepository:
    """
    Factory function to create a repository from config.

    Raises:
        ValueError: If repository type is unknown
    """
    config = config or RepositoryConfig()

    if config.type == "memory":
        from .memory import InMemoryTerritoryRepository

        return InMemoryTerritoryRepository()

    elif config.type == "json":
        from .json_file import JsonFileTerritoryRepository

        return JsonFileTerritoryRepository(config.path)

    elif config.type == "rest":
        from .rest import RestTerritoryRepository

        return RestTerritoryRepository(
            base_url=config.url,
            api_key=config.api_key,
            table=config.table,
            timeout_s=config.timeout_s,
            max_retries=config.max_retries,
        )

    else:
        raise ValueError(f"Unknown repository type: {config.type}")


__all__ = [
    "TerritoryRepository",
    "create_repository",
    "with_retry",
]
