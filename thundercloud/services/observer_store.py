"""
Observer registry.

Clients report their location with their push token; the token is the
registry key. Locations are rounded to two decimals on write so stored
positions never exceed ~1 km precision.
"""

import json
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from thundercloud.core.coordinates import round_coordinate
from thundercloud.core.logging import format_token, get_logger
from thundercloud.models import Observer

logger = get_logger(__name__)


class ObserverNotFoundError(Exception):
    """Raised when an operation targets an unknown token."""
    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ObserverStore(ABC):
    """Registry of observers keyed by push token."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock

    @abstractmethod
    async def _load(self, token: str) -> Optional[Observer]:
        ...

    @abstractmethod
    async def _save(self, observer: Observer) -> None:
        ...

    @abstractmethod
    async def all(self) -> List[Observer]:
        ...

    async def get(self, token: str) -> Optional[Observer]:
        return await self._load(token)

    async def save_location(self, token: str, latitude: float, longitude: float) -> Observer:
        """
        Record a location report, marking the observer active.

        Args:
            token: Push notification token
            latitude: Reported latitude
            longitude: Reported longitude

        Returns:
            The stored observer
        """
        observer = Observer(
            token=token,
            latitude=round_coordinate(latitude),
            longitude=round_coordinate(longitude),
            last_updated=self.clock(),
            is_active=True,
        )
        await self._save(observer)
        logger.info(
            f"Observer location saved: {format_token(token)} -> "
            f"({observer.latitude:.2f}, {observer.longitude:.2f})"
        )
        return observer

    async def set_active(self, token: str, is_active: bool) -> Observer:
        """
        Toggle whether an observer receives alerts.

        Raises:
            ObserverNotFoundError: If the token has never reported a location
        """
        observer = await self._load(token)
        if observer is None:
            raise ObserverNotFoundError(f"Unknown observer {format_token(token)}")

        updated = observer.model_copy(update={"is_active": is_active, "last_updated": self.clock()})
        await self._save(updated)
        logger.info(f"Observer {format_token(token)} active state: {is_active}")
        return updated

    async def list_active(self) -> List[Observer]:
        return [observer for observer in await self.all() if observer.is_active]


class MemoryObserverStore(ObserverStore):

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        super().__init__(clock)
        self._observers: Dict[str, Observer] = {}

    async def _load(self, token: str) -> Optional[Observer]:
        return self._observers.get(token)

    async def _save(self, observer: Observer) -> None:
        self._observers[observer.token] = observer

    async def all(self) -> List[Observer]:
        return list(self._observers.values())


class FileObserverStore(ObserverStore):
    """All observers in a single JSON document."""

    def __init__(self, path: str, clock: Callable[[], datetime] = utc_now):
        super().__init__(clock)
        self.path = path
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def _read_all(self) -> Dict[str, Observer]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            raw = json.load(f)

        observers = {}
        for token, data in raw.items():
            try:
                observers[token] = Observer.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Skipping invalid observer record {format_token(token)}: {e}")
        return observers

    def _write_all(self, observers: Dict[str, Observer]) -> None:
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump({token: o.model_dump(mode="json") for token, o in observers.items()}, f)
        os.replace(tmp_path, self.path)

    async def _load(self, token: str) -> Optional[Observer]:
        return self._read_all().get(token)

    async def _save(self, observer: Observer) -> None:
        observers = self._read_all()
        observers[observer.token] = observer
        self._write_all(observers)

    async def all(self) -> List[Observer]:
        return list(self._read_all().values())
