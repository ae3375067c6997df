import threading
from typing import Any, Callable, List, Optional

from .errors import EnvironmentIndexError, SaveInProgressError
from .logging_utils import logger as root_logger
from .models import Environment

logger = root_logger.child("store")

Persist = Callable[[List[Environment]], Any]


class EnvironmentStore:
    """Ordered environment list with whole-list persistence.

    Every mutation is applied in memory, then the full list is handed to
    ``persist``. If persisting raises, the list is restored to its previous
    contents and the error propagates. Only one mutation may be in flight;
    ``saving`` is true for its duration.
    """

    def __init__(self, persist: Persist, environments: Optional[List[Environment]] = None):
        self._persist = persist
        self._items: List[Environment] = list(environments or [])
        self._lock = threading.Lock()
        self.saving = False

    @property
    def environments(self) -> List[Environment]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, index: int) -> Environment:
        self._check_index(index)
        return self._items[index]

    def replace_all(self, environments: List[Environment]) -> None:
        """Load without persisting (initial fetch)."""
        with self._lock:
            self._items = list(environments)

    def _check_index(self, index: int) -> None:
        if not isinstance(index, int) or index < 0 or index >= len(self._items):
            raise EnvironmentIndexError(index, len(self._items))

    def _begin(self) -> List[Environment]:
        with self._lock:
            if self.saving:
                raise SaveInProgressError()
            self.saving = True
            return list(self._items)

    def _release(self) -> None:
        with self._lock:
            self.saving = False

    def _commit(self, snapshot: List[Environment], updated: List[Environment], action: str) -> None:
        self._items = updated
        try:
            self._persist(list(updated))
        except Exception as e:
            self._items = snapshot
            logger.exception("mutation_rolled_back", e, action=action, count=len(snapshot))
            raise
        finally:
            self._release()
        logger.info("mutation_saved", action=action, count=len(updated))

    def add(self, record: Environment) -> None:
        snapshot = self._begin()
        self._commit(snapshot, snapshot + [record], "add")

    def update(self, index: int, record: Environment) -> None:
        snapshot = self._begin()
        try:
            self._check_index(index)
        except EnvironmentIndexError:
            self._release()
            raise
        updated = list(snapshot)
        updated[index] = record
        self._commit(snapshot, updated, "update")

    def remove(self, index: int) -> None:
        snapshot = self._begin()
        try:
            self._check_index(index)
        except EnvironmentIndexError:
            self._release()
            raise
        updated = [e for i, e in enumerate(snapshot) if i != index]
        self._commit(snapshot, updated, "remove")
