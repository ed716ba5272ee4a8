# continuity_sync/Sync/change_tracker.py
#
#
# Imports
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Mapping
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from continuity_sync.Constants import ALL_CATEGORIES
from .exceptions import UnknownCategoryError
from .scheduler import DebounceScheduler, SaveFn
#
#######################################################################################################################
#
# Functions:

SaveFactory = Callable[[str, Any], SaveFn]


def classify_changes(previous: Mapping[str, Any], current: Mapping[str, Any]) -> List[str]:
    """
    Categories whose value differs by identity between two state snapshots, in save order.
    The local store replaces a collection object whenever it writes to it, so identity is enough.
    """
    return [
        category for category in ALL_CATEGORIES
        if previous.get(category) is not current.get(category)
    ]


class ChangeTracker:
    """
    Turns local mutations into debounced saves, unless the mutation is data that was just
    received from the backend. Code writing remote data into local state does so inside
    `suppressed()`, without awaiting anything in between.
    """

    def __init__(self, scheduler: DebounceScheduler, save_factory: SaveFactory):
        self.scheduler = scheduler
        self.save_factory = save_factory
        self._suppress_depth = 0

    @property
    def receiving_from_remote(self) -> bool:
        return self._suppress_depth > 0

    @contextmanager
    def suppressed(self) -> Iterator[None]:
        self._suppress_depth += 1
        try:
            yield
        finally:
            self._suppress_depth -= 1

    def notify_mutation(self, category: str, payload: Any) -> bool:
        """Schedules a save of `payload` for `category`. Returns False when the mutation was ignored."""
        if category not in ALL_CATEGORIES:
            raise UnknownCategoryError(category)
        if self.receiving_from_remote:
            logger.trace(f"[ChangeTracker] Ignoring {category} change received from remote")
            return False
        self.scheduler.schedule(category, self.save_factory(category, payload))
        return True

    def observe(self, previous: Mapping[str, Any], current: Mapping[str, Any]):
        """State listener: notifies one mutation per category that changed between the snapshots."""
        if self.receiving_from_remote:
            return
        for category in classify_changes(previous, current):
            self.notify_mutation(category, current.get(category))

#
# End of change_tracker.py
#######################################################################################################################
