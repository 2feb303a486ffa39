"""
Snapshot-based undo/redo over the pin store, route sequence and custom paths.

Snapshots hold only the source-of-truth stores, never the composed line; a
restore is always followed by a fresh composition pass.
"""
import copy
import logging
from typing import List, Optional

from domain.models import HistorySnapshot
from services.custom_paths import CustomPathStore
from services.pin_store import PinStore
from services.route_sequence import RouteSequence

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


def capture(pins: PinStore, route: RouteSequence, paths: CustomPathStore) -> HistorySnapshot:
    """Deep, JSON-safe copy of the three stores."""
    return HistorySnapshot(
        pins=pins.to_list(),
        route=route.to_list(),
        custom_paths=paths.to_list(),
    )


def apply_snapshot(
    snapshot: HistorySnapshot,
    pins: PinStore,
    route: RouteSequence,
    paths: CustomPathStore,
) -> None:
    """
    Replace the stores wholesale from a snapshot.

    Route node coordinates are re-derived from their pins afterwards so the two
    can never diverge after a restore.
    """
    data = copy.deepcopy(snapshot)
    pins.load(data.pins)
    route.load(data.route)
    paths.load(data.custom_paths)
    for node in route:
        pin = pins.get(node.pin_id)
        if pin is not None:
            route.update_coordinate(node.pin_id, pin.coordinate)


class HistoryManager:
    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self._entries: List[HistorySnapshot] = []
        self._index = -1

    @property
    def index(self) -> int:
        return self._index

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def __len__(self) -> int:
        return len(self._entries)

    def reset(self, pins: PinStore, route: RouteSequence, paths: CustomPathStore) -> None:
        """Start over with the current state as the only entry."""
        self._entries = [capture(pins, route, paths)]
        self._index = 0

    def snapshot(self, pins: PinStore, route: RouteSequence, paths: CustomPathStore) -> HistorySnapshot:
        snap = capture(pins, route, paths)
        # A new action discards the redo branch.
        if self._index < len(self._entries) - 1:
            self._entries = self._entries[: self._index + 1]
        self._entries.append(snap)
        if len(self._entries) > self.limit:
            evicted = len(self._entries) - self.limit
            self._entries = self._entries[evicted:]
        self._index = len(self._entries) - 1
        logger.debug("History snapshot %d/%d", self._index + 1, len(self._entries))
        return snap

    def undo(self) -> Optional[HistorySnapshot]:
        if not self.can_undo:
            return None
        self._index -= 1
        return copy.deepcopy(self._entries[self._index])

    def redo(self) -> Optional[HistorySnapshot]:
        if not self.can_redo:
            return None
        self._index += 1
        return copy.deepcopy(self._entries[self._index])
