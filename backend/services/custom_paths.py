"""
Custom path store: freehand strokes drawn by the user.

A stroke under construction (the draft) is not part of the store until
commit(), which also creates the stroke's implicit end pin and appends the
matching anchor node to the route sequence.
"""
import logging
from typing import List, Optional

from domain.models import (
    Coordinate,
    CustomPath,
    Pin,
    PinType,
    RouteNode,
    path_from_list,
    path_to_list,
)
from services.pin_store import PinStore
from services.route_sequence import RouteSequence

logger = logging.getLogger(__name__)

MIN_PATH_POINTS = 2


class CustomPathStore:
    def __init__(self) -> None:
        self._paths: List[CustomPath] = []
        self._draft: Optional[CustomPath] = None

    # Draft lifecycle

    @property
    def is_drawing(self) -> bool:
        return self._draft is not None

    @property
    def draft(self) -> CustomPath:
        return list(self._draft or [])

    def begin(self) -> None:
        self._draft = []

    def add_point(self, coordinate: Coordinate) -> None:
        if self._draft is None:
            raise ValueError("No custom path in progress")
        self._draft.append(coordinate)

    def discard(self) -> None:
        self._draft = None

    def commit(self, pins: PinStore, route: RouteSequence) -> CustomPath:
        """
        Store the draft, create its end pin and append the anchor node.

        Raises ValueError when fewer than two points were collected.
        """
        if self._draft is None or len(self._draft) < MIN_PATH_POINTS:
            raise ValueError("A custom path needs at least two points")
        path = list(self._draft)
        self._draft = None
        end = path[-1]

        pin = Pin(id=Pin.generate_id(), type=PinType.PIN, coordinate=end)
        pins.upsert(pin)
        route.append(RouteNode(pin_id=pin.id, coordinate=end, is_from_custom_path=True))
        self._paths.append(path)
        logger.debug("Committed custom path #%d with %d points", len(self._paths) - 1, len(path))
        return list(path)

    # Committed strokes

    def paths(self) -> List[CustomPath]:
        return [list(p) for p in self._paths]

    def set_end(self, ordinal: int, coordinate: Coordinate) -> bool:
        """Move the last point of a stroke (its anchor pin was dragged)."""
        if 0 <= ordinal < len(self._paths) and self._paths[ordinal]:
            self._paths[ordinal][-1] = coordinate
            return True
        return False

    def remove(self, ordinal: int) -> Optional[CustomPath]:
        if 0 <= ordinal < len(self._paths):
            return self._paths.pop(ordinal)
        return None

    def clear(self) -> None:
        self._paths = []
        self._draft = None

    def to_list(self) -> List[List[List[float]]]:
        return [path_to_list(p) for p in self._paths]

    def load(self, data: List[list]) -> None:
        self._paths = [path_from_list(p) for p in data]

    def __len__(self) -> int:
        return len(self._paths)
