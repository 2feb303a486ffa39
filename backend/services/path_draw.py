"""
Path-draw mode controller.

Two states: Idle and Drawing. The points collected while drawing are the
custom path store's draft; the controller reads them from there.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from domain.models import Coordinate
from services.custom_paths import MIN_PATH_POINTS, CustomPathStore


@dataclass(frozen=True)
class Idle:
    name: str = "idle"


@dataclass(frozen=True)
class Drawing:
    name: str = "drawing"


DrawState = Union[Idle, Drawing]


class DrawOutcome(str, Enum):
    STARTED = "started"
    COMMITTED = "committed"
    DISCARDED = "discarded"


class PathDrawController:
    def __init__(self, store: CustomPathStore):
        self.store = store
        self.state: DrawState = Idle()

    @property
    def is_drawing(self) -> bool:
        return isinstance(self.state, Drawing)

    @property
    def points(self) -> List[Coordinate]:
        if isinstance(self.state, Drawing):
            return self.store.draft
        return []

    def start(self) -> None:
        self.store.begin()
        self.state = Drawing()

    def add_point(self, coordinate: Coordinate) -> bool:
        """Append a clicked point; ignored (False) while idle."""
        if not isinstance(self.state, Drawing):
            return False
        self.store.add_point(coordinate)
        return True

    def toggle(self) -> DrawOutcome:
        """
        Idle -> Drawing, or Drawing -> Idle.

        Leaving with enough points returns COMMITTED and leaves the draft in
        the store for the caller to commit (it needs the pin store and route).
        Otherwise the draft is dropped silently.
        """
        if isinstance(self.state, Idle):
            self.start()
            return DrawOutcome.STARTED

        enough = len(self.store.draft) >= MIN_PATH_POINTS
        self.state = Idle()
        if enough:
            return DrawOutcome.COMMITTED
        self.store.discard()
        return DrawOutcome.DISCARDED

    def cancel(self) -> Optional[DrawOutcome]:
        """Drop the draft whatever its length. None when nothing was drawing."""
        if isinstance(self.state, Idle):
            return None
        self.store.discard()
        self.state = Idle()
        return DrawOutcome.DISCARDED
