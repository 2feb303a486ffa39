"""
Editor session: the route-composition engine behind the manual itinerary editor.

One session owns the three stores (pins, route sequence, custom paths), the
path-draw controller, the undo history and the surface adapter. Every event
handler follows the same order: mutate the stores, recompose the route, sync
the surface, then record a history snapshot. Undo/redo restore the stores
wholesale, rebuild the surface and recompose from scratch.

Handlers that touch the stores run one at a time per session under an
asyncio.Lock, so each history snapshot holds exactly one edit and a later
edit's composition always lands after the one before it.
"""
import asyncio
import dataclasses
import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional

from domain.models import (
    ComposedRoute,
    Coordinate,
    CustomPath,
    ExportedPin,
    Pin,
    PinType,
    RouteNode,
)
from services.custom_paths import CustomPathStore
from services.directions import DirectionsGateway
from services.history import DEFAULT_HISTORY_LIMIT, HistoryManager, apply_snapshot
from services.itinerary_export import SavePayload, build_save_payload, export_pins
from services.map_surface import GeoJSONSurface, MapSurface, SurfaceSync
from services.path_draw import DrawOutcome, PathDrawController
from services.pin_store import PinStore
from services.route_compositor import compose_route
from services.route_sequence import RouteSequence

logger = logging.getLogger(__name__)


@dataclass
class ClickResult:
    """What a click on the map did: added a stroke point, selected a pin, or nothing."""
    point_added: bool = False
    selected: Optional[Pin] = None


class EditorSession:
    def __init__(
        self,
        gateway: Optional[DirectionsGateway] = None,
        use_directions: bool = True,
        surface: Optional[MapSurface] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or str(uuid.uuid4())
        self.gateway = gateway
        self.use_directions = use_directions
        self.pins = PinStore()
        self.route = RouteSequence()
        self.paths = CustomPathStore()
        self.draw = PathDrawController(self.paths)
        self.history = HistoryManager(limit=history_limit)
        self.surface = surface or GeoJSONSurface()
        self.sync = SurfaceSync(self.surface)
        self.composed = ComposedRoute()
        self.selected_pin_id: Optional[str] = None
        self._lock = asyncio.Lock()
        self.history.reset(self.pins, self.route, self.paths)

    @property
    def directions_active(self) -> bool:
        """Directions requested and a usable gateway configured."""
        return bool(self.use_directions and self.gateway is not None and self.gateway.available)

    @property
    def selected_pin(self) -> Optional[Pin]:
        if self.selected_pin_id is None:
            return None
        return self.pins.get(self.selected_pin_id)

    def pins_in_route_order(self) -> List[Pin]:
        ordered = [self.pins.get(pid) for pid in self.route.pin_ids()]
        return [p for p in ordered if p is not None]

    def custom_paths(self) -> List[CustomPath]:
        return self.paths.paths()

    # Composition

    async def recompose(self) -> ComposedRoute:
        async with self._lock:
            return await self._recompose()

    async def _recompose(self) -> ComposedRoute:
        """Compose and sync the surface. Callers hold self._lock."""
        composed = await compose_route(
            self.route.nodes(),
            self.paths.paths(),
            self.gateway,
            use_directions=self.directions_active,
            pins=self.pins,
        )
        self.composed = composed
        self.sync.sync_markers(self.pins.all())
        self.sync.sync_lines(composed, self.draw.points)
        return composed

    def _record(self) -> None:
        self.history.snapshot(self.pins, self.route, self.paths)

    # Loading

    async def load_pins(self, pins: Iterable[Pin]) -> None:
        """Replace the session with saved pins (already in route order)."""
        async with self._lock:
            self.draw.cancel()
            self.pins.clear()
            self.route.clear()
            self.paths.clear()
            self.selected_pin_id = None
            for pin in pins:
                self.pins.upsert(pin)
                self.route.append(RouteNode(pin_id=pin.id, coordinate=pin.coordinate))
            self.sync.rebuild(self.pins.all(), None)
            await self._recompose()
            self.history.reset(self.pins, self.route, self.paths)
        logger.info("Session %s loaded %d pins", self.id, len(self.pins))

    # Event handlers

    async def drop_pin(self, pin_type: PinType, coordinate: Coordinate) -> Pin:
        async with self._lock:
            pin = Pin(id=Pin.generate_id(), type=PinType.parse(pin_type), coordinate=coordinate)
            self.pins.upsert(pin)
            self.route.append(RouteNode(pin_id=pin.id, coordinate=coordinate))
            self.sync.sync_markers(self.pins.all())
            await self._recompose()
            self._record()
            return pin

    async def drag_end(self, pin_id: str, coordinate: Coordinate) -> bool:
        async with self._lock:
            pin = self.pins.get(pin_id)
            if pin is None:
                logger.debug("Ignoring dragend for unknown pin %s", pin_id)
                return False
            self.pins.upsert(dataclasses.replace(pin, coordinate=coordinate))
            idx = self.route.index_of(pin_id)
            if idx >= 0:
                self.route.update_coordinate(pin_id, coordinate)
                if self.route[idx].is_from_custom_path:
                    # Keep the stroke ending where its anchor pin now sits.
                    self.paths.set_end(self.route.anchor_ordinal(idx), coordinate)
            await self._recompose()
            self._record()
            return True

    async def edit_pin(
        self,
        pin_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[Pin]:
        async with self._lock:
            pin = self.pins.get(pin_id)
            if pin is None:
                logger.debug("Ignoring edit for unknown pin %s", pin_id)
                return None
            changes = {}
            if title is not None:
                changes["title"] = title
            if description is not None:
                changes["description"] = description
            if not changes:
                return pin
            updated = dataclasses.replace(pin, **changes)
            self.pins.upsert(updated)
            self._record()
            return updated

    async def delete_pin(self, pin_id: str) -> bool:
        async with self._lock:
            if pin_id not in self.pins:
                logger.debug("Ignoring delete for unknown pin %s", pin_id)
                return False
            idx = self.route.index_of(pin_id)
            if idx >= 0:
                if self.route[idx].is_from_custom_path:
                    self.paths.remove(self.route.anchor_ordinal(idx))
                self.route.remove(pin_id)
            self.pins.remove(pin_id)
            if self.selected_pin_id == pin_id:
                self.selected_pin_id = None
            await self._recompose()
            self._record()
            return True

    def click(self, coordinate: Coordinate, pin_id: Optional[str] = None) -> ClickResult:
        """
        Route a click from the map.

        While drawing, every click (on a pin or not) extends the stroke; a pin
        click contributes the pin's own coordinate. Otherwise a pin click
        selects the pin for editing. Only the draft changes here, never the
        stores a snapshot covers.
        """
        pin = self.pins.get(pin_id) if pin_id else None
        if self.draw.is_drawing:
            point = pin.coordinate if pin is not None else coordinate
            self.draw.add_point(point)
            self.sync.sync_preview(self.draw.points)
            return ClickResult(point_added=True)
        if pin is not None:
            self.selected_pin_id = pin.id
            return ClickResult(selected=pin)
        return ClickResult()

    async def toggle_path_mode(self) -> DrawOutcome:
        async with self._lock:
            outcome = self.draw.toggle()
            if outcome == DrawOutcome.STARTED:
                self.selected_pin_id = None
            elif outcome == DrawOutcome.COMMITTED:
                self.paths.commit(self.pins, self.route)
                await self._recompose()
                self._record()
            else:
                self.sync.sync_preview([])
            return outcome

    def cancel_path(self) -> Optional[DrawOutcome]:
        outcome = self.draw.cancel()
        self.sync.sync_preview([])
        return outcome

    async def undo(self) -> bool:
        async with self._lock:
            self.cancel_path()
            snapshot = self.history.undo()
            if snapshot is None:
                return False
            await self._restore(snapshot)
            return True

    async def redo(self) -> bool:
        async with self._lock:
            self.cancel_path()
            snapshot = self.history.redo()
            if snapshot is None:
                return False
            await self._restore(snapshot)
            return True

    async def _restore(self, snapshot) -> None:
        apply_snapshot(snapshot, self.pins, self.route, self.paths)
        if self.selected_pin_id not in self.pins:
            self.selected_pin_id = None
        self.sync.rebuild(self.pins.all(), None)
        await self._recompose()

    # Persistence

    def export(self) -> List[ExportedPin]:
        return export_pins(self.pins, self.route)

    def save_payload(
        self,
        title: Optional[str],
        description: Optional[str] = None,
        is_public: bool = False,
        draft: bool = False,
    ) -> SavePayload:
        return build_save_payload(
            self.pins,
            self.route,
            title=title,
            description=description,
            is_public=is_public,
            draft=draft,
        )
