"""
Rendering adapter between the editor core and the map surface.

The core never talks to a map. SurfaceSync diff-applies core state (pins,
composed route, custom strokes, the stroke being drawn) onto a MapSurface.
GeoJSONSurface is the surface the browser client polls: it keeps markers and
line layers as GeoJSON, ready to hand to the map library as sources.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from domain.models import ComposedRoute, Coordinate, Pin, icon_for_type

logger = logging.getLogger(__name__)

ROUTE_LAYER_ID = "route-line"
CUSTOM_PATH_LAYER_PREFIX = "custom-path-layer-"
PREVIEW_LAYER_ID = "path-preview-line"

ROUTE_LINE_COLOR = "#2563eb"
ROUTE_LINE_STYLE = {"line-color": ROUTE_LINE_COLOR, "line-width": 6, "line-opacity": 0.95}
CUSTOM_PATH_STYLE = {"line-color": ROUTE_LINE_COLOR, "line-width": 4, "line-opacity": 0.9}
PREVIEW_STYLE = {"line-color": ROUTE_LINE_COLOR, "line-width": 4, "line-opacity": 0.8}
LINE_LAYOUT = {"line-join": "round", "line-cap": "round"}


def custom_path_layer_id(ordinal: int) -> str:
    return f"{CUSTOM_PATH_LAYER_PREFIX}{ordinal}"


@dataclass
class MarkerState:
    pin_id: str
    coordinate: Coordinate
    icon: str
    pin_type: str
    draggable: bool = True


@dataclass
class LineLayer:
    layer_id: str
    lines: List[List[Coordinate]]
    style: Dict[str, Any] = field(default_factory=dict)


class MapSurface:
    """What the editor needs from a map: draggable markers and line layers."""

    def add_marker(self, marker: MarkerState) -> None:
        raise NotImplementedError

    def move_marker(self, pin_id: str, coordinate: Coordinate) -> None:
        raise NotImplementedError

    def remove_marker(self, pin_id: str) -> None:
        raise NotImplementedError

    def set_line(self, layer_id: str, lines: List[List[Coordinate]], style: Dict[str, Any]) -> None:
        raise NotImplementedError

    def remove_line(self, layer_id: str) -> None:
        raise NotImplementedError

    def markers(self) -> Dict[str, MarkerState]:
        raise NotImplementedError

    def line_ids(self) -> List[str]:
        raise NotImplementedError

    def clear(self) -> None:
        for pin_id in list(self.markers()):
            self.remove_marker(pin_id)
        for layer_id in self.line_ids():
            self.remove_line(layer_id)


class GeoJSONSurface(MapSurface):
    """In-memory surface serialised as GeoJSON for the map client."""

    def __init__(self) -> None:
        self._markers: Dict[str, MarkerState] = {}
        self._lines: Dict[str, LineLayer] = {}
        self.revision = 0

    def _touch(self) -> None:
        self.revision += 1

    def add_marker(self, marker: MarkerState) -> None:
        self._markers[marker.pin_id] = marker
        self._touch()

    def move_marker(self, pin_id: str, coordinate: Coordinate) -> None:
        marker = self._markers.get(pin_id)
        if marker is None:
            return
        marker.coordinate = coordinate
        self._touch()

    def remove_marker(self, pin_id: str) -> None:
        if self._markers.pop(pin_id, None) is not None:
            self._touch()

    def set_line(self, layer_id: str, lines: List[List[Coordinate]], style: Dict[str, Any]) -> None:
        self._lines[layer_id] = LineLayer(layer_id=layer_id, lines=[list(l) for l in lines], style=dict(style))
        self._touch()

    def remove_line(self, layer_id: str) -> None:
        if self._lines.pop(layer_id, None) is not None:
            self._touch()

    def markers(self) -> Dict[str, MarkerState]:
        return dict(self._markers)

    def line_ids(self) -> List[str]:
        return list(self._lines)

    def line(self, layer_id: str) -> Optional[LineLayer]:
        return self._lines.get(layer_id)

    def to_geojson(self) -> Dict[str, Any]:
        marker_features = [
            {
                "type": "Feature",
                "id": m.pin_id,
                "geometry": {"type": "Point", "coordinates": list(m.coordinate)},
                "properties": {
                    "pin_id": m.pin_id,
                    "icon": m.icon,
                    "type": m.pin_type,
                    "draggable": m.draggable,
                },
            }
            for m in self._markers.values()
        ]
        layers = []
        for layer in self._lines.values():
            if len(layer.lines) == 1:
                geometry = {"type": "LineString", "coordinates": [list(c) for c in layer.lines[0]]}
            else:
                geometry = {
                    "type": "MultiLineString",
                    "coordinates": [[list(c) for c in line] for line in layer.lines],
                }
            layers.append(
                {
                    "id": layer.layer_id,
                    "type": "line",
                    "layout": dict(LINE_LAYOUT),
                    "paint": dict(layer.style),
                    "source": {
                        "type": "FeatureCollection",
                        "features": [{"type": "Feature", "geometry": geometry, "properties": {}}],
                    },
                }
            )
        return {
            "revision": self.revision,
            "markers": {"type": "FeatureCollection", "features": marker_features},
            "layers": layers,
        }


def marker_for_pin(pin: Pin) -> MarkerState:
    return MarkerState(
        pin_id=pin.id,
        coordinate=pin.coordinate,
        icon=icon_for_type(pin.type).value,
        pin_type=pin.type.value,
    )


class SurfaceSync:
    """Diff-applies editor state onto a surface."""

    def __init__(self, surface: MapSurface):
        self.surface = surface

    def sync_markers(self, pins: Sequence[Pin]) -> None:
        current = self.surface.markers()
        wanted = {p.id: p for p in pins}
        for pin_id in current:
            if pin_id not in wanted:
                self.surface.remove_marker(pin_id)
        for pin_id, pin in wanted.items():
            existing = current.get(pin_id)
            if existing is None:
                self.surface.add_marker(marker_for_pin(pin))
            elif existing.coordinate != pin.coordinate:
                self.surface.move_marker(pin_id, pin.coordinate)

    def sync_lines(self, composed: Optional[ComposedRoute], preview: Sequence[Coordinate] = ()) -> None:
        existing = set(self.surface.line_ids())
        wanted: set = set()

        if composed is not None:
            runs = [r for r in composed.runs if len(r) >= 2]
            if runs:
                self.surface.set_line(ROUTE_LAYER_ID, runs, ROUTE_LINE_STYLE)
                wanted.add(ROUTE_LAYER_ID)
            for ordinal, path in enumerate(composed.custom_paths):
                layer_id = custom_path_layer_id(ordinal)
                self.surface.set_line(layer_id, [path], CUSTOM_PATH_STYLE)
                wanted.add(layer_id)

        if len(preview) >= 2:
            self.surface.set_line(PREVIEW_LAYER_ID, [list(preview)], PREVIEW_STYLE)
            wanted.add(PREVIEW_LAYER_ID)

        for layer_id in existing - wanted:
            self.surface.remove_line(layer_id)

    def sync_preview(self, preview: Sequence[Coordinate]) -> None:
        """Redraw only the in-progress stroke."""
        if len(preview) >= 2:
            self.surface.set_line(PREVIEW_LAYER_ID, [list(preview)], PREVIEW_STYLE)
        elif PREVIEW_LAYER_ID in self.surface.line_ids():
            self.surface.remove_line(PREVIEW_LAYER_ID)

    def rebuild(
        self,
        pins: Sequence[Pin],
        composed: Optional[ComposedRoute],
        preview: Sequence[Coordinate] = (),
    ) -> None:
        """Drop everything on the surface and draw the given state from scratch."""
        self.surface.clear()
        for pin in pins:
            self.surface.add_marker(marker_for_pin(pin))
        self.sync_lines(composed, preview)
        logger.debug("Surface rebuilt with %d markers", len(pins))
