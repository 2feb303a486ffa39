"""
Core domain models for the itinerary route editor.
These are framework-agnostic and can be used across all services.

All cross references between models are ids, never live objects, so copying
any of them is a plain value copy.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import uuid


Coordinate = Tuple[float, float]  # (lon, lat)
CustomPath = List[Coordinate]


def as_coordinate(value: Any) -> Coordinate:
    """Normalize a 2-item sequence into a (lon, lat) float tuple."""
    lon, lat = value
    return (float(lon), float(lat))


class PinType(str, Enum):
    """Category of a pin. Palette-only kinds collapse to CUSTOM."""
    HOTEL = "HOTEL"
    FOOD = "FOOD"
    ATTRACTION = "ATTRACTION"
    CUSTOM = "CUSTOM"
    CAR = "CAR"
    PIN = "PIN"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PinType":
        if isinstance(value, PinType):
            return value
        key = (value or "").strip().upper()
        try:
            return cls(key)
        except ValueError:
            return cls.CUSTOM


class PinIcon(str, Enum):
    """Marker icon stored with a persisted pin."""
    PIN = "PIN"
    CAR = "CAR"
    HOTEL = "HOTEL"
    FOOD = "FOOD"
    ATTRACTION = "ATTRACTION"


def icon_for_type(pin_type: PinType) -> PinIcon:
    if pin_type == PinType.CUSTOM:
        return PinIcon.PIN
    return PinIcon(pin_type.value)


@dataclass
class Pin:
    """A single waypoint owned by the pin store."""
    id: str
    type: PinType
    coordinate: Coordinate
    title: str = ""
    description: str = ""

    @staticmethod
    def generate_id() -> str:
        return str(uuid.uuid4())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "coordinate": [self.coordinate[0], self.coordinate[1]],
            "title": self.title,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Pin":
        return cls(
            id=data["id"],
            type=PinType.parse(data.get("type")),
            coordinate=as_coordinate(data["coordinate"]),
            title=data.get("title") or "",
            description=data.get("description") or "",
        )


@dataclass
class RouteNode:
    """
    One entry of the route sequence.

    Regular nodes come from dropped pins; nodes with is_from_custom_path=True
    are the implicit end pins of committed freehand strokes (anchors).
    """
    pin_id: str
    coordinate: Coordinate
    is_from_custom_path: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pin_id": self.pin_id,
            "coordinate": [self.coordinate[0], self.coordinate[1]],
            "is_from_custom_path": self.is_from_custom_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RouteNode":
        return cls(
            pin_id=data["pin_id"],
            coordinate=as_coordinate(data["coordinate"]),
            is_from_custom_path=bool(data.get("is_from_custom_path", False)),
        )


def path_to_list(path: CustomPath) -> List[List[float]]:
    return [[lon, lat] for lon, lat in path]


def path_from_list(data: List[Any]) -> CustomPath:
    return [as_coordinate(p) for p in data]


@dataclass
class HistorySnapshot:
    """Deep, JSON-serializable copy of the three editor stores."""
    pins: List[Dict[str, Any]] = field(default_factory=list)
    route: List[Dict[str, Any]] = field(default_factory=list)
    custom_paths: List[List[List[float]]] = field(default_factory=list)


class SegmentKind(str, Enum):
    """How a segment's geometry was produced."""
    COMPUTED = "computed"  # routing provider
    STRAIGHT = "straight"  # directions disabled


@dataclass
class Segment:
    kind: SegmentKind
    points: List[Coordinate]
    start_index: int = -1
    end_index: int = -1
    from_anchor: bool = False
    fallback: bool = False


@dataclass
class ComposedRoute:
    """
    Result of one composition pass.

    runs are disjoint drawable lines: consecutive computed segments are spliced
    into one run, a segment starting at a custom path end opens a new run.
    custom_paths are drawn as their own layers and never bridged.
    """
    segments: List[Segment] = field(default_factory=list)
    runs: List[List[Coordinate]] = field(default_factory=list)
    custom_paths: List[CustomPath] = field(default_factory=list)
    directions_used: bool = False

    @property
    def polyline(self) -> List[Coordinate]:
        """All runs concatenated in order."""
        out: List[Coordinate] = []
        for run in self.runs:
            out.extend(run)
        return out


@dataclass
class ExportedPin:
    """A pin as handed to the persistence API."""
    latitude: float
    longitude: float
    title: str
    description: Optional[str]
    type: PinType
    icon: PinIcon
    order_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "icon": self.icon.value,
            "order_index": self.order_index,
        }


@dataclass
class ItineraryPin:
    id: str
    itinerary_id: str
    latitude: float
    longitude: float
    title: str
    type: PinType
    icon: PinIcon
    order_index: int
    description: Optional[str] = None

    @property
    def coordinate(self) -> Coordinate:
        return (self.longitude, self.latitude)


@dataclass
class Itinerary:
    """A saved itinerary with its pins in route order."""
    id: str
    title: str
    description: Optional[str] = None
    is_public: bool = False
    pins: List[ItineraryPin] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @staticmethod
    def generate_id() -> str:
        return str(uuid.uuid4())
