"""
Export of editor state for the persistence API.

Pins leave the editor sorted by route order, each stamped with a zero-based
order_index, (latitude, longitude) taken from the (lon, lat) coordinate and an
icon derived from the pin type.
"""
from dataclasses import dataclass
from typing import List, Optional

from domain.models import ExportedPin, icon_for_type
from services.pin_store import PinStore
from services.route_sequence import RouteSequence

DRAFT_TITLE = "Untitled Itinerary"


class ItineraryValidationError(ValueError):
    """Raised when an itinerary cannot be published as-is."""


@dataclass
class SavePayload:
    title: str
    description: Optional[str]
    is_public: bool
    pins: List[ExportedPin]


def export_pins(pins: PinStore, route: RouteSequence) -> List[ExportedPin]:
    exported: List[ExportedPin] = []
    for node in route:
        pin = pins.get(node.pin_id)
        if pin is None:
            # Route nodes always reference a pin; skip rather than fail the save.
            continue
        lon, lat = pin.coordinate
        exported.append(
            ExportedPin(
                latitude=lat,
                longitude=lon,
                title=pin.title.strip(),
                description=pin.description.strip() or None,
                type=pin.type,
                icon=icon_for_type(pin.type),
                order_index=len(exported),
            )
        )
    return exported


def _clean(text: Optional[str]) -> str:
    return (text or "").strip()


def build_save_payload(
    pins: PinStore,
    route: RouteSequence,
    title: Optional[str],
    description: Optional[str] = None,
    is_public: bool = False,
    draft: bool = False,
) -> SavePayload:
    """
    Prepare an itinerary for saving.

    Drafts are always private and fill in placeholder titles. Published
    itineraries need a title, at least one pin and a title on every pin.
    """
    exported = export_pins(pins, route)
    clean_title = _clean(title)

    if draft:
        for item in exported:
            if not item.title:
                item.title = f"Point {item.order_index + 1}"
        return SavePayload(
            title=clean_title or DRAFT_TITLE,
            description=_clean(description) or None,
            is_public=False,
            pins=exported,
        )

    if not clean_title:
        raise ItineraryValidationError("Title is required")
    if not exported:
        raise ItineraryValidationError("Please add at least one pin to the map")
    if any(not item.title for item in exported):
        raise ItineraryValidationError(
            "All pins must have a title. Please click on each pin and add a title."
        )
    return SavePayload(
        title=clean_title,
        description=_clean(description) or None,
        is_public=is_public,
        pins=exported,
    )

