"""
Itineraries API routes (persistence).
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from db import SessionLocal
from domain.models import ExportedPin, Itinerary, PinIcon, PinType, icon_for_type
from repositories import ItinerariesRepository

router = APIRouter()
itineraries_repo = ItinerariesRepository()
logger = logging.getLogger(__name__)


class PinCreate(BaseModel):
    latitude: float
    longitude: float
    title: str
    description: Optional[str] = None
    type: Optional[str] = None
    icon: Optional[str] = None
    order_index: Optional[int] = None


class ItineraryCreate(BaseModel):
    title: str
    description: Optional[str] = None
    is_public: bool = False
    pins: List[PinCreate]


class ItineraryPinResponse(BaseModel):
    id: str
    latitude: float
    longitude: float
    title: str
    description: Optional[str] = None
    type: str
    icon: str
    order_index: int


class ItineraryResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    is_public: bool
    created_at: str
    updated_at: str
    pins: List[ItineraryPinResponse]


def itinerary_to_response(itinerary: Itinerary) -> ItineraryResponse:
    return ItineraryResponse(
        id=itinerary.id,
        title=itinerary.title,
        description=itinerary.description,
        is_public=itinerary.is_public,
        created_at=itinerary.created_at.isoformat(),
        updated_at=itinerary.updated_at.isoformat(),
        pins=[
            ItineraryPinResponse(
                id=p.id,
                latitude=p.latitude,
                longitude=p.longitude,
                title=p.title,
                description=p.description,
                type=p.type.value,
                icon=p.icon.value,
                order_index=p.order_index,
            )
            for p in itinerary.pins
        ],
    )


def _resolve_icon(raw_icon: Optional[str], pin_type: PinType) -> PinIcon:
    """Explicit icon when it is a known one, otherwise derived from the type."""
    if raw_icon:
        try:
            return PinIcon(raw_icon.strip().upper())
        except ValueError:
            return PinIcon.PIN
    return icon_for_type(pin_type)


@router.post("", response_model=ItineraryResponse, status_code=201)
async def create_itinerary(data: ItineraryCreate):
    """Create an itinerary from an explicit, ordered pin list."""
    if not data.title or not data.title.strip():
        raise HTTPException(status_code=400, detail="Title is required")
    if not data.pins:
        raise HTTPException(status_code=400, detail="At least one pin is required")
    for pin in data.pins:
        if not pin.title or not pin.title.strip():
            raise HTTPException(status_code=400, detail="All pins must have a title")

    pins: List[ExportedPin] = []
    for index, pin in enumerate(data.pins):
        pin_type = PinType.parse(pin.type)
        pins.append(
            ExportedPin(
                latitude=pin.latitude,
                longitude=pin.longitude,
                title=pin.title.strip(),
                description=(pin.description or "").strip() or None,
                type=pin_type,
                icon=_resolve_icon(pin.icon, pin_type),
                order_index=pin.order_index if pin.order_index is not None else index,
            )
        )

    with SessionLocal() as session:
        saved = itineraries_repo.create_itinerary(
            session,
            title=data.title.strip(),
            pins=pins,
            description=(data.description or "").strip() or None,
            is_public=data.is_public,
        )
        logger.info("Created itinerary %s with %d pins", saved.id, len(pins))
        return itinerary_to_response(saved)


@router.get("", response_model=List[ItineraryResponse])
async def list_itineraries():
    with SessionLocal() as session:
        return [itinerary_to_response(i) for i in itineraries_repo.list_itineraries(session)]


@router.get("/{itinerary_id}", response_model=ItineraryResponse)
async def get_itinerary(itinerary_id: str):
    with SessionLocal() as session:
        itinerary = itineraries_repo.get_itinerary(session, itinerary_id)
        if not itinerary:
            raise HTTPException(status_code=404, detail="Itinerary not found")
        return itinerary_to_response(itinerary)


@router.delete("/{itinerary_id}")
async def delete_itinerary(itinerary_id: str):
    with SessionLocal() as session:
        if not itineraries_repo.delete_itinerary(session, itinerary_id):
            raise HTTPException(status_code=404, detail="Itinerary not found")
        return {"status": "deleted"}
