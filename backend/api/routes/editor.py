"""
Editor session API routes.

The map client forwards its pointer events (drop, click, dragend, path-mode
toggles) here and polls /layers for the markers and lines to draw.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from api import sessions
from db import SessionLocal
from domain.models import Pin, PinType, icon_for_type
from repositories import ItinerariesRepository
from services.editor import EditorSession
from services.itinerary_export import ItineraryValidationError

router = APIRouter()
itineraries_repo = ItinerariesRepository()
logger = logging.getLogger(__name__)


class SessionCreate(BaseModel):
    use_directions: Optional[bool] = None
    itinerary_id: Optional[str] = None


class PinDrop(BaseModel):
    type: str = "PIN"
    lon: float = Field(..., ge=-180, le=180)
    lat: float = Field(..., ge=-90, le=90)


class PinEdit(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class PointerEvent(BaseModel):
    lon: float = Field(..., ge=-180, le=180)
    lat: float = Field(..., ge=-90, le=90)
    pin_id: Optional[str] = None


class SaveRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    is_public: bool = False
    draft: bool = False


class PinResponse(BaseModel):
    id: str
    type: str
    icon: str
    lon: float
    lat: float
    title: str
    description: str


class RouteNodeResponse(BaseModel):
    pin_id: str
    lon: float
    lat: float
    is_from_custom_path: bool


class SegmentResponse(BaseModel):
    kind: str
    points: List[Tuple[float, float]]
    from_anchor: bool
    fallback: bool


class SessionStateResponse(BaseModel):
    id: str
    use_directions: bool
    directions_active: bool
    mode: str
    draft_points: List[Tuple[float, float]]
    pins: List[PinResponse]
    route: List[RouteNodeResponse]
    custom_paths: List[List[Tuple[float, float]]]
    runs: List[List[Tuple[float, float]]]
    segments: List[SegmentResponse]
    can_undo: bool
    can_redo: bool
    selected_pin_id: Optional[str] = None


class ClickResponse(BaseModel):
    point_added: bool
    selected: Optional[PinResponse] = None


class PathModeResponse(BaseModel):
    outcome: Optional[str] = None
    state: SessionStateResponse


class ExportedPinResponse(BaseModel):
    latitude: float
    longitude: float
    title: str
    description: Optional[str] = None
    type: str
    icon: str
    order_index: int


class SaveResponse(BaseModel):
    itinerary_id: str
    title: str
    is_public: bool
    pins: List[ExportedPinResponse]


def pin_to_response(pin: Pin) -> PinResponse:
    lon, lat = pin.coordinate
    return PinResponse(
        id=pin.id,
        type=pin.type.value,
        icon=icon_for_type(pin.type).value,
        lon=lon,
        lat=lat,
        title=pin.title,
        description=pin.description,
    )


def session_to_response(session: EditorSession) -> SessionStateResponse:
    composed = session.composed
    return SessionStateResponse(
        id=session.id,
        use_directions=session.use_directions,
        directions_active=session.directions_active,
        mode=session.draw.state.name,
        draft_points=session.draw.points,
        pins=[pin_to_response(p) for p in session.pins_in_route_order()],
        route=[
            RouteNodeResponse(
                pin_id=n.pin_id,
                lon=n.coordinate[0],
                lat=n.coordinate[1],
                is_from_custom_path=n.is_from_custom_path,
            )
            for n in session.route
        ],
        custom_paths=session.custom_paths(),
        runs=composed.runs,
        segments=[
            SegmentResponse(
                kind=s.kind.value,
                points=s.points,
                from_anchor=s.from_anchor,
                fallback=s.fallback,
            )
            for s in composed.segments
        ],
        can_undo=session.history.can_undo,
        can_redo=session.history.can_redo,
        selected_pin_id=session.selected_pin_id,
    )


def _get_session_or_404(session_id: str) -> EditorSession:
    session = sessions.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.post("", response_model=SessionStateResponse)
async def create_session(data: SessionCreate):
    """Open an editor session, optionally seeded from a saved itinerary."""
    saved = None
    if data.itinerary_id:
        with SessionLocal() as db:
            saved = itineraries_repo.get_itinerary(db, data.itinerary_id)
        if not saved:
            raise HTTPException(status_code=404, detail="Itinerary not found")

    session = sessions.create_session(use_directions=data.use_directions)
    if saved:
        await session.load_pins(
            Pin(
                id=p.id,
                type=p.type,
                coordinate=p.coordinate,
                title=p.title,
                description=p.description or "",
            )
            for p in saved.pins
        )
    return session_to_response(session)


@router.get("/{session_id}", response_model=SessionStateResponse)
async def get_session(session_id: str):
    return session_to_response(_get_session_or_404(session_id))


@router.delete("/{session_id}")
async def close_session(session_id: str):
    if not sessions.close_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "closed"}


@router.post("/{session_id}/pins", response_model=PinResponse)
async def drop_pin(session_id: str, data: PinDrop):
    """Drop a pin from the palette; it joins the end of the route."""
    session = _get_session_or_404(session_id)
    pin = await session.drop_pin(PinType.parse(data.type), (data.lon, data.lat))
    return pin_to_response(pin)


@router.patch("/{session_id}/pins/{pin_id}", response_model=PinResponse)
async def edit_pin(session_id: str, pin_id: str, data: PinEdit):
    session = _get_session_or_404(session_id)
    pin = await session.edit_pin(pin_id, title=data.title, description=data.description)
    if pin is None:
        raise HTTPException(status_code=404, detail="Pin not found")
    return pin_to_response(pin)


@router.delete("/{session_id}/pins/{pin_id}", response_model=SessionStateResponse)
async def delete_pin(session_id: str, pin_id: str):
    session = _get_session_or_404(session_id)
    if not await session.delete_pin(pin_id):
        raise HTTPException(status_code=404, detail="Pin not found")
    return session_to_response(session)


@router.post("/{session_id}/pins/{pin_id}/dragend", response_model=SessionStateResponse)
async def drag_end(session_id: str, pin_id: str, data: PointerEvent):
    """A marker was dropped at a new position. Unknown pins are ignored."""
    session = _get_session_or_404(session_id)
    await session.drag_end(pin_id, (data.lon, data.lat))
    return session_to_response(session)


@router.post("/{session_id}/click", response_model=ClickResponse)
async def click(session_id: str, data: PointerEvent):
    session = _get_session_or_404(session_id)
    result = session.click((data.lon, data.lat), pin_id=data.pin_id)
    return ClickResponse(
        point_added=result.point_added,
        selected=pin_to_response(result.selected) if result.selected else None,
    )


@router.post("/{session_id}/path-mode/toggle", response_model=PathModeResponse)
async def toggle_path_mode(session_id: str):
    session = _get_session_or_404(session_id)
    outcome = await session.toggle_path_mode()
    return PathModeResponse(outcome=outcome.value, state=session_to_response(session))


@router.post("/{session_id}/path-mode/cancel", response_model=PathModeResponse)
async def cancel_path_mode(session_id: str):
    session = _get_session_or_404(session_id)
    outcome = session.cancel_path()
    return PathModeResponse(
        outcome=outcome.value if outcome else None,
        state=session_to_response(session),
    )


@router.post("/{session_id}/undo", response_model=SessionStateResponse)
async def undo(session_id: str):
    session = _get_session_or_404(session_id)
    await session.undo()
    return session_to_response(session)


@router.post("/{session_id}/redo", response_model=SessionStateResponse)
async def redo(session_id: str):
    session = _get_session_or_404(session_id)
    await session.redo()
    return session_to_response(session)


@router.get("/{session_id}/layers")
async def layers(session_id: str) -> Dict[str, Any]:
    """GeoJSON markers and line layers for the map client."""
    session = _get_session_or_404(session_id)
    return session.surface.to_geojson()


@router.get("/{session_id}/export", response_model=List[ExportedPinResponse])
async def export(session_id: str):
    session = _get_session_or_404(session_id)
    return [ExportedPinResponse(**p.to_dict()) for p in session.export()]


@router.post("/{session_id}/save", response_model=SaveResponse)
async def save(session_id: str, data: SaveRequest):
    """Persist the itinerary in route order."""
    session = _get_session_or_404(session_id)
    try:
        payload = session.save_payload(
            title=data.title,
            description=data.description,
            is_public=data.is_public,
            draft=data.draft,
        )
    except ItineraryValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    with SessionLocal() as db:
        saved = itineraries_repo.create_itinerary(
            db,
            title=payload.title,
            pins=payload.pins,
            description=payload.description,
            is_public=payload.is_public,
        )
    logger.info("Session %s saved itinerary %s (%d pins)", session.id, saved.id, len(payload.pins))
    return SaveResponse(
        itinerary_id=saved.id,
        title=saved.title,
        is_public=saved.is_public,
        pins=[ExportedPinResponse(**p.to_dict()) for p in payload.pins],
    )
