"""
Itinerary repository backed by SQLAlchemy/SQLite.
"""
from datetime import datetime
from typing import List, Optional, Sequence
import uuid

from sqlalchemy.orm import Session

from domain.models import ExportedPin, Itinerary, ItineraryPin, PinIcon, PinType
from repositories.models import ItineraryORM, ItineraryPinORM


def _pin_from_orm(orm: ItineraryPinORM) -> ItineraryPin:
    return ItineraryPin(
        id=orm.id,
        itinerary_id=orm.itinerary_id,
        latitude=orm.latitude,
        longitude=orm.longitude,
        title=orm.title,
        description=orm.description,
        type=PinType.parse(orm.type),
        icon=PinIcon(orm.icon),
        order_index=orm.order_index,
    )


def _itinerary_from_orm(orm: ItineraryORM) -> Itinerary:
    pins = sorted((_pin_from_orm(p) for p in orm.pins or []), key=lambda p: p.order_index)
    return Itinerary(
        id=orm.id,
        title=orm.title,
        description=orm.description,
        is_public=bool(orm.is_public),
        pins=pins,
        created_at=orm.created_at,
        updated_at=orm.updated_at,
    )


class ItinerariesRepository:
    """CRUD operations for itineraries and their ordered pins."""

    def list_itineraries(self, session: Session) -> List[Itinerary]:
        rows = session.query(ItineraryORM).order_by(ItineraryORM.created_at.desc()).all()
        return [_itinerary_from_orm(r) for r in rows]

    def get_itinerary(self, session: Session, itinerary_id: str) -> Optional[Itinerary]:
        orm = session.get(ItineraryORM, itinerary_id)
        if not orm:
            return None
        return _itinerary_from_orm(orm)

    def create_itinerary(
        self,
        session: Session,
        title: str,
        pins: Sequence[ExportedPin],
        description: Optional[str] = None,
        is_public: bool = False,
    ) -> Itinerary:
        """Insert an itinerary and its pins in one transaction."""
        now = datetime.utcnow()
        itinerary_id = Itinerary.generate_id()
        orm = ItineraryORM(
            id=itinerary_id,
            title=title,
            description=description,
            is_public=is_public,
            created_at=now,
            updated_at=now,
        )
        for index, pin in enumerate(pins):
            orm.pins.append(
                ItineraryPinORM(
                    id=str(uuid.uuid4()),
                    itinerary_id=itinerary_id,
                    latitude=pin.latitude,
                    longitude=pin.longitude,
                    title=pin.title,
                    description=pin.description,
                    type=pin.type.value,
                    icon=pin.icon.value,
                    order_index=pin.order_index if pin.order_index is not None else index,
                )
            )
        session.add(orm)
        session.commit()
        session.refresh(orm)
        return _itinerary_from_orm(orm)

    def delete_itinerary(self, session: Session, itinerary_id: str) -> bool:
        orm = session.get(ItineraryORM, itinerary_id)
        if not orm:
            return False
        session.delete(orm)
        session.commit()
        return True
