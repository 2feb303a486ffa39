"""
SQLAlchemy ORM models for persistence.
"""
from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from db import Base


class ItineraryORM(Base):
    __tablename__ = "itineraries"

    id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_public = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    pins = relationship(
        "ItineraryPinORM",
        back_populates="itinerary",
        cascade="all, delete-orphan",
        order_by="ItineraryPinORM.order_index",
    )


class ItineraryPinORM(Base):
    __tablename__ = "itinerary_pins"

    id = Column(String, primary_key=True, index=True)
    itinerary_id = Column(
        String, ForeignKey("itineraries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False)
    icon = Column(String, nullable=False)
    order_index = Column(Integer, nullable=False)

    itinerary = relationship("ItineraryORM", back_populates="pins")
