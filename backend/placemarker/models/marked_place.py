"""
PlaceMarker Core: MarkedPlace SQLAlchemy Model
==============================================

What:  ORM model for the `marked_places` table, the durable mirror of
       SavedPlaces.
Who:   Used by PersistenceGateway and by Alembic.

Table Design:
    - mp_id: surrogate auto-incrementing key; its order is the storage order
      returned by fetch_all().
    - place_id: logical key (provider-issued). UNIQUE, so a duplicate insert
      is rejected by the storage engine itself even under concurrent writers.
    - latitude / longitude: DECIMAL(9,6); values are rounded to 6 decimal
      places before they are written and read back as floats.
"""

from typing import Optional

from sqlalchemy import Integer, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from placemarker.database import Base
from placemarker.domain import Place

COORDINATE_SCALE = 6


class MarkedPlace(Base):
    """One marked place. Lives until the user unmarks it."""

    __tablename__ = "marked_places"

    mp_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    place_id: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    latitude: Mapped[float] = mapped_column(
        Numeric(9, COORDINATE_SCALE, asdecimal=False), nullable=False
    )
    longitude: Mapped[float] = mapped_column(
        Numeric(9, COORDINATE_SCALE, asdecimal=False), nullable=False
    )
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    __table_args__ = (
        UniqueConstraint("place_id", name="uq_marked_places_place_id"),
    )

    @classmethod
    def row_values(cls, place: Place) -> dict:
        """Column values for inserting `place`."""
        return {
            "place_id": place.id,
            "name": place.name,
            "latitude": round(place.latitude, COORDINATE_SCALE),
            "longitude": round(place.longitude, COORDINATE_SCALE),
            "address": place.address,
        }

    def to_place(self) -> Place:
        return Place(
            id=self.place_id,
            name=self.name,
            latitude=float(self.latitude),
            longitude=float(self.longitude),
            address=self.address,
        )

    def __repr__(self) -> str:
        return f"<MarkedPlace(mp_id={self.mp_id}, place_id='{self.place_id}')>"
