"""
PlaceMarker Core: DeviceIdentity SQLAlchemy Model
=================================================

What:  Single-row table remembering the anonymous identity issued to this
       device (uid + refresh token).
Note:  Remote notes are scoped to the uid, so note ownership lasts exactly
       as long as this row (that is, as long as the local store).
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from placemarker.database import Base

# The table only ever holds this row.
DEVICE_ROW_ID = 1


class DeviceIdentity(Base):
    __tablename__ = "device_identity"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=DEVICE_ROW_ID)
    uid: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<DeviceIdentity(uid='{self.uid}')>"
