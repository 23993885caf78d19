"""
PlaceMarker API: Note Schemas
=============================

What:  Bodies for reading and saving the caller's private note on a place.

A note read never fails at the HTTP level: when the remote store or the
identity is unavailable the response carries the placeholder text with
synced=false and the reason in `error`.
"""

from typing import Optional

from pydantic import BaseModel, Field


class NoteSaveRequest(BaseModel):
    text: str = Field(description="Full note text; replaces any previous text")


class NoteResponse(BaseModel):
    place_id: str
    text: str = Field(description="Stored note text, or the placeholder when none exists")
    synced: bool = Field(description="False when the remote store could not be reached")
    error: Optional[str] = None
