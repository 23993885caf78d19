"""
PlaceMarker API: Note Routes
============================

What:  Read and save the caller's private note on a place.
How:   Delegates to NotesSyncService. A failed read still answers 200 with
       the placeholder (synced=false); a failed save is raised so the global
       handlers map it (400 blank text, 502 note store, 503 identity).
"""

import logging

from fastapi import APIRouter, Depends

from placemarker.dependencies import get_notes_sync
from placemarker.schemas.common import ErrorResponse
from placemarker.schemas.note import NoteResponse, NoteSaveRequest
from placemarker.services.notes_sync import NotesSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])


@router.get("/notes/{place_id}", response_model=NoteResponse, summary="Fetch my note for a place")
async def get_note(
    place_id: str,
    notes: NotesSyncService = Depends(get_notes_sync),
) -> NoteResponse:
    outcome = await notes.fetch_note(place_id)
    return NoteResponse(
        place_id=place_id,
        text=outcome.value if outcome.value is not None else notes.placeholder,
        synced=outcome.ok,
        error=None if outcome.ok else outcome.error.message,
    )


@router.put(
    "/notes/{place_id}",
    response_model=NoteResponse,
    responses={
        400: {"description": "Blank note text", "model": ErrorResponse},
        502: {"description": "Note store rejected the write", "model": ErrorResponse},
        503: {"description": "Identity unavailable", "model": ErrorResponse},
    },
    summary="Save my note for a place",
)
async def save_note(
    place_id: str,
    body: NoteSaveRequest,
    notes: NotesSyncService = Depends(get_notes_sync),
) -> NoteResponse:
    note = (await notes.save_note(place_id, body.text)).unwrap()
    return NoteResponse(place_id=note.place_id, text=note.text, synced=True)
