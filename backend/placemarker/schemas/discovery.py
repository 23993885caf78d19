"""
PlaceMarker API: Discovery Schemas
==================================

What:  Candidate places from the discovery provider, annotated with whether
       each one is already saved and a ready-to-use photo URL.
"""

from typing import List, Optional

from pydantic import BaseModel

from placemarker.services.discovery import CandidatePlace


class CandidateResponse(CandidatePlace):
    saved: bool = False
    photo_url: Optional[str] = None


class CandidateListResponse(BaseModel):
    candidates: List[CandidateResponse]
    count: int
