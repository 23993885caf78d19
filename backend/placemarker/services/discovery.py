"""
PlaceMarker Core: Place Discovery Client
========================================

What:  Adapter to the Google Places web service: nearby search, text search,
       place details and photo URLs.
How:   Plain GET requests over a shared httpx.AsyncClient. Every failure
       (transport, HTTP status, provider status) becomes a DiscoveryError
       that is logged here and replaced by an empty result, so callers only
       ever see a list or None.
Who:   The discovery routes. Results are CandidatePlace objects; a candidate
       becomes a saved Place through CandidatePlace.to_place().

No retries: a failed search is cheap to repeat from the UI.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, Field

from placemarker.domain import Coordinate, Place
from placemarker.exceptions import DiscoveryError

logger = logging.getLogger(__name__)

# Provider statuses that carry a usable (possibly empty) result.
_OK_STATUSES = {"OK", "ZERO_RESULTS"}

DETAILS_FIELDS = (
    "place_id",
    "name",
    "geometry",
    "formatted_address",
    "rating",
    "user_ratings_total",
    "photos",
)

DEFAULT_PHOTO_WIDTH = 800


class CandidatePlace(BaseModel):
    """A place as returned by the provider, before the user marks it."""

    id: str = Field(min_length=1)
    name: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: Optional[str] = None
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    photo_reference: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def from_provider(cls, item: Dict[str, Any]) -> "CandidatePlace":
        location = item["geometry"]["location"]
        photos = item.get("photos") or []
        return cls(
            id=item["place_id"],
            name=item.get("name", ""),
            latitude=location["lat"],
            longitude=location["lng"],
            address=item.get("formatted_address") or item.get("vicinity"),
            rating=item.get("rating"),
            user_ratings_total=item.get("user_ratings_total"),
            photo_reference=photos[0].get("photo_reference") if photos else None,
        )

    def to_place(self) -> Place:
        return Place(
            id=self.id,
            name=self.name,
            latitude=self.latitude,
            longitude=self.longitude,
            address=self.address,
        )


class PlacesDiscoveryClient:
    """
    Google Places (legacy web service) client.

    With no API key configured every lookup returns an empty result without
    touching the network.
    """

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient,
        base_url: str = "https://maps.googleapis.com/maps/api/place",
        search_type: str = "restaurant",
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.search_type = search_type
        self._http = http_client

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def search_nearby(self, location: Coordinate, radius_m: float) -> List[CandidatePlace]:
        params = {
            "location": f"{location.latitude},{location.longitude}",
            "radius": str(int(round(radius_m))),
            "type": self.search_type,
        }
        return await self._search("nearbysearch", params)

    async def search_text(self, query: str) -> List[CandidatePlace]:
        query = query.strip()
        if not query:
            return []
        return await self._search("textsearch", {"query": query, "type": self.search_type})

    async def place_details(self, place_id: str) -> Optional[CandidatePlace]:
        if not self.enabled or not place_id:
            return None
        params = {"place_id": place_id, "fields": ",".join(DETAILS_FIELDS)}
        try:
            payload = await self._get_json("details", params)
            result = payload.get("result")
            if not result:
                return None
            return CandidatePlace.from_provider(result)
        except DiscoveryError as e:
            logger.warning("Place details for %s failed: %s | %s", place_id, e.message, e.context)
            return None
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed place details for %s: %s", place_id, e)
            return None

    def photo_url(self, photo_reference: str, max_width: int = DEFAULT_PHOTO_WIDTH) -> str:
        query = urlencode(
            {"maxwidth": max_width, "photo_reference": photo_reference, "key": self.api_key}
        )
        return f"{self.base_url}/photo?{query}"

    # ── Internals ─────────────────────────────────────────────────────────

    async def _search(self, endpoint: str, params: Dict[str, str]) -> List[CandidatePlace]:
        if not self.enabled:
            logger.debug("Place discovery disabled (no API key); %s skipped", endpoint)
            return []
        try:
            payload = await self._get_json(endpoint, params)
        except DiscoveryError as e:
            logger.warning("Place %s failed: %s | %s", endpoint, e.message, e.context)
            return []

        candidates = []
        for item in payload.get("results", []):
            try:
                candidates.append(CandidatePlace.from_provider(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Skipping malformed %s result: %s", endpoint, e)
        logger.info("Place %s returned %d candidates", endpoint, len(candidates))
        return candidates

    async def _get_json(self, endpoint: str, params: Dict[str, str]) -> Dict[str, Any]:
        url = f"{self.base_url}/{endpoint}/json"
        try:
            response = await self._http.get(url, params={**params, "key": self.api_key})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise DiscoveryError(context={"endpoint": endpoint, "status_code": e.response.status_code}) from e
        except httpx.HTTPError as e:
            raise DiscoveryError(context={"endpoint": endpoint, "error": type(e).__name__}) from e
        except ValueError as e:
            raise DiscoveryError(context={"endpoint": endpoint, "error": "invalid_json"}) from e

        if not isinstance(payload, dict):
            raise DiscoveryError(context={"endpoint": endpoint, "error": "unexpected_payload"})
        status = payload.get("status", "")
        if status not in _OK_STATUSES:
            raise DiscoveryError(
                provider_status=status or "UNKNOWN",
                context={"endpoint": endpoint, "error_message": payload.get("error_message")},
            )
        return payload
