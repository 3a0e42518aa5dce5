"""
Google Places API Integration for TripCraft

Resolves free-text place names and addresses to canonical Google place ids,
coordinates and metadata, and exposes the nearby/route lookups used when
adjusting an itinerary.

Every call is read-only and returns None / [] on failure instead of raising;
a missing result means "leave the location as it is".
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import googlemaps
from googlemaps.exceptions import ApiError, HTTPError, Timeout, TransportError

from app.config import Settings
from app.models.entities import Coordinates, Location, PlaceDetails

logger = logging.getLogger(__name__)

PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"

# googlemaps raises these for quota, transport and upstream status errors
PLACES_ERRORS = (ApiError, HTTPError, Timeout, TransportError, ValueError, KeyError)

DETAIL_FIELDS = [
    "name",
    "formatted_address",
    "geometry",
    "rating",
    "price_level",
    "photo",
    "opening_hours",
    "website",
    "formatted_phone_number",
]

DESTINATION_FIELDS = ["place_id", "name", "geometry", "formatted_address", "rating", "photos"]

RESTAURANT_RADIUS = 2000
RESTAURANT_LIMIT = 10
ACCOMMODATION_RADIUS = 5000
ACCOMMODATION_LIMIT = 15


class GooglePlacesClient:
    """Google Places client for resolving itinerary locations"""

    def __init__(self, api_key: Optional[str] = None, client=None, photo_max_width: int = 400):
        self.api_key = api_key or ""
        self.photo_max_width = photo_max_width
        if client is not None:
            self.client = client
        elif api_key:
            self.client = googlemaps.Client(key=api_key)
            logger.info("Google Places API initialized")
        else:
            self.client = None
            logger.warning("GOOGLE_PLACES_API_KEY not configured; place lookups disabled")

    @classmethod
    def from_settings(cls, settings: Settings) -> "GooglePlacesClient":
        return cls(api_key=settings.google_places_api_key, photo_max_width=settings.places_photo_max_width)

    def photo_url(self, photo_reference: str) -> str:
        return (
            f"{PHOTO_URL}?maxwidth={self.photo_max_width}"
            f"&photoreference={photo_reference}&key={self.api_key}"
        )

    def _photos(self, place: Dict[str, Any]) -> List[str]:
        return [
            self.photo_url(photo["photo_reference"])
            for photo in place.get("photos") or []
            if photo.get("photo_reference")
        ]

    @staticmethod
    def _coordinates(place: Dict[str, Any]) -> Coordinates:
        loc = (place.get("geometry") or {}).get("location") or {}
        return Coordinates(latitude=loc.get("lat") or 0.0, longitude=loc.get("lng") or 0.0)

    def _to_details(self, place_id: str, place: Dict[str, Any]) -> PlaceDetails:
        opening_hours = (place.get("opening_hours") or {}).get("weekday_text") or []
        return PlaceDetails(
            place_id=place_id,
            name=place.get("name", ""),
            address=place.get("formatted_address") or place.get("vicinity", ""),
            coordinates=self._coordinates(place),
            rating=place.get("rating"),
            price_level=place.get("price_level"),
            photos=self._photos(place),
            opening_hours=list(opening_hours),
            website=place.get("website"),
            phone_number=place.get("formatted_phone_number"),
        )

    def _find_candidates(self, query: str, fields: List[str]) -> List[Dict[str, Any]]:
        result = self.client.find_place(query, "textquery", fields=fields)
        return result.get("candidates") or []

    def resolve(self, query: str) -> Optional[PlaceDetails]:
        """
        Resolve a free-text name or address to full place details.

        Two steps: find the place id (requesting only that field), then
        fetch its details. Returns None when nothing is found or any call fails.
        """
        if not self.client or not query or not query.strip():
            return None

        try:
            candidates = self._find_candidates(query, ["place_id"])
            if not candidates or not candidates[0].get("place_id"):
                logger.info(f"No place candidates for '{query}'")
                return None
            place_id = candidates[0]["place_id"]

            details = self.client.place(place_id, fields=DETAIL_FIELDS)
            place = details.get("result") or {}
            return self._to_details(place_id, place)
        except PLACES_ERRORS as e:
            logger.warning(f"Place lookup failed for '{query}': {e}")
        except OSError as e:
            logger.warning(f"Network error during place lookup for '{query}': {e}")
        return None

    def get_destination_info(self, destination: str) -> Optional[PlaceDetails]:
        """Basic metadata for the trip destination, used to ground the prompt."""
        if not self.client:
            return None

        try:
            candidates = self._find_candidates(destination, DESTINATION_FIELDS)
            if not candidates:
                return None
            place = candidates[0]
            return self._to_details(place.get("place_id", ""), place)
        except (PLACES_ERRORS + (OSError,)) as e:
            logger.warning(f"Destination lookup failed for {destination}: {e}")
            return None

    def nearby_places(
        self,
        lat: float,
        lng: float,
        radius: int = 5000,
        place_type: Optional[str] = None,
        keyword: Optional[str] = None,
        limit: int = 20,
    ) -> List[PlaceDetails]:
        """Places around a coordinate, optionally filtered by Google place type."""
        if not self.client:
            logger.warning("Google Places API not available")
            return []

        kwargs: Dict[str, Any] = {"location": (lat, lng), "radius": radius}
        if place_type:
            kwargs["type"] = place_type
        if keyword:
            kwargs["keyword"] = keyword

        try:
            result = self.client.places_nearby(**kwargs)
        except (PLACES_ERRORS + (OSError,)) as e:
            logger.warning(f"Nearby search failed near ({lat}, {lng}): {e}")
            return []

        places = []
        for place in result.get("results") or []:
            place_id = place.get("place_id")
            if not place_id:
                continue
            places.append(self._to_details(place_id, place))
            if len(places) >= limit:
                break
        logger.info(f"Found {len(places)} places near ({lat}, {lng}) type={place_type}")
        return places

    def search_restaurants(self, lat: float, lng: float, cuisine: Optional[str] = None) -> List[PlaceDetails]:
        return self.nearby_places(
            lat, lng, radius=RESTAURANT_RADIUS, place_type="restaurant", keyword=cuisine, limit=RESTAURANT_LIMIT
        )

    def search_accommodations(self, lat: float, lng: float, keyword: str = "lodging") -> List[PlaceDetails]:
        return self.nearby_places(
            lat, lng, radius=ACCOMMODATION_RADIUS, place_type="lodging", keyword=keyword, limit=ACCOMMODATION_LIMIT
        )

    @staticmethod
    def _latlng(location: Location) -> tuple:
        return (location.coordinates.latitude, location.coordinates.longitude)

    def get_route(self, waypoints: Sequence[Location]) -> Optional[List[Dict[str, Any]]]:
        """Optimized driving route through an ordered list of locations (needs at least 2)."""
        if len(waypoints) < 2 or not self.client:
            return None

        origin = self._latlng(waypoints[0])
        destination = self._latlng(waypoints[-1])
        intermediate = [self._latlng(wp) for wp in waypoints[1:-1]]
        try:
            return self.client.directions(
                origin,
                destination,
                waypoints=intermediate or None,
                optimize_waypoints=True,
            )
        except (PLACES_ERRORS + (OSError,)) as e:
            logger.warning(f"Route lookup failed for {len(waypoints)} waypoints: {e}")
            return None

    def get_distance_matrix(
        self, origins: Sequence[Location], destinations: Sequence[Location]
    ) -> Optional[Dict[str, Any]]:
        if not origins or not destinations or not self.client:
            return None

        try:
            return self.client.distance_matrix(
                [self._latlng(o) for o in origins],
                [self._latlng(d) for d in destinations],
                units="metric",
            )
        except (PLACES_ERRORS + (OSError,)) as e:
            logger.warning(f"Distance matrix lookup failed: {e}")
            return None
