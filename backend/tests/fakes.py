"""In-memory stand-ins for the external clients."""

from typing import Dict, List, Optional

from app.models.entities import Coordinates, PlaceDetails


class FakeProvider:
    """Stands in for OpenAITextProvider; returns a canned reply or raises."""

    def __init__(self, reply: str = "", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


class FakePlaces:
    """Stands in for GooglePlacesClient; resolves only the queries it knows."""

    def __init__(self, known: Optional[Dict[str, PlaceDetails]] = None, destination: Optional[PlaceDetails] = None):
        self.known = known or {}
        self.destination = destination
        self.queries: List[str] = []

    def resolve(self, query: str) -> Optional[PlaceDetails]:
        self.queries.append(query)
        return self.known.get(query)

    def get_destination_info(self, destination: str) -> Optional[PlaceDetails]:
        return self.destination


def place(place_id: str, lat: float, lng: float, name: str = "") -> PlaceDetails:
    return PlaceDetails(place_id=place_id, name=name, coordinates=Coordinates(latitude=lat, longitude=lng))
