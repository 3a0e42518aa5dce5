import operator
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.entities import Itinerary, PlaceDetails
from app.models.trip_preferences import TripConstraints


class GenerationState(BaseModel):
    constraints: TripConstraints
    duration: int
    destination_info: Optional[PlaceDetails] = None
    prompt: str = ""
    raw_text: str = ""
    itinerary: Optional[Itinerary] = None
    enrichment: Dict[str, Any] = Field(default_factory=dict)
    # nodes return only their new entries; the graph concatenates them
    logs: Annotated[List[dict], operator.add] = Field(default_factory=list)
