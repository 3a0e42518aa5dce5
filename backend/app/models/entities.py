# app/models/entities.py
from datetime import date, datetime, timezone
from typing import Iterator, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

UNKNOWN_LATITUDE = 0.0
UNKNOWN_LONGITUDE = 0.0


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Coordinates(BaseModel):
    latitude: float = UNKNOWN_LATITUDE
    longitude: float = UNKNOWN_LONGITUDE

    @property
    def is_unknown(self) -> bool:
        return self.latitude == UNKNOWN_LATITUDE and self.longitude == UNKNOWN_LONGITUDE


class Location(BaseModel):
    name: str = ""
    address: str = ""
    coordinates: Coordinates = Field(default_factory=Coordinates)
    place_id: Optional[str] = None  # Google Places ID

    @property
    def is_resolved(self) -> bool:
        return bool(self.place_id) and not self.coordinates.is_unknown

    @property
    def lookup_query(self) -> str:
        return (self.address or self.name).strip()


class PlaceDetails(BaseModel):
    place_id: str
    name: str = ""
    address: str = ""
    coordinates: Coordinates = Field(default_factory=Coordinates)
    rating: Optional[float] = None
    price_level: Optional[int] = None
    photos: List[str] = []
    opening_hours: List[str] = []
    website: Optional[str] = None
    phone_number: Optional[str] = None


class Activity(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    category: str = ""
    location: Location = Field(default_factory=Location)
    duration: float = 0.0  # hours
    cost: float = 0.0
    rating: float = 0.0
    opening_hours: Optional[str] = None
    best_time_to_visit: Optional[str] = None


class Meal(BaseModel):
    type: str = "meal"
    restaurant: str = ""
    cuisine: str = ""
    location: Location = Field(default_factory=Location)
    estimated_cost: float = 0.0
    rating: Optional[float] = None
    specialties: List[str] = []


class Accommodation(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    type: str = "hotel"
    location: Location = Field(default_factory=Location)
    rating: float = 0.0
    price_per_night: float = 0.0
    amenities: List[str] = []
    check_in: Optional[date] = None
    check_out: Optional[date] = None


class Transportation(BaseModel):
    id: str = Field(default_factory=new_id)
    type: str = ""
    from_location: Location = Field(default_factory=Location)
    to_location: Location = Field(default_factory=Location)
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    cost: float = 0.0
    provider: str = ""


class CostBreakdown(BaseModel):
    accommodation: float = 0.0
    transport: float = 0.0
    activities: float = 0.0
    meals: float = 0.0
    miscellaneous: float = 0.0
    total: float = 0.0
    currency: str = "INR"

    def category_sum(self) -> float:
        return self.accommodation + self.transport + self.activities + self.meals + self.miscellaneous


class Recommendation(BaseModel):
    type: str = "activity"
    title: str = ""
    description: str = ""
    location: Optional[Location] = None
    estimated_cost: float = 0.0
    rating: float = 0.0
    reasons: List[str] = []


class DayPlan(BaseModel):
    day: int
    date: date
    theme: str = ""
    activities: List[Activity] = []
    meals: List[Meal] = []
    accommodation_id: Optional[str] = None
    estimated_budget: float = 0.0
    notes: Optional[str] = None


class Itinerary(BaseModel):
    id: str = Field(default_factory=new_id)
    trip_request_id: str
    user_id: str = ""
    destination: str
    duration: int
    total_budget: float = 0.0
    currency: str = "INR"
    overview: str = ""
    days: List[DayPlan] = []
    accommodations: List[Accommodation] = []
    transport: List[Transportation] = []
    cost_breakdown: CostBreakdown = Field(default_factory=CostBreakdown)
    recommendations: List[Recommendation] = []
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 1

    def iter_locations(self) -> Iterator[Location]:
        """Locations the enrichment pass resolves: activities, meals, accommodations."""
        for day in self.days:
            for activity in day.activities:
                yield activity.location
            for meal in day.meals:
                yield meal.location
        for accommodation in self.accommodations:
            yield accommodation.location

    def find_activity(self, activity_id: str) -> Optional[Activity]:
        for day in self.days:
            for activity in day.activities:
                if activity.id == activity_id:
                    return activity
        return None
