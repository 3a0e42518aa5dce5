from datetime import date, datetime, timezone
from typing import List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TravelInterest = Literal[
    "heritage",
    "nightlife",
    "adventure",
    "culinary",
    "nature",
    "shopping",
    "wellness",
    "photography",
    "cultural",
    "spiritual",
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BudgetRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float = Field(ge=0)
    max: float = Field(ge=0)
    currency: str = "INR"

    @model_validator(mode="after")
    def _check_order(self) -> "BudgetRange":
        if self.min > self.max:
            raise ValueError("budget min must not exceed budget max")
        return self


class TripConstraints(BaseModel):
    """One itinerary generation request. Immutable once submitted."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str = ""
    destination: str = Field(min_length=1)
    start_date: date
    end_date: date
    budget: BudgetRange
    group_size: int = Field(default=1, ge=1)
    interests: List[TravelInterest] = []
    travel_style: Literal["budget", "mid-range", "luxury"] = "mid-range"
    accommodation_type: Literal["hotel", "hostel", "resort", "homestay", "any"] = "any"
    transport_preference: Literal["flight", "train", "bus", "car", "any"] = "any"
    special_requirements: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("destination")
    @classmethod
    def _strip_destination(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("destination must not be blank")
        return v

    @model_validator(mode="after")
    def _check_dates(self) -> "TripConstraints":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self

    @property
    def duration_days(self) -> int:
        """Inclusive number of calendar days between start and end."""
        return (self.end_date - self.start_date).days + 1


class UserPreferences(BaseModel):
    """Saved defaults for a user. Unset fields are left alone on update."""

    favorite_destinations: Optional[List[str]] = None
    travel_style: Optional[Literal["budget", "mid-range", "luxury"]] = None
    interests: Optional[List[TravelInterest]] = None
    dietary_restrictions: Optional[List[str]] = None
    accessibility: Optional[List[str]] = None
    language: Optional[str] = None
