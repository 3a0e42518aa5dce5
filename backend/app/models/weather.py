from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field

from app.models.entities import new_id

Impact = Literal["low", "medium", "high"]


class WeatherObservation(BaseModel):
    location: str
    date: date
    condition: str = ""
    temp_min: float
    temp_max: float
    precipitation: float = 0.0  # mm
    humidity: float = 0.0
    wind_speed: float = 0.0
    recommendations: List[str] = []


class WeatherAdvisory(BaseModel):
    id: str = Field(default_factory=lambda: f"weather_{new_id()}")
    itinerary_id: str = ""
    day: int
    type: Literal["weather"] = "weather"
    title: str
    description: str
    impact: Impact
    suggested_actions: List[str] = []
    affected_items: List[str] = []
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    acknowledged: bool = False


class SmartAdjustments(BaseModel):
    alternative_activities: List[Dict[str, Any]] = []
    rescheduled_activities: List[Dict[str, Any]] = []
    route_optimizations: List[Dict[str, Any]] = []
