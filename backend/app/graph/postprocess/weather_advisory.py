"""
Weather impact rules for itinerary days.

evaluate() is a pure classification: a day's outdoor activities plus one
weather observation give either an advisory or None. Rain and temperature
are judged separately (first matching rule per factor) and the advisory
takes the highest severity seen.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from app.integrations.weather_client import WeatherClient
from app.models.entities import Activity, DayPlan, Itinerary
from app.models.weather import SmartAdjustments, WeatherAdvisory, WeatherObservation

logger = logging.getLogger(__name__)

OUTDOOR_CATEGORIES = frozenset({"adventure", "nature", "photography", "spiritual"})

HEAVY_RAIN_MM = 5.0
LIGHT_RAIN_MM = 1.0
HOT_MAX_C = 40.0
COLD_MIN_C = 5.0

INDOOR_ALTERNATIVE_COST_FACTOR = 0.8

_RANK = {"low": 0, "medium": 1, "high": 2}


def is_outdoor_activity(activity: Activity) -> bool:
    return (activity.category or "").lower() in OUTDOOR_CATEGORIES


def advisory_id(itinerary_id: str, day: DayPlan, observation: WeatherObservation) -> str:
    """Same itinerary, day and forecast date always give the same id, so re-checks overwrite."""
    return f"weather_{itinerary_id}_{day.day}_{observation.date.isoformat()}"


def evaluate(day: DayPlan, observation: WeatherObservation, itinerary_id: str = "") -> Optional[WeatherAdvisory]:
    outdoor = [a for a in day.activities if is_outdoor_activity(a)]
    if not outdoor:
        return None

    impact = "low"
    title = ""
    description = ""
    actions: List[str] = []

    # rain
    if observation.precipitation > HEAVY_RAIN_MM:
        impact = "high"
        title = f"Heavy Rain Expected on Day {day.day}"
        description = (
            f"Heavy rainfall ({observation.precipitation}mm) expected in {observation.location}. "
            "This may affect outdoor activities."
        )
        actions += [
            "Consider indoor alternatives",
            "Bring rain gear if proceeding with outdoor activities",
            "Check if activities offer covered areas",
        ]
    elif observation.precipitation > LIGHT_RAIN_MM:
        impact = "medium"
        title = f"Light Rain Expected on Day {day.day}"
        description = f"Light rain expected in {observation.location}. Outdoor activities may be affected."
        actions.append("Bring umbrella or light rain jacket")

    # temperature
    if observation.temp_max > HOT_MAX_C:
        impact = max(impact, "medium", key=_RANK.get)
        title = title or f"High Temperature Alert - Day {day.day}"
        description = description or (
            f"Very hot weather expected ({observation.temp_max}°C). Take precautions for outdoor activities."
        )
        actions += [
            "Stay hydrated",
            "Avoid outdoor activities during peak hours (12-4 PM)",
            "Wear sun protection",
        ]
    elif observation.temp_min < COLD_MIN_C:
        impact = max(impact, "medium", key=_RANK.get)
        title = title or f"Cold Weather Alert - Day {day.day}"
        description = description or (
            f"Cold weather expected ({observation.temp_min}°C). Dress warmly for outdoor activities."
        )
        actions += ["Wear warm clothing", "Check if venues have heating"]

    if impact == "low":
        return None

    extra = {"id": advisory_id(itinerary_id, day, observation)} if itinerary_id else {}
    return WeatherAdvisory(
        **extra,
        itinerary_id=itinerary_id,
        day=day.day,
        title=title,
        description=description,
        impact=impact,
        suggested_actions=actions,
        affected_items=[a.id for a in outdoor],
    )


async def check_weather_updates(itinerary: Itinerary, weather: WeatherClient) -> List[WeatherAdvisory]:
    """Evaluate every day with activities against the destination forecast."""
    forecast = await asyncio.to_thread(weather.get_forecast, itinerary.destination)
    if not forecast:
        return []

    by_date: Dict = {obs.date: obs for obs in forecast}
    advisories = []
    for day in itinerary.days:
        if not day.activities:
            continue
        observation = by_date.get(day.date)
        if observation is None:
            continue
        advisory = evaluate(day, observation, itinerary_id=itinerary.id)
        if advisory:
            advisories.append(advisory)

    logger.info(f"Weather check for itinerary {itinerary.id}: {len(advisories)} advisory(ies)")
    return advisories


def suggest_indoor_alternatives(itinerary: Itinerary, affected_ids: List[str]) -> List[dict]:
    alternatives = []
    for activity_id in affected_ids:
        activity = itinerary.find_activity(activity_id)
        if activity is None:
            continue
        alternatives.append({
            "original_activity_id": activity.id,
            "alternative": {
                "name": f"Indoor alternative to {activity.name}",
                "description": "Museum or cultural center visit",
                "location": activity.location.model_dump(mode="json"),
                "cost": round(activity.cost * INDOOR_ALTERNATIVE_COST_FACTOR, 2),
                "duration": activity.duration,
            },
        })
    return alternatives


def generate_smart_adjustments(itinerary: Itinerary, advisories: List[WeatherAdvisory]) -> SmartAdjustments:
    adjustments = SmartAdjustments()
    for advisory in advisories:
        if advisory.type == "weather" and advisory.impact == "high":
            adjustments.alternative_activities.extend(
                suggest_indoor_alternatives(itinerary, advisory.affected_items)
            )
    return adjustments
