from typing import Any, Dict, List

from app.models.entities import DayPlan, Itinerary


def _prune(d: dict, keys: list) -> dict:
    return {k: d.get(k) for k in keys if d.get(k) not in (None, "", [])}


def format_day(day: DayPlan) -> Dict[str, Any]:
    out = {
        "day": day.day,
        "date": day.date.isoformat(),
        "theme": day.theme,
        "activities": [a.name for a in day.activities],
        "meals": [_prune({"type": m.type, "restaurant": m.restaurant, "cuisine": m.cuisine}, ["type", "restaurant", "cuisine"]) for m in day.meals],
        "estimated_budget": day.estimated_budget,
    }
    if day.notes:
        out["notes"] = day.notes
    return out


def format_itinerary_summary(itinerary: Itinerary) -> Dict[str, Any]:
    """Compact view of an itinerary for API responses and logs."""
    locations = list(itinerary.iter_locations())
    resolved = sum(1 for loc in locations if loc.is_resolved)

    days: List[Dict[str, Any]] = [format_day(d) for d in itinerary.days]
    return {
        "id": itinerary.id,
        "destination": itinerary.destination,
        "duration": itinerary.duration,
        "overview": itinerary.overview,
        "days": days,
        "activity_count": sum(len(d.activities) for d in itinerary.days),
        "meal_count": sum(len(d.meals) for d in itinerary.days),
        "accommodations": [a.name for a in itinerary.accommodations],
        "total_budget": itinerary.total_budget,
        "currency": itinerary.currency,
        "locations": {"total": len(locations), "resolved": resolved},
    }
