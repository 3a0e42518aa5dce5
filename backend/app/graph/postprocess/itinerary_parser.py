"""
Turns the model's free-text reply into an Itinerary.

The reply may be plain JSON or JSON wrapped in prose and code fences. Every
field is treated as optional; only an undecodable payload is fatal.
"""

import json
import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Any, List, Optional

from app.integrations.exceptions import MalformedPayload
from app.models.entities import (
    Accommodation,
    Activity,
    CostBreakdown,
    DayPlan,
    Itinerary,
    Location,
    Meal,
    Recommendation,
    Transportation,
)
from app.models.trip_preferences import TripConstraints

logger = logging.getLogger(__name__)

JSON_FENCE = re.compile(r"```\s*json\s*\n?(.*?)```", re.IGNORECASE | re.DOTALL)
ANY_FENCE = re.compile(r"```[a-zA-Z]*\s*\n?(.*?)```", re.DOTALL)

COST_CATEGORIES = ("accommodation", "transport", "activities", "meals", "miscellaneous")


def extract_json_payload(text: str) -> str:
    """Return the contents of a ```json fence, else any fence, else the whole text."""
    if not text:
        return ""
    match = JSON_FENCE.search(text) or ANY_FENCE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _decode(text: str) -> Any:
    payload = extract_json_payload(text)
    try:
        return json.loads(payload)
    except json.JSONDecodeError as first_error:
        # unfenced JSON with prose around it
        start, end = payload.find("{"), payload.rfind("}")
        if start != -1 and end > start:
            try:
                return json.loads(payload[start : end + 1])
            except json.JSONDecodeError:
                pass
        raise MalformedPayload(f"Model response is not valid JSON: {first_error.msg}", excerpt=payload) from first_error


def to_float(val: Any, default: float = 0.0) -> float:
    if val is None or isinstance(val, bool):
        return default
    if isinstance(val, (int, float)):
        number = float(val)
    elif isinstance(val, str):
        cleaned = re.sub(r"[^\d.\-]", "", val)
        try:
            number = float(cleaned)
        except ValueError:
            return default
    else:
        return default
    # json.loads yields nan or inf for non-finite literals
    return number if math.isfinite(number) else default


def to_str(val: Any, default: str = "") -> str:
    if val is None:
        return default
    if isinstance(val, str):
        return val.strip()
    if isinstance(val, (int, float, bool)):
        return str(val)
    if isinstance(val, dict):
        for k in ("name", "title", "text", "address"):
            v = val.get(k)
            if isinstance(v, str):
                return v.strip()
    return default


def to_str_list(val: Any) -> List[str]:
    if isinstance(val, str):
        return [val.strip()] if val.strip() else []
    if isinstance(val, list):
        return [s for s in (to_str(it) for it in val) if s]
    return []


def _as_list(val: Any) -> list:
    return val if isinstance(val, list) else []


def _as_dict(val: Any) -> dict:
    return val if isinstance(val, dict) else {}


def _to_datetime(val: Any) -> Optional[datetime]:
    if not isinstance(val, str) or not val.strip():
        return None
    try:
        return datetime.fromisoformat(val.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_location(raw: Any, fallback_name: str = "") -> Location:
    """Location with the unknown-coordinates sentinel; filled in later by enrichment."""
    if isinstance(raw, str):
        return Location(name=raw.strip() or fallback_name, address=raw.strip())
    raw = _as_dict(raw)
    return Location(
        name=to_str(raw.get("name")) or fallback_name,
        address=to_str(raw.get("address")),
    )


def parse_activity(raw: dict) -> Activity:
    name = to_str(raw.get("name") or raw.get("title"), "Activity")
    return Activity(
        name=name,
        description=to_str(raw.get("description")),
        category=to_str(raw.get("category")).lower(),
        location=parse_location(raw.get("location"), name),
        duration=to_float(raw.get("duration")),
        cost=to_float(raw.get("cost")),
        rating=to_float(raw.get("rating")),
        opening_hours=to_str(raw.get("openingHours")) or None,
        best_time_to_visit=to_str(raw.get("bestTimeToVisit")) or None,
    )


def parse_meal(raw: dict) -> Meal:
    restaurant = to_str(raw.get("restaurant"))
    rating = raw.get("rating")
    return Meal(
        type=to_str(raw.get("type"), "meal").lower() or "meal",
        restaurant=restaurant,
        cuisine=to_str(raw.get("cuisine")),
        location=parse_location(raw.get("location"), restaurant),
        estimated_cost=to_float(raw.get("estimatedCost", raw.get("cost"))),
        rating=to_float(rating) if rating is not None else None,
        specialties=to_str_list(raw.get("specialties")),
    )


def parse_accommodation(raw: dict, constraints: TripConstraints) -> Accommodation:
    name = to_str(raw.get("name"), "Accommodation")
    return Accommodation(
        name=name,
        type=to_str(raw.get("type"), "hotel").lower() or "hotel",
        location=parse_location(raw.get("location"), name),
        rating=to_float(raw.get("rating")),
        price_per_night=to_float(raw.get("pricePerNight")),
        amenities=to_str_list(raw.get("amenities")),
        check_in=constraints.start_date,
        check_out=constraints.end_date,
    )


def parse_transportation(raw: dict) -> Transportation:
    return Transportation(
        type=to_str(raw.get("type")).lower(),
        from_location=parse_location(raw.get("from")),
        to_location=parse_location(raw.get("to")),
        departure_time=_to_datetime(raw.get("departureTime")),
        arrival_time=_to_datetime(raw.get("arrivalTime")),
        cost=to_float(raw.get("cost")),
        provider=to_str(raw.get("provider") or raw.get("carrier")),
    )


def parse_recommendation(raw: dict) -> Recommendation:
    location = raw.get("location")
    return Recommendation(
        type=to_str(raw.get("type"), "activity").lower() or "activity",
        title=to_str(raw.get("title")),
        description=to_str(raw.get("description")),
        location=parse_location(location) if location else None,
        estimated_cost=to_float(raw.get("estimatedCost")),
        rating=to_float(raw.get("rating")),
        reasons=to_str_list(raw.get("reasons")),
    )


def parse_day_plans(
    days: List[Any],
    start_date: date,
    accommodation_id: Optional[str] = None,
    logs: Optional[list] = None,
) -> List[DayPlan]:
    """Non-object entries are skipped; dates keep the entry's position in the reply."""
    plans = []
    for index, day in enumerate(days):
        if not isinstance(day, dict):
            logger.warning(f"Skipping day entry {index + 1}: expected an object, got {type(day).__name__}")
            if logs is not None:
                logs.append({
                    "stage": "Parse",
                    "level": "warning",
                    "message": f"Skipped day entry {index + 1}: not an object",
                    "entry": index + 1,
                })
            continue
        plans.append(
            DayPlan(
                day=int(to_float(day.get("day"), index + 1)) or index + 1,
                date=start_date + timedelta(days=index),
                theme=to_str(day.get("theme")) or f"Day {index + 1}",
                activities=[parse_activity(a) for a in _as_list(day.get("activities")) if isinstance(a, dict)],
                meals=[parse_meal(m) for m in _as_list(day.get("meals")) if isinstance(m, dict)],
                accommodation_id=accommodation_id,
                estimated_budget=to_float(day.get("estimatedBudget")),
                notes=to_str(day.get("notes")) or None,
            )
        )
    return plans


def parse_cost_breakdown(raw: Any, currency: str, logs: Optional[list] = None) -> CostBreakdown:
    """Category amounts from the payload; the total is always their sum."""
    raw = _as_dict(raw)
    breakdown = CostBreakdown(currency=currency, **{k: to_float(raw.get(k)) for k in COST_CATEGORIES})
    computed = breakdown.category_sum()

    if raw.get("total") is not None:
        reported = to_float(raw.get("total"))
        if abs(reported - computed) > 0.01:
            logger.warning(f"Cost total {reported} does not match category sum {computed}; using the sum")
            if logs is not None:
                logs.append({
                    "stage": "Parse",
                    "level": "warning",
                    "message": f"Reported total {reported} replaced by category sum {computed}",
                    "reported_total": reported,
                    "computed_total": computed,
                })
    breakdown.total = computed
    return breakdown


def parse_itinerary_response(
    text: str,
    constraints: TripConstraints,
    duration: int,
    logs: Optional[list] = None,
) -> Itinerary:
    """
    Map the model reply to an Itinerary.

    Args:
        text: Raw text returned by the generative-text provider.
        constraints: The originating request.
        duration: Day count computed from the request's date range.
        logs: Optional run log; warnings are appended as dicts.

    Raises:
        MalformedPayload: if the reply cannot be decoded into the expected structure.
    """
    data = _decode(text)
    if not isinstance(data, dict):
        raise MalformedPayload("Model response JSON is not an object", excerpt=str(data))

    raw_days = data.get("days", [])
    if raw_days is None:
        raw_days = []
    if not isinstance(raw_days, list):
        raise MalformedPayload("'days' must be a list", excerpt=str(raw_days))

    currency = constraints.budget.currency
    accommodations = [parse_accommodation(a, constraints) for a in _as_list(data.get("accommodations")) if isinstance(a, dict)]
    days = parse_day_plans(raw_days, constraints.start_date, accommodations[0].id if accommodations else None, logs)
    cost_breakdown = parse_cost_breakdown(data.get("costBreakdown"), currency, logs)

    if len(days) != duration:
        logger.warning(f"Model returned {len(days)} day(s) for a {duration}-day trip")
        if logs is not None:
            logs.append({
                "stage": "Parse",
                "level": "warning",
                "message": f"Model returned {len(days)} day(s) for a {duration}-day trip",
                "requested_days": duration,
                "returned_days": len(days),
            })

    itinerary = Itinerary(
        trip_request_id=constraints.id,
        user_id=constraints.user_id,
        destination=constraints.destination,
        duration=duration,
        total_budget=cost_breakdown.total,
        currency=currency,
        overview=to_str(data.get("overview")),
        days=days,
        accommodations=accommodations,
        transport=[parse_transportation(t) for t in _as_list(data.get("transport")) if isinstance(t, dict)],
        cost_breakdown=cost_breakdown,
        recommendations=[parse_recommendation(r) for r in _as_list(data.get("recommendations")) if isinstance(r, dict)],
    )

    logger.info(f"Parsed itinerary {itinerary.id}: {len(days)} day(s), {len(accommodations)} accommodation(s)")
    if logs is not None:
        logs.append({"stage": "Parse", "message": f"Parsed {len(days)} day plan(s)", "days": len(days)})
    return itinerary
