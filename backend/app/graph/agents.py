import asyncio
import json
import logging
from typing import Any, Dict, Optional

from app.graph.postprocess.enrichment import enrich_itinerary
from app.graph.postprocess.itinerary_parser import parse_itinerary_response
from app.graph.state import GenerationState
from app.integrations.google_places_client import GooglePlacesClient
from app.integrations.openai_client import OpenAITextProvider
from app.models.entities import PlaceDetails
from app.models.trip_preferences import TripConstraints

logger = logging.getLogger(__name__)

ITINERARY_SCHEMA: Dict[str, Any] = {
    "overview": "Brief trip overview",
    "days": [
        {
            "day": 1,
            "theme": "Day theme",
            "activities": [
                {
                    "name": "Activity name",
                    "description": "Detailed description",
                    "category": "heritage/nightlife/adventure/etc",
                    "location": {"name": "Location name", "address": "Full address"},
                    "duration": 2.5,
                    "cost": 500,
                    "rating": 4.5,
                    "bestTimeToVisit": "Morning/Afternoon/Evening",
                    "openingHours": "9 AM - 6 PM",
                }
            ],
            "meals": [
                {
                    "type": "breakfast/lunch/dinner",
                    "restaurant": "Restaurant name",
                    "cuisine": "Indian/Local/etc",
                    "location": {"name": "Restaurant name", "address": "Full address"},
                    "estimatedCost": 300,
                    "rating": 4.2,
                    "specialties": ["Dish 1", "Dish 2"],
                }
            ],
            "estimatedBudget": 2000,
        }
    ],
    "accommodations": [
        {
            "name": "Hotel name",
            "type": "hotel/hostel/resort/homestay",
            "location": {"name": "Hotel name", "address": "Full address"},
            "rating": 4.3,
            "pricePerNight": 3000,
            "amenities": ["WiFi", "AC", "Breakfast"],
        }
    ],
    "transport": [
        {
            "type": "flight/train/bus/taxi",
            "from": {"name": "Origin", "address": "Origin address"},
            "to": {"name": "Destination", "address": "Destination address"},
            "cost": 5000,
            "provider": "Provider name",
        }
    ],
    "costBreakdown": {
        "accommodation": 15000,
        "transport": 8000,
        "activities": 12000,
        "meals": 9000,
        "miscellaneous": 3000,
        "total": 47000,
    },
    "recommendations": [
        {
            "type": "activity/restaurant/accommodation",
            "title": "Recommendation title",
            "description": "Why this is recommended",
            "estimatedCost": 800,
            "rating": 4.4,
            "reasons": ["Reason 1", "Reason 2"],
        }
    ],
}


def _destination_context(info: Optional[PlaceDetails]) -> str:
    if info is None:
        return "Not available"
    parts = [info.name or "", info.address or ""]
    if not info.coordinates.is_unknown:
        parts.append(f"({info.coordinates.latitude:.4f}, {info.coordinates.longitude:.4f})")
    if info.rating:
        parts.append(f"rated {info.rating}")
    return " ".join(p for p in parts if p) or "Not available"


def build_itinerary_prompt(constraints: TripConstraints, duration: int, destination_info: Optional[PlaceDetails] = None) -> str:
    """Deterministic prompt for one request; the same inputs always give the same text."""
    budget = constraints.budget
    interests = ", ".join(constraints.interests) or "General sightseeing"
    budget_range = f"{budget.currency} {budget.min:.0f} - {budget.currency} {budget.max:.0f}"

    return f"""
You are an expert travel planner specializing in India tourism. Generate a detailed, personalized {duration}-day itinerary for {constraints.destination}.

TRIP DETAILS:
- Destination: {constraints.destination}
- Dates: {constraints.start_date.isoformat()} to {constraints.end_date.isoformat()}
- Duration: {duration} days
- Budget: {budget_range}
- Group Size: {constraints.group_size} people
- Travel Style: {constraints.travel_style}
- Interests: {interests}
- Accommodation Type: {constraints.accommodation_type}
- Transport Preference: {constraints.transport_preference}
- Special Requirements: {constraints.special_requirements or 'None'}

DESTINATION CONTEXT:
{_destination_context(destination_info)}

REQUIREMENTS:
1. Create exactly {duration} day entries with specific activities, timings, and locations
2. Include accommodation recommendations with pricing
3. Suggest transportation options between locations
4. Recommend authentic local restaurants and cuisines
5. Include cultural experiences, heritage sites, and local attractions
6. Provide cost estimates in {budget.currency} for each activity and meal
7. Consider the interests: {interests}
8. Stay within the budget range of {budget_range}

FORMAT YOUR RESPONSE AS JSON:
{json.dumps(ITINERARY_SCHEMA, indent=2)}

Focus on authentic local experiences, culture, and hidden gems. Ensure all recommendations are realistic and accessible and include specific addresses where possible.
""".strip()


async def destination_context(state: GenerationState, places: GooglePlacesClient) -> dict:
    destination = state.constraints.destination
    try:
        info = await asyncio.to_thread(places.get_destination_info, destination)
    except Exception as e:
        # context is optional; the prompt is built without it
        logger.warning(f"Destination lookup failed for {destination}: {e}")
        info = None

    message = f"Resolved destination {destination}" if info else f"No destination context for {destination}"
    return {"destination_info": info, "logs": [{"stage": "Destination", "message": message}]}


async def compose_prompt(state: GenerationState) -> dict:
    prompt = build_itinerary_prompt(state.constraints, state.duration, state.destination_info)
    return {
        "prompt": prompt,
        "logs": [{"stage": "Prompt", "message": f"Built prompt for a {state.duration}-day trip", "chars": len(prompt)}],
    }


async def call_model(state: GenerationState, provider: OpenAITextProvider) -> dict:
    # PromptProviderError propagates; there is no retry here
    raw_text = await asyncio.to_thread(provider.complete, state.prompt)
    return {
        "raw_text": raw_text,
        "logs": [{"stage": "Model", "message": "Received model response", "chars": len(raw_text)}],
    }


async def parse_response(state: GenerationState) -> dict:
    logs: list = []
    itinerary = parse_itinerary_response(state.raw_text, state.constraints, state.duration, logs=logs)
    return {"itinerary": itinerary, "logs": logs}


async def enrich_locations(state: GenerationState, places: GooglePlacesClient, concurrency: int) -> dict:
    logs: list = []
    itinerary = state.itinerary.model_copy(deep=True)
    report = await enrich_itinerary(itinerary, places, concurrency=concurrency, logs=logs)
    return {"itinerary": itinerary, "enrichment": report.as_dict(), "logs": logs}
