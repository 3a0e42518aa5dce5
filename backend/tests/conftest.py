# tests/conftest.py
"""Shared fixtures: request constraints, a canned model reply and fake clients."""

import json
import os
from datetime import date
from typing import Dict

import pytest

# Keep real credentials out of the test run; this must happen before app.config is imported
for _var in ("OPENAI_API_KEY", "GOOGLE_PLACES_API_KEY", "OPENWEATHER_API_KEY", "MONGODB_URI"):
    os.environ[_var] = ""

from app.models.entities import PlaceDetails  # noqa: E402
from app.models.trip_preferences import BudgetRange, TripConstraints  # noqa: E402
from tests.fakes import place  # noqa: E402


SAMPLE_PAYLOAD = {
    "overview": "Three days of forts, bazaars and Rajasthani food in Jaipur.",
    "days": [
        {
            "day": 1,
            "theme": "Royal Jaipur",
            "activities": [
                {
                    "name": "Amber Fort",
                    "description": "Hilltop fort with mirror palace",
                    "category": "heritage",
                    "location": {"name": "Amber Fort", "address": "Devisinghpura, Amer, Jaipur"},
                    "duration": 3,
                    "cost": 500,
                    "rating": 4.6,
                    "bestTimeToVisit": "Morning",
                    "openingHours": "8 AM - 5:30 PM",
                }
            ],
            "meals": [
                {
                    "type": "lunch",
                    "restaurant": "Laxmi Misthan Bhandar",
                    "cuisine": "Rajasthani",
                    "location": {"name": "LMB", "address": "Johari Bazar, Jaipur"},
                    "estimatedCost": 400,
                    "rating": 4.2,
                    "specialties": ["Ghewar", "Dal Baati"],
                }
            ],
            "estimatedBudget": 2500,
        },
        {
            "day": 2,
            "theme": "Nature trails",
            "activities": [
                {
                    "name": "Nahargarh Trek",
                    "category": "nature",
                    "location": {"name": "Nahargarh Fort", "address": "Krishna Nagar, Jaipur"},
                    "duration": 2.5,
                    "cost": 200,
                }
            ],
            "meals": [],
            "estimatedBudget": 1500,
        },
        {
            "day": 3,
            "theme": "Markets",
            "activities": [],
            "meals": [],
            "estimatedBudget": 1000,
        },
    ],
    "accommodations": [
        {
            "name": "Hotel Pearl Palace",
            "type": "hotel",
            "location": {"name": "Hotel Pearl Palace", "address": "Hari Kishan Somani Marg, Jaipur"},
            "rating": 4.5,
            "pricePerNight": 3000,
            "amenities": ["WiFi", "AC"],
        }
    ],
    "transport": [
        {
            "type": "train",
            "from": {"name": "New Delhi", "address": "New Delhi Railway Station"},
            "to": {"name": "Jaipur", "address": "Jaipur Junction"},
            "cost": 800,
            "provider": "Indian Railways",
        }
    ],
    "costBreakdown": {
        "accommodation": 9000,
        "transport": 1600,
        "activities": 700,
        "meals": 2400,
        "miscellaneous": 500,
        "total": 14200,
    },
    "recommendations": [
        {
            "type": "restaurant",
            "title": "Try Pyaaz Kachori",
            "description": "Local breakfast staple",
            "estimatedCost": 50,
            "rating": 4.7,
            "reasons": ["Iconic", "Cheap"],
        }
    ],
}


@pytest.fixture
def constraints() -> TripConstraints:
    return TripConstraints(
        user_id="user-1",
        destination="Jaipur",
        start_date=date(2025, 3, 10),
        end_date=date(2025, 3, 12),
        budget=BudgetRange(min=10000, max=20000),
        group_size=2,
        interests=["heritage", "culinary"],
    )


@pytest.fixture
def payload() -> dict:
    return json.loads(json.dumps(SAMPLE_PAYLOAD))


@pytest.fixture
def reply_text(payload) -> str:
    return "Here is your itinerary:\n```json\n" + json.dumps(payload, indent=2) + "\n```\nEnjoy the trip!"


@pytest.fixture
def known_places() -> Dict[str, PlaceDetails]:
    return {
        "Devisinghpura, Amer, Jaipur": place("amber", 26.9855, 75.8513, "Amber Fort"),
        "Johari Bazar, Jaipur": place("lmb", 26.9196, 75.8267, "LMB"),
        "Krishna Nagar, Jaipur": place("nahargarh", 26.9374, 75.8155, "Nahargarh Fort"),
        "Hari Kishan Somani Marg, Jaipur": place("pearl", 26.9260, 75.8010, "Hotel Pearl Palace"),
    }
