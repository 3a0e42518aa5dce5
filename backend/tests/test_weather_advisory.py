from datetime import date
from unittest.mock import MagicMock

import pytest

from app.graph.postprocess.weather_advisory import check_weather_updates, evaluate, generate_smart_adjustments
from app.models.entities import Activity, DayPlan, Itinerary, Location
from app.models.weather import WeatherObservation

DAY = date(2025, 3, 10)


def _day(*categories, number=1, on=DAY) -> DayPlan:
    return DayPlan(
        day=number,
        date=on,
        activities=[Activity(name=f"{c} stop", category=c, cost=1000, duration=2) for c in categories],
    )


def _weather(precipitation=0.0, temp_min=18.0, temp_max=25.0, on=DAY) -> WeatherObservation:
    return WeatherObservation(
        location="Jaipur", date=on, condition="Rain", temp_min=temp_min, temp_max=temp_max, precipitation=precipitation
    )


def test_heavy_rain_on_outdoor_day_is_high_impact():
    day = _day("nature", "heritage")
    advisory = evaluate(day, _weather(precipitation=8), itinerary_id="it-1")

    assert advisory.impact == "high"
    assert advisory.type == "weather"
    assert advisory.itinerary_id == "it-1"
    assert advisory.day == 1
    assert "Consider indoor alternatives" in advisory.suggested_actions
    assert advisory.affected_items == [day.activities[0].id]
    assert advisory.id == "weather_it-1_1_2025-03-10"
    assert not advisory.acknowledged


def test_dry_mild_day_has_no_advisory():
    assert evaluate(_day("nature"), _weather(precipitation=0, temp_max=25)) is None


def test_no_advisory_without_outdoor_activities():
    assert evaluate(_day("heritage", "culinary"), _weather(precipitation=30, temp_max=45)) is None


def test_light_rain_is_medium():
    advisory = evaluate(_day("photography"), _weather(precipitation=3))
    assert advisory.impact == "medium"
    assert advisory.suggested_actions == ["Bring umbrella or light rain jacket"]


def test_heat_keeps_high_rain_impact_and_adds_actions():
    advisory = evaluate(_day("adventure"), _weather(precipitation=6, temp_max=42))
    assert advisory.impact == "high"
    assert "Heavy Rain" in advisory.title
    assert "Stay hydrated" in advisory.suggested_actions
    assert "Consider indoor alternatives" in advisory.suggested_actions


def test_heat_alone_is_medium():
    advisory = evaluate(_day("spiritual"), _weather(temp_max=41))
    assert advisory.impact == "medium"
    assert advisory.title.startswith("High Temperature Alert")


def test_cold_alone_is_medium():
    advisory = evaluate(_day("nature"), _weather(temp_min=2, temp_max=10))
    assert advisory.impact == "medium"
    assert "Wear warm clothing" in advisory.suggested_actions


def test_rain_threshold_is_exclusive():
    assert evaluate(_day("nature"), _weather(precipitation=5.0)).impact == "medium"
    assert evaluate(_day("nature"), _weather(precipitation=1.0)) is None


def test_heat_threshold_is_exclusive():
    assert evaluate(_day("nature"), _weather(temp_max=40.0)) is None


def _itinerary(*days) -> Itinerary:
    return Itinerary(trip_request_id="req", destination="Jaipur", duration=len(days), days=list(days))


@pytest.mark.asyncio
async def test_check_weather_updates_matches_days_by_date():
    wet = _day("nature", number=1, on=date(2025, 3, 10))
    empty = DayPlan(day=2, date=date(2025, 3, 11))
    dry = _day("nature", number=3, on=date(2025, 3, 12))
    itinerary = _itinerary(wet, empty, dry)

    weather = MagicMock()
    weather.get_forecast.return_value = [
        _weather(precipitation=9, on=date(2025, 3, 10)),
        _weather(precipitation=12, on=date(2025, 3, 11)),
        _weather(precipitation=0, on=date(2025, 3, 12)),
    ]

    advisories = await check_weather_updates(itinerary, weather)

    weather.get_forecast.assert_called_once_with("Jaipur")
    assert [a.day for a in advisories] == [1]
    assert advisories[0].itinerary_id == itinerary.id


def test_advisory_id_is_stable_across_checks():
    day = _day("adventure")
    first = evaluate(day, _weather(precipitation=3), itinerary_id="it-1")
    second = evaluate(day, _weather(precipitation=9), itinerary_id="it-1")

    assert first.id == second.id
    assert first.impact != second.impact
    assert evaluate(_day("adventure", number=2), _weather(precipitation=3), itinerary_id="it-1").id != first.id


def test_advisory_without_itinerary_gets_random_id():
    a = evaluate(_day("nature"), _weather(precipitation=8))
    b = evaluate(_day("nature"), _weather(precipitation=8))
    assert a.id.startswith("weather_")
    assert a.id != b.id


@pytest.mark.asyncio
async def test_check_weather_updates_without_forecast():
    weather = MagicMock()
    weather.get_forecast.return_value = []
    assert await check_weather_updates(_itinerary(_day("nature")), weather) == []


def test_smart_adjustments_offer_cheaper_indoor_alternatives():
    day = _day("nature")
    day.activities[0].location = Location(name="Nahargarh")
    itinerary = _itinerary(day)
    high = evaluate(day, _weather(precipitation=10), itinerary_id=itinerary.id)
    medium = evaluate(day, _weather(precipitation=2), itinerary_id=itinerary.id)

    adjustments = generate_smart_adjustments(itinerary, [high, medium])

    assert len(adjustments.alternative_activities) == 1
    alt = adjustments.alternative_activities[0]
    assert alt["original_activity_id"] == day.activities[0].id
    assert alt["alternative"]["cost"] == 800
    assert alt["alternative"]["location"]["name"] == "Nahargarh"
    assert adjustments.rescheduled_activities == []
