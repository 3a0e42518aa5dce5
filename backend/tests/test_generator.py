import json

import pytest

from app.config import Settings
from app.graph.agents import build_itinerary_prompt
from app.graph.async_processor import ItineraryGenerator
from app.integrations.exceptions import EnrichmentDegraded, GenerationFailure, MalformedPayload, PromptProviderError
from tests.fakes import FakePlaces, FakeProvider, place


def test_prompt_embeds_request_details(constraints):
    prompt = build_itinerary_prompt(constraints, 3)

    assert "3-day itinerary for Jaipur" in prompt
    assert "INR 10000 - INR 20000" in prompt
    assert "Group Size: 2 people" in prompt
    assert "Interests: heritage, culinary" in prompt
    assert "Special Requirements: None" in prompt
    assert "2025-03-10 to 2025-03-12" in prompt
    assert '"costBreakdown"' in prompt
    assert "DESTINATION CONTEXT:\nNot available" in prompt


def test_prompt_is_deterministic_and_includes_destination_context(constraints):
    info = place("jaipur", 26.9124, 75.7873, "Jaipur")
    first = build_itinerary_prompt(constraints, 3, info)

    assert first == build_itinerary_prompt(constraints, 3, info)
    assert "Jaipur (26.9124, 75.7873)" in first


@pytest.mark.asyncio
async def test_generate_runs_full_pipeline(reply_text, constraints, known_places):
    provider = FakeProvider(reply_text)
    generator = ItineraryGenerator(provider, FakePlaces(known_places), Settings())

    outcome = await generator.generate_with_report(constraints)

    itinerary = outcome.itinerary
    assert len(provider.prompts) == 1
    assert len(itinerary.days) == 3
    assert itinerary.cost_breakdown.total == 14200
    assert all(loc.is_resolved for loc in itinerary.iter_locations())
    assert outcome.enrichment.resolved == 4
    assert not outcome.warnings
    stages = [entry["stage"] for entry in outcome.logs]
    assert stages[:3] == ["Destination", "Prompt", "Model"]
    assert stages[-1] == "Latency"


@pytest.mark.asyncio
async def test_generate_returns_itinerary(reply_text, constraints):
    generator = ItineraryGenerator(FakeProvider(reply_text), FakePlaces(), Settings())
    itinerary = await generator.generate(constraints)
    assert itinerary.trip_request_id == constraints.id


@pytest.mark.asyncio
async def test_unresolved_locations_do_not_fail_by_default(reply_text, constraints):
    generator = ItineraryGenerator(FakeProvider(reply_text), FakePlaces(), Settings())

    outcome = await generator.generate_with_report(constraints)

    assert outcome.enrichment.degraded
    assert len(outcome.enrichment.unresolved) == 4
    assert all(loc.coordinates.is_unknown for loc in outcome.itinerary.iter_locations())
    assert len(outcome.warnings) == 4


@pytest.mark.asyncio
async def test_strict_enrichment_turns_degradation_into_failure(reply_text, constraints):
    generator = ItineraryGenerator(FakeProvider(reply_text), FakePlaces(), Settings(strict_enrichment=True))

    with pytest.raises(GenerationFailure) as exc:
        await generator.generate_with_report(constraints)
    assert isinstance(exc.value.cause, EnrichmentDegraded)
    assert exc.value.reason == "EnrichmentDegraded"


@pytest.mark.asyncio
async def test_reply_without_json_fails_generation(constraints):
    places = FakePlaces()
    generator = ItineraryGenerator(FakeProvider("Sorry, I cannot plan this trip."), places, Settings())

    with pytest.raises(GenerationFailure) as exc:
        await generator.generate(constraints)
    assert isinstance(exc.value.cause, MalformedPayload)
    assert "Could not generate itinerary" in str(exc.value)
    assert places.queries == []


@pytest.mark.asyncio
async def test_provider_error_fails_generation(constraints):
    provider = FakeProvider(error=PromptProviderError("quota exceeded"))
    generator = ItineraryGenerator(provider, FakePlaces(), Settings())

    with pytest.raises(GenerationFailure) as exc:
        await generator.generate(constraints)
    assert isinstance(exc.value.cause, PromptProviderError)
    assert len(provider.prompts) == 1


@pytest.mark.asyncio
async def test_day_count_mismatch_is_a_warning(payload, constraints):
    payload["days"] = payload["days"][:1]
    generator = ItineraryGenerator(FakeProvider(json.dumps(payload)), FakePlaces(), Settings())

    outcome = await generator.generate_with_report(constraints)

    assert len(outcome.itinerary.days) == 1
    assert outcome.itinerary.duration == 3
    assert any(w.get("requested_days") == 3 for w in outcome.warnings)


@pytest.mark.asyncio
async def test_non_finite_day_numbers_fall_back_to_position(constraints):
    generator = ItineraryGenerator(FakeProvider('{"days": [{"day": NaN}, {"day": 1e400}]}'), FakePlaces(), Settings())

    itinerary = await generator.generate(constraints)

    assert [d.day for d in itinerary.days] == [1, 2]


@pytest.mark.asyncio
async def test_unexpected_pipeline_error_fails_generation(constraints):
    provider = FakeProvider(error=RuntimeError("connection pool closed"))
    generator = ItineraryGenerator(provider, FakePlaces(), Settings())

    with pytest.raises(GenerationFailure) as exc:
        await generator.generate(constraints)
    assert isinstance(exc.value.cause, RuntimeError)
    assert exc.value.reason == "RuntimeError"
