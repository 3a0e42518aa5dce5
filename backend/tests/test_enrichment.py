import json

import pytest

from app.graph.postprocess.enrichment import EnrichmentReport, enrich_itinerary
from app.graph.postprocess.itinerary_parser import parse_itinerary_response
from app.models.entities import PlaceDetails
from tests.fakes import FakePlaces


@pytest.fixture
def itinerary(reply_text, constraints):
    return parse_itinerary_response(reply_text, constraints, constraints.duration_days)


@pytest.mark.asyncio
async def test_resolves_every_known_location(itinerary, known_places):
    before = itinerary.updated_at
    logs = []
    report = await enrich_itinerary(itinerary, FakePlaces(known_places), logs=logs)

    assert report.total == 4
    assert report.resolved == 4
    assert not report.degraded
    assert itinerary.days[0].activities[0].location.place_id == "amber"
    assert itinerary.days[0].activities[0].location.coordinates.latitude == 26.9855
    assert itinerary.accommodations[0].location.place_id == "pearl"
    # names and addresses stay as the model wrote them
    assert itinerary.days[0].meals[0].location.name == "LMB"
    assert itinerary.updated_at >= before
    assert logs[-1]["stage"] == "Enrichment"
    assert logs[-1]["resolved"] == 4


@pytest.mark.asyncio
async def test_not_found_keeps_sentinel_and_is_reported(itinerary, known_places):
    del known_places["Krishna Nagar, Jaipur"]
    logs = []
    report = await enrich_itinerary(itinerary, FakePlaces(known_places), logs=logs)

    trek = itinerary.days[1].activities[0].location
    assert trek.coordinates.is_unknown
    assert trek.place_id is None
    assert report.resolved == 3
    assert report.unresolved == ["Nahargarh Fort"]
    assert report.degraded
    assert any(e.get("level") == "warning" and e.get("error") == "not found" for e in logs)


@pytest.mark.asyncio
async def test_enrichment_is_idempotent(itinerary, known_places):
    places = FakePlaces(known_places)
    await enrich_itinerary(itinerary, places)
    first = itinerary.model_dump(exclude={"updated_at"})
    calls = len(places.queries)

    report = await enrich_itinerary(itinerary, places)

    assert itinerary.model_dump(exclude={"updated_at"}) == first
    assert report.skipped == 4
    assert len(places.queries) == calls


@pytest.mark.asyncio
async def test_forced_refresh_gives_same_result(itinerary, known_places):
    places = FakePlaces(known_places)
    await enrich_itinerary(itinerary, places)
    first = itinerary.model_dump(exclude={"updated_at"})

    report = await enrich_itinerary(itinerary, places, skip_resolved=False)

    assert report.resolved == 4
    assert itinerary.model_dump(exclude={"updated_at"}) == first


@pytest.mark.asyncio
async def test_lookup_exception_is_isolated(itinerary, known_places):
    class FlakyPlaces(FakePlaces):
        def resolve(self, query):
            if query == "Johari Bazar, Jaipur":
                raise RuntimeError("socket closed")
            return super().resolve(query)

    report = await enrich_itinerary(itinerary, FlakyPlaces(known_places))

    assert report.resolved == 3
    assert report.unresolved == ["LMB"]
    assert itinerary.days[0].meals[0].location.coordinates.is_unknown


@pytest.mark.asyncio
async def test_unresolved_when_places_returns_no_coordinates(itinerary, known_places):
    known_places["Devisinghpura, Amer, Jaipur"] = PlaceDetails(place_id="amber")
    report = await enrich_itinerary(itinerary, FakePlaces(known_places))

    assert "Amber Fort" in report.unresolved
    assert itinerary.days[0].activities[0].location.place_id is None


def test_report_round_trips_through_dict():
    report = EnrichmentReport(total=3, resolved=2, unresolved=["X"])
    data = json.loads(json.dumps(report.as_dict()))
    assert EnrichmentReport.from_dict(data) == report
    assert data["degraded"] is True
