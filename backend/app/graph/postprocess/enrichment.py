"""
Geo-enrichment pass over a parsed itinerary.

Each activity, meal and accommodation location is looked up independently
(bounded fan-out through worker threads, since googlemaps is synchronous).
Successful lookups overwrite coordinates and place id in place; failures
leave the location untouched and are reported, never raised.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from app.integrations.google_places_client import GooglePlacesClient
from app.models.entities import Itinerary, Location, PlaceDetails, utcnow

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5


@dataclass
class LookupResult:
    location: Location
    details: Optional[PlaceDetails] = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.details is not None


@dataclass
class EnrichmentReport:
    total: int = 0
    resolved: int = 0
    skipped: int = 0
    unresolved: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.unresolved)

    @classmethod
    def from_dict(cls, data: dict) -> "EnrichmentReport":
        return cls(
            total=data.get("total", 0),
            resolved=data.get("resolved", 0),
            skipped=data.get("skipped", 0),
            unresolved=list(data.get("unresolved") or []),
        )

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "resolved": self.resolved,
            "skipped": self.skipped,
            "unresolved": list(self.unresolved),
            "degraded": self.degraded,
        }


def apply_place_details(location: Location, details: PlaceDetails) -> None:
    """Fill coordinates and place id; name and address are kept as written."""
    location.coordinates = details.coordinates.model_copy()
    location.place_id = details.place_id


async def _lookup(places: GooglePlacesClient, location: Location, semaphore: asyncio.Semaphore) -> LookupResult:
    query = location.lookup_query
    if not query:
        return LookupResult(location, error="empty query")
    async with semaphore:
        details = await asyncio.to_thread(places.resolve, query)
    if details is None:
        return LookupResult(location, error="not found")
    if details.coordinates.is_unknown:
        return LookupResult(location, error="no coordinates")
    return LookupResult(location, details=details)


async def enrich_itinerary(
    itinerary: Itinerary,
    places: GooglePlacesClient,
    concurrency: int = DEFAULT_CONCURRENCY,
    skip_resolved: bool = True,
    logs: Optional[list] = None,
) -> EnrichmentReport:
    """
    Resolve every enrichable location of the itinerary.

    Running this twice is safe: already-resolved locations are skipped (or,
    with skip_resolved=False, overwritten with equivalent data).
    """
    report = EnrichmentReport()
    targets: List[Location] = []
    for location in itinerary.iter_locations():
        report.total += 1
        if skip_resolved and location.is_resolved:
            report.skipped += 1
            continue
        targets.append(location)

    semaphore = asyncio.Semaphore(max(1, concurrency))
    outcomes = await asyncio.gather(
        *(_lookup(places, location, semaphore) for location in targets),
        return_exceptions=True,
    )

    for location, outcome in zip(targets, outcomes):
        if isinstance(outcome, Exception):
            outcome = LookupResult(location, error=str(outcome) or type(outcome).__name__)
        if outcome.found:
            apply_place_details(location, outcome.details)
            report.resolved += 1
            continue

        label = location.name or location.address or "<unnamed>"
        report.unresolved.append(label)
        logger.warning(f"Failed to get place details for {label}: {outcome.error}")
        if logs is not None:
            logs.append({"stage": "Enrichment", "level": "warning", "message": f"Could not resolve {label}", "error": outcome.error})

    if report.resolved:
        itinerary.updated_at = utcnow()

    logger.info(
        f"Enriched itinerary {itinerary.id}: {report.resolved} resolved, "
        f"{report.skipped} skipped, {len(report.unresolved)} unresolved of {report.total}"
    )
    if logs is not None:
        logs.append({"stage": "Enrichment", "message": "Location enrichment complete", **report.as_dict()})
    return report
