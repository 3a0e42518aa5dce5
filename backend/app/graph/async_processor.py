"""
Async entry point for itinerary generation.

ItineraryGenerator wraps the compiled LangGraph pipeline and turns its
failures into a single GenerationFailure. It has no side effects of its own:
nothing is persisted here.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from app.config import Settings
from app.graph.build_graph import build_generation_graph
from app.graph.postprocess.enrichment import EnrichmentReport
from app.graph.state import GenerationState
from app.integrations.exceptions import EnrichmentDegraded, GenerationFailure, MalformedPayload, PromptProviderError
from app.integrations.google_places_client import GooglePlacesClient
from app.integrations.openai_client import OpenAITextProvider
from app.models.entities import Itinerary
from app.models.trip_preferences import TripConstraints

logger = logging.getLogger(__name__)


@dataclass
class GenerationOutcome:
    itinerary: Itinerary
    logs: List[dict] = field(default_factory=list)
    enrichment: EnrichmentReport = field(default_factory=EnrichmentReport)

    @property
    def warnings(self) -> List[dict]:
        return [entry for entry in self.logs if entry.get("level") == "warning"]


class ItineraryGenerator:
    def __init__(self, provider: OpenAITextProvider, places: GooglePlacesClient, settings: Optional[Settings] = None):
        self.provider = provider
        self.places = places
        self.settings = settings or Settings()
        self.graph = build_generation_graph(provider, places, self.settings)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ItineraryGenerator":
        return cls(
            OpenAITextProvider.from_settings(settings),
            GooglePlacesClient.from_settings(settings),
            settings,
        )

    async def generate_with_report(self, constraints: TripConstraints) -> GenerationOutcome:
        start = time.perf_counter()
        initial = GenerationState(constraints=constraints, duration=constraints.duration_days)

        try:
            result = await self.graph.ainvoke(initial)
        except (PromptProviderError, MalformedPayload) as e:
            logger.error(f"Generation failed for request {constraints.id}: {type(e).__name__}: {e}")
            raise GenerationFailure(e) from e
        except Exception as e:
            logger.exception(f"Unexpected error generating itinerary for request {constraints.id}")
            raise GenerationFailure(e) from e

        itinerary = result["itinerary"]
        report = EnrichmentReport.from_dict(result.get("enrichment") or {})
        logs = list(result.get("logs") or [])

        if report.degraded and self.settings.strict_enrichment:
            cause = EnrichmentDegraded(report.unresolved)
            logger.error(f"Generation for request {constraints.id} rejected: {cause}")
            raise GenerationFailure(cause) from cause

        seconds = time.perf_counter() - start
        logs.append({
            "stage": "Latency",
            "message": f"Generation completed in {seconds:.2f}s",
            "seconds": round(seconds, 2),
        })
        logger.info(f"Generated itinerary {itinerary.id} for {constraints.destination} in {seconds:.2f}s")
        return GenerationOutcome(itinerary=itinerary, logs=logs, enrichment=report)

    async def generate(self, constraints: TripConstraints) -> Itinerary:
        outcome = await self.generate_with_report(constraints)
        return outcome.itinerary
