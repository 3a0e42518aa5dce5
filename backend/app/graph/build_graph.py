from langgraph.graph import END, StateGraph

from app.config import Settings
from app.graph import agents
from app.graph.state import GenerationState
from app.integrations.google_places_client import GooglePlacesClient
from app.integrations.openai_client import OpenAITextProvider


def build_generation_graph(provider: OpenAITextProvider, places: GooglePlacesClient, settings: Settings):
    """Compile the sequential generation pipeline with its clients bound in."""

    async def destination_context(state: GenerationState) -> dict:
        return await agents.destination_context(state, places)

    async def call_model(state: GenerationState) -> dict:
        return await agents.call_model(state, provider)

    async def enrich_locations(state: GenerationState) -> dict:
        return await agents.enrich_locations(state, places, settings.enrichment_concurrency)

    g = StateGraph(GenerationState)

    g.add_node("destination_context", destination_context)
    g.add_node("compose_prompt", agents.compose_prompt)
    g.add_node("call_model", call_model)
    g.add_node("parse_response", agents.parse_response)
    g.add_node("enrich_locations", enrich_locations)

    g.set_entry_point("destination_context")
    g.add_edge("destination_context", "compose_prompt")
    g.add_edge("compose_prompt", "call_model")
    g.add_edge("call_model", "parse_response")
    g.add_edge("parse_response", "enrich_locations")
    g.add_edge("enrich_locations", END)

    return g.compile()
