import asyncio
import logging
from datetime import date
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from app.config import get_settings
from app.graph.async_processor import ItineraryGenerator
from app.graph.postprocess.weather_advisory import check_weather_updates, generate_smart_adjustments
from app.integrations.exceptions import GenerationFailure
from app.integrations.mongo_client import ItineraryStore
from app.integrations.weather_client import WeatherClient
from app.main import format_itinerary_summary
from app.models.entities import Itinerary
from app.models.trip_preferences import BudgetRange, TravelInterest, TripConstraints, UserPreferences

# Configure logging
logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="TripCraft Backend API",
    description="AI-generated trip itineraries enriched with Google Places data",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_generator() -> ItineraryGenerator:
    return ItineraryGenerator.from_settings(get_settings())


@lru_cache(maxsize=1)
def get_store() -> ItineraryStore:
    return ItineraryStore.from_settings(get_settings())


@lru_cache(maxsize=1)
def get_weather_client() -> WeatherClient:
    return WeatherClient.from_settings(get_settings())


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


class GenerateItineraryRequest(BaseModel):
    destination: str
    start_date: date
    end_date: date
    budget: BudgetRange
    group_size: int = 1
    interests: List[TravelInterest] = []
    travel_style: str = "mid-range"
    accommodation_type: str = "any"
    transport_preference: str = "any"
    special_requirements: Optional[str] = None


class GenerateItineraryResponse(BaseModel):
    itinerary: Itinerary
    summary: dict
    warnings: List[dict] = []
    enrichment: dict = {}
    logs: List[dict] = []
    success: bool = True
    message: str = "Itinerary generated successfully"


def _load_owned(store: ItineraryStore, itinerary_id: str, user_id: str) -> Itinerary:
    itinerary = store.get_itinerary(itinerary_id)
    if itinerary is None:
        raise HTTPException(status_code=404, detail="Itinerary not found")
    if itinerary.user_id != user_id:
        raise HTTPException(status_code=403, detail="Access denied")
    return itinerary


async def _mark_failed(store: ItineraryStore, request_id: str, error: str) -> None:
    try:
        await asyncio.to_thread(store.update_trip_request_status, request_id, "failed", error)
    except Exception:
        logger.exception(f"Failed to mark trip request {request_id} as failed")


@app.get("/")
def root():
    return {
        "message": "TripCraft Backend API",
        "version": "1.0.0",
        "endpoints": {
            "health": "/health",
            "generate": "/itineraries/generate",
            "itineraries": "/itineraries",
            "preferences": "/users/me/preferences",
            "docs": "/docs",
        },
    }


@app.get("/health")
def health():
    return {"status": "healthy", "service": "TripCraft Backend"}


@app.post("/itineraries/generate", response_model=GenerateItineraryResponse)
async def generate_itinerary(
    request: GenerateItineraryRequest,
    user_id: str = Depends(current_user_id),
    generator: ItineraryGenerator = Depends(get_generator),
    store: ItineraryStore = Depends(get_store),
):
    """
    Generate a day-by-day itinerary for a destination and date range.

    - **destination**: City or region to visit
    - **start_date** / **end_date**: Trip dates (YYYY-MM-DD), end on or after start
    - **budget**: `{"min", "max", "currency"}`
    - **interests**: e.g. ["heritage", "culinary"]
    """
    try:
        constraints = TripConstraints(user_id=user_id, **request.model_dump())
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors(include_url=False, include_context=False, include_input=False))

    logger.info(
        f"Generating itinerary: {constraints.destination} "
        f"({constraints.start_date} to {constraints.end_date}, {constraints.duration_days} days)"
    )
    await asyncio.to_thread(store.save_trip_request, constraints, "generating")

    try:
        outcome = await generator.generate_with_report(constraints)
    except GenerationFailure as e:
        logger.error(f"Error generating itinerary for request {constraints.id}: {e}")
        await _mark_failed(store, constraints.id, str(e))
        raise HTTPException(
            status_code=502,
            detail={"message": "Could not generate itinerary", "cause": e.reason, "error": str(e.cause)},
        )

    itinerary = outcome.itinerary
    try:
        await asyncio.to_thread(store.save_itinerary, itinerary)
        await asyncio.to_thread(store.update_trip_request_status, constraints.id, "completed")
    except Exception as e:
        logger.exception(f"Failed to persist itinerary {itinerary.id} for request {constraints.id}")
        await _mark_failed(store, constraints.id, f"Could not save itinerary: {e}")
        raise HTTPException(status_code=500, detail={"message": "Could not save itinerary", "error": str(e)})

    return GenerateItineraryResponse(
        itinerary=itinerary,
        summary=format_itinerary_summary(itinerary),
        warnings=outcome.warnings,
        enrichment=outcome.enrichment.as_dict(),
        logs=outcome.logs,
        message=f"Itinerary generated for {constraints.destination}",
    )


@app.get("/itineraries")
async def list_itineraries(user_id: str = Depends(current_user_id), store: ItineraryStore = Depends(get_store)):
    itineraries = await asyncio.to_thread(store.list_itineraries, user_id)
    return {"itineraries": [format_itinerary_summary(i) for i in itineraries], "count": len(itineraries)}


@app.get("/itineraries/{itinerary_id}")
async def get_itinerary(
    itinerary_id: str,
    user_id: str = Depends(current_user_id),
    store: ItineraryStore = Depends(get_store),
):
    itinerary = await asyncio.to_thread(_load_owned, store, itinerary_id, user_id)
    return {"itinerary": itinerary.model_dump(mode="json"), "summary": format_itinerary_summary(itinerary)}


@app.delete("/itineraries/{itinerary_id}")
async def delete_itinerary(
    itinerary_id: str,
    user_id: str = Depends(current_user_id),
    store: ItineraryStore = Depends(get_store),
):
    if not itinerary_id.strip():
        raise HTTPException(status_code=400, detail="Itinerary ID is required")
    await asyncio.to_thread(_load_owned, store, itinerary_id, user_id)
    if not await asyncio.to_thread(store.delete_itinerary, itinerary_id):
        raise HTTPException(status_code=404, detail="Itinerary not found")
    return {"success": True, "itinerary_id": itinerary_id}


@app.post("/itineraries/{itinerary_id}/weather-check")
async def weather_check(
    itinerary_id: str,
    user_id: str = Depends(current_user_id),
    store: ItineraryStore = Depends(get_store),
    weather: WeatherClient = Depends(get_weather_client),
):
    itinerary = await asyncio.to_thread(_load_owned, store, itinerary_id, user_id)
    advisories = await check_weather_updates(itinerary, weather)
    saved = await asyncio.to_thread(store.save_updates, advisories)
    adjustments = generate_smart_adjustments(itinerary, advisories)
    logger.info(f"Weather check for {itinerary_id}: {len(advisories)} advisory(ies), {saved} saved")
    return {
        "advisories": [a.model_dump(mode="json") for a in advisories],
        "adjustments": adjustments.model_dump(mode="json"),
        "count": len(advisories),
    }


@app.get("/itineraries/{itinerary_id}/updates")
async def get_updates(
    itinerary_id: str,
    user_id: str = Depends(current_user_id),
    store: ItineraryStore = Depends(get_store),
):
    await asyncio.to_thread(_load_owned, store, itinerary_id, user_id)
    updates = await asyncio.to_thread(store.get_updates_for_itinerary, itinerary_id)
    return {"updates": [u.model_dump(mode="json") for u in updates], "count": len(updates)}


@app.post("/updates/{update_id}/acknowledge")
async def acknowledge_update(
    update_id: str,
    user_id: str = Depends(current_user_id),
    store: ItineraryStore = Depends(get_store),
):
    update = await asyncio.to_thread(store.get_update, update_id)
    if update is None:
        raise HTTPException(status_code=404, detail="Update not found")
    await asyncio.to_thread(_load_owned, store, update.itinerary_id, user_id)
    if not await asyncio.to_thread(store.acknowledge_update, update_id):
        raise HTTPException(status_code=404, detail="Update not found")
    return {"success": True, "update_id": update_id}


@app.get("/users/me/preferences")
async def get_preferences(user_id: str = Depends(current_user_id), store: ItineraryStore = Depends(get_store)):
    preferences = await asyncio.to_thread(store.get_user_preferences, user_id)
    return {"preferences": preferences.model_dump(mode="json") if preferences else None}


@app.put("/users/me/preferences")
async def update_preferences(
    preferences: UserPreferences,
    user_id: str = Depends(current_user_id),
    store: ItineraryStore = Depends(get_store),
):
    if not preferences.model_dump(exclude_none=True):
        raise HTTPException(status_code=400, detail="No preferences given")
    await asyncio.to_thread(store.update_user_preferences, user_id, preferences)
    logger.info(f"Updated preferences for user {user_id}: {sorted(preferences.model_dump(exclude_none=True))}")
    return {"success": True}
