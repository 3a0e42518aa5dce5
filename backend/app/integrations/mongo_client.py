"""MongoDB persistence for trip requests, itineraries, real-time updates and user preferences.

This module uses pymongo synchronously and safely no-ops when MONGODB_URI
is not configured, so it won't break local runs or CI. Only "set by id",
"get by id" and simple equality filters are used.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from app.config import Settings
from app.models.entities import Itinerary
from app.models.trip_preferences import TripConstraints, UserPreferences
from app.models.weather import WeatherAdvisory

logger = logging.getLogger(__name__)

TRIP_REQUESTS = "tripRequests"
ITINERARIES = "itineraries"
UPDATES = "realTimeUpdates"
USERS = "users"

REQUEST_STATUSES = ("pending", "generating", "completed", "failed")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _strip_id(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    doc = dict(doc)
    doc.pop("_id", None)
    return doc


class ItineraryStore:
    def __init__(self, uri: Optional[str] = None, db_name: str = "tripcraft", client: Optional[MongoClient] = None):
        self.db_name = db_name
        if client is not None:
            self._client = client
        elif uri:
            self._client = MongoClient(uri, serverSelectionTimeoutMS=3000)
        else:
            self._client = None
            logger.warning("MONGODB_URI not set; persistence disabled")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ItineraryStore":
        return cls(uri=settings.mongodb_uri, db_name=settings.mongodb_db)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def get_collection(self, name: str) -> Optional[Collection]:
        if self._client is None:
            return None
        return self._client[self.db_name][name]

    # trip requests

    def save_trip_request(self, constraints: TripConstraints, status: str = "pending") -> Optional[str]:
        col = self.get_collection(TRIP_REQUESTS)
        if col is None:
            return None
        doc = {**constraints.model_dump(mode="json"), "status": status, "updated_at": _now()}
        col.replace_one({"_id": constraints.id}, {"_id": constraints.id, **doc}, upsert=True)
        return constraints.id

    def update_trip_request_status(self, request_id: str, status: str, error: Optional[str] = None) -> None:
        if status not in REQUEST_STATUSES:
            raise ValueError(f"Unknown trip request status: {status}")
        col = self.get_collection(TRIP_REQUESTS)
        if col is None or not request_id:
            return
        patch: Dict[str, Any] = {"status": status, "updated_at": _now()}
        if error:
            patch["error"] = error
        col.update_one({"_id": request_id}, {"$set": patch})

    def get_trip_request(self, request_id: str) -> Optional[Dict[str, Any]]:
        col = self.get_collection(TRIP_REQUESTS)
        if col is None:
            return None
        return _strip_id(col.find_one({"_id": request_id}))

    # itineraries

    def save_itinerary(self, itinerary: Itinerary) -> Optional[str]:
        col = self.get_collection(ITINERARIES)
        if col is None:
            return None
        doc = itinerary.model_dump(mode="json")
        col.replace_one({"_id": itinerary.id}, {"_id": itinerary.id, **doc}, upsert=True)
        logger.info(f"Saved itinerary {itinerary.id} (version {itinerary.version})")
        return itinerary.id

    def get_itinerary(self, itinerary_id: str) -> Optional[Itinerary]:
        col = self.get_collection(ITINERARIES)
        if col is None:
            return None
        doc = _strip_id(col.find_one({"_id": itinerary_id}))
        return Itinerary.model_validate(doc) if doc else None

    def list_itineraries(self, user_id: str) -> List[Itinerary]:
        col = self.get_collection(ITINERARIES)
        if col is None:
            return []
        return [Itinerary.model_validate(_strip_id(doc)) for doc in col.find({"user_id": user_id})]

    def delete_itinerary(self, itinerary_id: str) -> bool:
        """Delete an itinerary and its real-time updates. False if it did not exist."""
        col = self.get_collection(ITINERARIES)
        if col is None:
            return False
        res = col.delete_one({"_id": itinerary_id})
        if res.deleted_count == 0:
            return False
        self.get_collection(UPDATES).delete_many({"itinerary_id": itinerary_id})
        logger.info(f"Deleted itinerary {itinerary_id}")
        return True

    # real-time updates

    def save_updates(self, updates: Iterable[WeatherAdvisory]) -> int:
        col = self.get_collection(UPDATES)
        updates = list(updates)
        if col is None or not updates:
            return 0
        for update in updates:
            doc = update.model_dump(mode="json")
            # a re-check refreshes the content but keeps acknowledgement and creation time
            on_insert = {key: doc.pop(key) for key in ("acknowledged", "created_at")}
            col.update_one({"_id": update.id}, {"$set": doc, "$setOnInsert": on_insert}, upsert=True)
        return len(updates)

    def get_update(self, update_id: str) -> Optional[WeatherAdvisory]:
        col = self.get_collection(UPDATES)
        if col is None:
            return None
        doc = _strip_id(col.find_one({"_id": update_id}))
        return WeatherAdvisory.model_validate(doc) if doc else None

    def get_updates_for_itinerary(self, itinerary_id: str) -> List[WeatherAdvisory]:
        col = self.get_collection(UPDATES)
        if col is None:
            return []
        try:
            cursor = col.find({"itinerary_id": itinerary_id, "acknowledged": False}).sort("created_at", DESCENDING)
            return [WeatherAdvisory.model_validate(_strip_id(doc)) for doc in cursor]
        except PyMongoError:
            logger.exception("Failed to load updates for itinerary %s", itinerary_id)
            return []

    def acknowledge_update(self, update_id: str) -> bool:
        col = self.get_collection(UPDATES)
        if col is None:
            return False
        res = col.update_one({"_id": update_id}, {"$set": {"acknowledged": True, "acknowledged_at": _now()}})
        return res.matched_count > 0

    # users

    def get_user_preferences(self, user_id: str) -> Optional[UserPreferences]:
        col = self.get_collection(USERS)
        if col is None:
            return None
        doc = col.find_one({"_id": user_id}) or {}
        prefs = doc.get("preferences")
        return UserPreferences.model_validate(prefs) if prefs else None

    def update_user_preferences(self, user_id: str, preferences: UserPreferences) -> bool:
        """Merge the fields that are set into the stored preferences, creating the user if needed."""
        col = self.get_collection(USERS)
        if col is None:
            return False
        patch: Dict[str, Any] = {
            f"preferences.{key}": value for key, value in preferences.model_dump(mode="json", exclude_none=True).items()
        }
        patch["updated_at"] = _now()
        col.update_one(
            {"_id": user_id},
            {"$set": patch, "$setOnInsert": {"uid": user_id, "created_at": _now()}},
            upsert=True,
        )
        return True
