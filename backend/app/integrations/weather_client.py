"""OpenWeatherMap forecast client producing one observation per day."""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional

import requests

from app.config import Settings
from app.models.weather import WeatherObservation

logger = logging.getLogger(__name__)

_BASE_URL = "https://api.openweathermap.org/data/2.5/forecast"

CONDITION_RECOMMENDATIONS: Dict[str, List[str]] = {
    "rain": ["Carry umbrella or raincoat", "Wear waterproof shoes"],
    "snow": ["Dress warmly in layers", "Wear non-slip footwear"],
    "clear": ["Perfect weather for outdoor activities", "Don't forget sunscreen"],
    "clouds": ["Good weather for sightseeing"],
}


def weather_recommendations(condition: str) -> List[str]:
    return list(CONDITION_RECOMMENDATIONS.get((condition or "").lower(), []))


def _slot_date(slot: dict) -> Optional[date]:
    if slot.get("dt_txt"):
        return date.fromisoformat(slot["dt_txt"][:10])
    if slot.get("dt") is not None:
        return datetime.fromtimestamp(slot["dt"]).date()
    return None


def _slot_rain(slot: dict) -> float:
    rain = slot.get("rain") or {}
    return float(rain.get("3h", 0) or 0)


class WeatherClient:
    def __init__(self, api_key: Optional[str] = None, timeout: float = 10.0, session=None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests

    @classmethod
    def from_settings(cls, settings: Settings) -> "WeatherClient":
        return cls(api_key=settings.openweather_api_key, timeout=settings.weather_timeout)

    def _fetch_slots(self, location: str) -> List[dict]:
        params = {"q": location, "appid": self.api_key, "units": "metric"}
        r = self.session.get(_BASE_URL, params=params, timeout=self.timeout)
        r.raise_for_status()
        return r.json().get("list", [])

    def get_forecast(self, location: str) -> List[WeatherObservation]:
        """Daily observations for the forecast window; [] when unavailable."""
        if not self.api_key:
            logger.warning("OPENWEATHER_API_KEY not configured; weather checks disabled")
            return []

        try:
            slots = self._fetch_slots(location)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Weather forecast failed for {location}: {e}")
            return []

        # group 3-hour slots by day
        buckets: Dict[date, List[dict]] = {}
        for s in slots:
            try:
                d = _slot_date(s)
            except ValueError:
                continue
            if d is not None:
                buckets.setdefault(d, []).append(s)

        observations = []
        for day, lst in sorted(buckets.items()):
            try:
                mins = [v["main"]["temp_min"] for v in lst]
                maxs = [v["main"]["temp_max"] for v in lst]
                pivot = max(lst, key=_slot_rain)  # wettest slot
                condition = (pivot.get("weather") or [{}])[0].get("main", "")
                observations.append(
                    WeatherObservation(
                        location=location,
                        date=day,
                        condition=condition,
                        temp_min=min(mins),
                        temp_max=max(maxs),
                        precipitation=round(sum(_slot_rain(v) for v in lst), 2),
                        humidity=max(v["main"].get("humidity", 0) for v in lst),
                        wind_speed=max((v.get("wind") or {}).get("speed", 0) for v in lst),
                        recommendations=weather_recommendations(condition),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed forecast day {day} for {location}: {e}")
        return observations

    def get_weather_for_date(self, location: str, day: date) -> Optional[WeatherObservation]:
        for observation in self.get_forecast(location):
            if observation.date == day:
                return observation
        return None
