# Overview: Reverse geocoding adapter (Nominatim over httpx) used for display and region grouping.

"""
Reverse geocoding contract:

    reverse_geocode(lat, lng) -> "City, State" | "Unknown Region"

- Coordinates are validated first; invalid input never reaches the network.
- Every failure (HTTP error, timeout, unparseable body, no address) is logged
  and answered with UNKNOWN_REGION. Callers never see an exception.
- Nominatim's usage policy allows one request per second per application, so
  requests are spaced by GEOCODER_MIN_INTERVAL_SECONDS. The limiter only
  reserves a slot under its lock; waiting and the HTTP call happen outside it.
"""

from __future__ import annotations

import math
import threading
import time

import httpx
from flask import current_app


UNKNOWN_REGION = "Unknown Region"

EXTENSION_KEY = "relief_geocoder"

CITY_FIELDS = ("city", "town", "village", "suburb", "county", "municipality")
STATE_FIELDS = ("state", "province", "region", "state_district")


def valid_coordinates(lat, lng) -> bool:
    for value in (lat, lng):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if math.isnan(value):
            return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def build_address_string(address: dict) -> str | None:
    """
    "City, State" from Nominatim address components.

    Falls back to whichever of the two exists; None when neither does.
    """
    if not isinstance(address, dict):
        return None
    city = next((address[k] for k in CITY_FIELDS if address.get(k)), None)
    state = next((address[k] for k in STATE_FIELDS if address.get(k)), None)
    if city and state and city != state:
        return f"{city}, {state}"
    return city or state


class _RateLimiter:
    def __init__(self, min_interval: float):
        self.min_interval = min_interval
        self._lock = threading.Lock()
        self._next_slot = 0.0

    def reserve(self) -> float:
        """Claim the next request slot; returns seconds to wait before using it."""
        with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self.min_interval
        return slot - now


class NominatimGeocoder:
    def __init__(
        self,
        *,
        base_url: str,
        user_agent: str,
        timeout: float = 10.0,
        min_interval: float = 1.1,
        transport: httpx.BaseTransport | None = None,
        logger=None,
    ):
        self._client = httpx.Client(
            base_url=base_url,
            headers={"User-Agent": user_agent},
            timeout=timeout,
            transport=transport,
        )
        self._limiter = _RateLimiter(min_interval)
        self._logger = logger

    @property
    def logger(self):
        return self._logger or current_app.logger

    def close(self) -> None:
        self._client.close()

    def reverse_geocode(self, lat, lng) -> str:
        if not valid_coordinates(lat, lng):
            self.logger.warning("Skipping geocoding for invalid coordinates: lat=%r lng=%r", lat, lng)
            return UNKNOWN_REGION

        wait = self._limiter.reserve()
        if wait > 0:
            time.sleep(wait)

        try:
            response = self._client.get(
                "/reverse",
                params={"format": "json", "lat": lat, "lon": lng, "zoom": 18, "addressdetails": 1},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            self.logger.warning("Reverse geocoding failed for (%s, %s): %s", lat, lng, exc)
            return UNKNOWN_REGION
        except ValueError as exc:
            self.logger.warning("Reverse geocoding returned invalid JSON for (%s, %s): %s", lat, lng, exc)
            return UNKNOWN_REGION

        address = data.get("address") if isinstance(data, dict) else None
        if not address or not isinstance(address, dict):
            self.logger.info("No address components found for (%s, %s)", lat, lng)
            return UNKNOWN_REGION

        return build_address_string(address) or UNKNOWN_REGION


def get_geocoder():
    """Per-app geocoder, built lazily from config. Tests may pre-register their own."""
    app = current_app._get_current_object()
    geocoder = app.extensions.get(EXTENSION_KEY)
    if geocoder is None:
        geocoder = NominatimGeocoder(
            base_url=app.config["GEOCODER_BASE_URL"],
            user_agent=app.config["GEOCODER_USER_AGENT"],
            timeout=app.config["GEOCODER_TIMEOUT_SECONDS"],
            min_interval=app.config["GEOCODER_MIN_INTERVAL_SECONDS"],
            logger=app.logger,
        )
        app.extensions[EXTENSION_KEY] = geocoder
    return geocoder


def reverse_geocode(lat, lng) -> str:
    return get_geocoder().reverse_geocode(lat, lng)
