"""
GoogleGeocoder: resolves a free-text residence to coordinates.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from kindred.core.errors import GeocodingError
from kindred.core.models import Location

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


def _short_label(result: dict) -> str:
    """'City, State' when both components exist, else the formatted address."""
    city = state = ""
    for component in result.get("address_components", []):
        types = component.get("types", [])
        if "locality" in types or "sublocality" in types:
            city = component.get("long_name", "")
        if "administrative_area_level_1" in types:
            state = component.get("long_name", "")
    if city and state:
        return f"{city}, {state}"
    return result.get("formatted_address", "")


class GoogleGeocoder:
    """Geocoder implementation over the Google Geocoding API."""

    def __init__(
        self,
        api_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self._api_key = api_key
        self._timeout = timeout
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def geocode(self, query: str) -> Optional[Location]:
        try:
            response = await self.http_client.get(
                GEOCODE_URL, params={"address": query, "key": self._api_key},
            )
            data = response.json()
        except httpx.RequestError as e:
            logger.error("Network error during geocoding: %s", e)
            raise GeocodingError(f"Geocoding network error: {e}") from e
        except ValueError as e:
            raise GeocodingError("Invalid response from geocoding API") from e

        status = data.get("status")
        if status == "ZERO_RESULTS" or (status == "OK" and not data.get("results")):
            logger.info("No geocoding results for %r", query)
            return None
        if status != "OK":
            logger.error("Geocoding failed: %s %s", status, data.get("error_message", ""))
            raise GeocodingError(f"Geocoding failed: {status}")

        result = data["results"][0]
        point = result.get("geometry", {}).get("location", {})
        return Location(
            label=_short_label(result) or query,
            latitude=point.get("lat"),
            longitude=point.get("lng"),
        )
