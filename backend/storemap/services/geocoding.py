"""
Geocoding Service - forward geocoding of store addresses through Mapbox.
"""
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote
import logging

import requests

from storemap.core import config

logger = logging.getLogger(__name__)

# Order matters: most specific first, as the provider expects
ADDRESS_PARTS = ("calle", "colonia", "ciudad", "estado", "cp")


class GeocodingError(Exception):
    """The provider could not turn an address into coordinates."""


@dataclass
class GeocodeMatch:
    lat: float
    lon: float
    place_name: Optional[str] = None


def build_full_address(store: Any, country: str = config.GEOCODE_COUNTRY_NAME) -> str:
    """
    Join the store's non-empty address fields and the country name.

    Returns an empty string when the store has no address data at all, so the
    caller can skip it without spending a provider call.
    """
    parts = []
    for name in ADDRESS_PARTS:
        value = getattr(store, name, None)
        if value is not None and str(value).strip():
            parts.append(str(value).strip())
    if not parts:
        return ""
    parts.append(country)
    return ", ".join(parts)


class MapboxGeocoder:
    """Thin client over the Mapbox forward geocoding endpoint, top result only."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = config.GEOCODE_TIMEOUT_SECONDS,
        country_code: str = config.GEOCODE_COUNTRY_CODE,
    ):
        self.access_token = access_token if access_token is not None else config.MAPBOX_ACCESS_TOKEN
        self.session = session or requests.Session()
        self.timeout = timeout
        self.country_code = country_code

    def geocode(self, address: str) -> GeocodeMatch:
        url = f"{config.MAPBOX_GEOCODING_URL}/{quote(address)}.json"
        try:
            response = self.session.get(
                url,
                params={
                    "access_token": self.access_token,
                    "country": self.country_code,
                    "limit": 1,
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise GeocodingError(f"Network error: {e}") from e

        if not response.ok:
            raise GeocodingError(f"Geocoding API error: {response.status_code} {response.reason}")

        features = response.json().get("features") or []
        if not features:
            raise GeocodingError("No results found")

        feature = features[0]
        lon, lat = feature["center"]
        return GeocodeMatch(lat=float(lat), lon=float(lon), place_name=feature.get("place_name"))
