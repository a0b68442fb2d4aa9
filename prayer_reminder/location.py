"""Resolve a city and country to coordinates with the Nominatim geocoder."""

import logging

import requests

from prayer_reminder.errors import ConfigurationError, ResolutionFailure
from prayer_reminder.prayer_times import Coordinates

logger = logging.getLogger(__name__)

# Cairo
DEFAULT_COORDINATES = Coordinates(latitude=30.0444, longitude=31.2357)

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
USER_AGENT = "prayer-reminder/0.1"


def _geocode(city: str, country: str, timeout: int) -> Coordinates:
    resp = requests.get(
        NOMINATIM_URL,
        params={
            "city": city,
            "countrycodes": country.lower(),
            "format": "jsonv2",
            "limit": 1,
        },
        headers={"User-Agent": USER_AGENT},
        timeout=timeout,
    )
    resp.raise_for_status()
    data = resp.json()
    if not data:
        raise ResolutionFailure(f'City "{city}" not found in country "{country}"')
    item = data[0]
    try:
        return Coordinates(latitude=float(item["lat"]), longitude=float(item["lon"]))
    except (KeyError, TypeError, ValueError, ConfigurationError) as exc:
        raise ResolutionFailure(f"Malformed geocoder result for {city}, {country}: {exc}")


def resolve(city: str, country: str, timeout: int = 5, warn=None) -> Coordinates:
    """
    Return the coordinates of city in country (ISO 3166-1 alpha-2 code).

    Falls back to DEFAULT_COORDINATES on any failure. The fallback is logged
    and reported through warn(message) when given.
    """
    city = (city or "").strip()
    country = (country or "").strip().upper()
    try:
        if not city or not country:
            raise ResolutionFailure("City and country are required")
        return _geocode(city, country, timeout)
    except (requests.RequestException, ValueError, ResolutionFailure) as exc:
        logger.warning("Geocoding %s, %s failed: %s", city, country, exc)
    message = f'City "{city}" not found in country "{country}". Using Cairo as fallback.'
    if warn:
        warn(message)
    return DEFAULT_COORDINATES
