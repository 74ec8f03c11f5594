"""Address -> coordinates through the Google Geocoding API."""
import logging
from typing import Optional

import requests

from config import GEOCODE_TIMEOUT, GEOCODE_URL, GOOGLE_MAPS_API_KEY
from schemas import Address, Coordinates

logger = logging.getLogger(__name__)


def geocode_address(address: Address) -> Optional[Coordinates]:
    """Return the first match for `address`, or None when the lookup fails."""
    try:
        response = requests.get(
            GEOCODE_URL,
            params={"address": address.formatted(), "key": GOOGLE_MAPS_API_KEY},
            timeout=GEOCODE_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("Error geocoding address: %s", e)
        return None

    if data.get("status") != "OK" or not data.get("results"):
        logger.warning("Geocoding returned %s for %r", data.get("status"), address.formatted())
        return None
    location = data["results"][0]["geometry"]["location"]
    return Coordinates(lat=location["lat"], lng=location["lng"])
