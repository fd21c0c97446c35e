# Mapbox Places geocoding (free-text address -> coordinates)

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from app.config import GEOCODING_COUNTRY, MAPBOX_BASE_URL, MAPBOX_TOKEN
from app.schemas.common import GeoPoint

logger = logging.getLogger(__name__)

PLACES_PATH = "/geocoding/v5/mapbox.places/{query}.json"
TIMEOUT_SEC = 10.0


def _standardize(feature: Dict[str, Any]) -> Optional[GeoPoint]:
    """First Mapbox feature -> GeoPoint. center is [lng, lat]."""
    center = feature.get("center") or []
    if len(center) != 2:
        return None
    lng, lat = float(center[0]), float(center[1])
    return GeoPoint(latitude=lat, longitude=lng, address=feature.get("place_name") or "")


async def resolve_address(
    text: str,
    client: Optional[httpx.AsyncClient] = None,
    token: Optional[str] = None,
) -> Optional[GeoPoint]:
    """
    Geocode `text`, restricted to GEOCODING_COUNTRY.
    Returns None when the token is missing, the API fails or nothing matches.
    """
    token = MAPBOX_TOKEN if token is None else token
    if not token:
        logger.warning("MAPBOX_TOKEN is not set; cannot geocode %r", text)
        return None
    query = text.strip()
    if not query:
        return None

    url = f"{MAPBOX_BASE_URL.rstrip('/')}{PLACES_PATH.format(query=quote(query, safe=''))}"
    params = {"access_token": token, "country": GEOCODING_COUNTRY, "limit": 1}

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=TIMEOUT_SEC)
    try:
        resp = await client.get(url, params=params)
        if resp.status_code != 200:
            logger.warning("Mapbox geocoding error: HTTP %s for %r", resp.status_code, text)
            return None
        features = resp.json().get("features") or []
        if not features:
            return None
        return _standardize(features[0])
    except (httpx.HTTPError, ValueError):
        logger.warning("Error geocoding address %r", text, exc_info=True)
        return None
    finally:
        if owns_client:
            await client.aclose()
