from __future__ import annotations

import logging
from typing import Optional, Tuple

import requests
from django.conf import settings

__all__ = ["geocode_location"]

logger = logging.getLogger(__name__)


def geocode_location(location: Optional[str]) -> Optional[Tuple[float, float]]:
    """
    Return ``(latitude, longitude)`` for a free-form address, or None.

    * The full address is tried first, then a simplified query built from its
      last two comma separated parts (usually "city, province").
    * Lookups are best-effort: timeouts and HTTP errors resolve to None.
    """
    query = (location or "").strip()
    if not query:
        return None

    coords = _search(query)
    if coords is not None:
        return coords

    parts = [part.strip() for part in query.split(",") if part.strip()]
    if len(parts) > 2:
        fallback = ", ".join(parts[-2:])
        logger.info("geocoding: retrying with simplified query %r", fallback)
        return _search(fallback)
    return None


def _search(query: str) -> Optional[Tuple[float, float]]:
    url = getattr(settings, "GEOCODER_URL", "https://nominatim.openstreetmap.org/search")
    timeout = float(getattr(settings, "GEOCODE_REQUEST_TIMEOUT", 5.0))
    headers = {
        "Accept": "application/json",
        "User-Agent": getattr(settings, "GEOCODER_USER_AGENT", "drivehub-backend/1.0"),
    }
    params = {"q": query, "format": "json", "limit": 1}

    try:
        response = requests.get(url, headers=headers, params=params, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException:
        logger.info("geocoding: lookup failed for %r", query, exc_info=True)
        return None

    try:
        payload = response.json()
    except ValueError:
        return None

    if not isinstance(payload, list) or not payload:
        return None

    first = payload[0]
    try:
        return float(first["lat"]), float(first["lon"])
    except (KeyError, TypeError, ValueError):
        return None
