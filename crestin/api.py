"""Station directory client (radiocrestin.ro public API)."""
import time
from typing import Optional

import httpx

from .config import API_BASE_URL, API_TIMEOUT, STATIONS_CACHE_SECONDS
from .errors import StationsFetchError
from .streams import Station

_cache: Optional[tuple[float, list[Station]]] = None


def _rounded_timestamp() -> int:
    """Unix time rounded down to 10 s, so the API's CDN cache can be shared."""
    now = int(time.time())
    return now - now % 10


async def fetch_stations(force: bool = False, base_url: str = API_BASE_URL) -> list[Station]:
    """GET /stations. Cached in-process for STATIONS_CACHE_SECONDS."""
    global _cache
    now = time.monotonic()
    if not force and _cache and now - _cache[0] < STATIONS_CACHE_SECONDS:
        return _cache[1]

    url = f"{base_url}/stations"
    try:
        async with httpx.AsyncClient(timeout=API_TIMEOUT) as client:
            r = await client.get(url, params={"timestamp": _rounded_timestamp()})
            r.raise_for_status()
            payload = r.json()
    except httpx.HTTPError as e:
        raise StationsFetchError(f"Failed to fetch stations: {e}") from e
    except ValueError as e:
        raise StationsFetchError(f"Station directory returned invalid JSON: {e}") from e

    # GraphQL-shaped body: {"data": {"stations": [...]}}
    data = payload.get("data") if isinstance(payload, dict) else None
    raw = data.get("stations") if isinstance(data, dict) else None
    if not isinstance(raw, list):
        raise StationsFetchError("Invalid API response format")

    stations = [Station.from_dict(s) for s in raw if isinstance(s, dict)]
    _cache = (now, stations)
    return stations


def clear_cache():
    global _cache
    _cache = None
