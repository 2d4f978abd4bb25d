"""
Reverse geocoding
Maps a fix to a human readable address. Failures degrade to a sentinel string.
"""

import logging
from typing import Optional

import httpx

from civiclens.core.config import settings
from civiclens.core.constants import UNKNOWN_LOCATION
from civiclens.location.models import AddressResolution, GPSFix

logger = logging.getLogger(__name__)


class NominatimResolver:
    """
    Client for the OpenStreetMap Nominatim reverse endpoint.

    Usage policy requires an identifying User-Agent.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.url = url or settings.geocoder_url
        self.user_agent = user_agent or settings.geocoder_user_agent
        self.timeout = timeout or settings.http_timeout_seconds
        self._client = client or httpx.AsyncClient(timeout=self.timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def resolve(self, fix: GPSFix) -> AddressResolution:
        """
        Resolve an address for a fix.

        Never raises; any failure yields the "unavailable" sentinel.
        """
        params = {"format": "json", "lat": fix.lat, "lon": fix.lng}
        try:
            response = await self._client.get(
                self.url,
                params=params,
                headers={"User-Agent": self.user_agent},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching address: {e}")
            return AddressResolution.unavailable()

        display_name = data.get("display_name") if isinstance(data, dict) else None
        return AddressResolution(text=display_name or UNKNOWN_LOCATION)
