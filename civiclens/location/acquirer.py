"""
Location acquisition
Obtains a single position fix with a bounded timeout and explicit retry.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple

import httpx

from civiclens.core.config import settings
from civiclens.core.errors import LocationUnavailableError
from civiclens.location.models import GPSFix

logger = logging.getLogger(__name__)


class AcquirerState(Enum):
    """Lifecycle of the position request."""
    IDLE = "idle"
    ACQUIRING = "acquiring"
    ACQUIRED = "acquired"
    BLOCKED = "blocked"


class PositionProvider:
    """Source of raw (latitude, longitude) readings."""

    async def get_position(self, high_accuracy: bool = True) -> Tuple[float, float]:
        raise NotImplementedError


class FixedPositionProvider(PositionProvider):
    """Returns a known position, e.g. coordinates given on the command line."""

    def __init__(self, latitude: float, longitude: float):
        self.latitude = latitude
        self.longitude = longitude

    async def get_position(self, high_accuracy: bool = True) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


class NetworkPositionProvider(PositionProvider):
    """
    Approximate position from an IP geolocation service.

    Expects a JSON body with ``lat`` and ``lon`` keys (ip-api.com format).
    """

    def __init__(
        self,
        url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0
    ):
        self.url = url or settings.ip_geolocation_url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def get_position(self, high_accuracy: bool = True) -> Tuple[float, float]:
        if high_accuracy:
            logger.debug("High accuracy requested; network provider is approximate")

        try:
            response = await self._client.get(self.url)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise LocationUnavailableError(f"Position lookup failed: {e}") from e

        if not isinstance(data, dict):
            raise LocationUnavailableError("Malformed position response")

        if data.get("status", "success") != "success":
            raise LocationUnavailableError(data.get("message", "Position lookup refused"))

        try:
            return (float(data["lat"]), float(data["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise LocationUnavailableError(f"Malformed position response: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()


class LocationAcquirer:
    """
    Acquires a GPS fix.

    States: IDLE -> ACQUIRING -> {ACQUIRED, BLOCKED}. A failed or timed out
    request is never re-polled; ``retry()`` is the only way out of BLOCKED.
    At most one position request is in flight at a time.
    """

    def __init__(
        self,
        provider: PositionProvider,
        timeout: Optional[float] = None,
        high_accuracy: Optional[bool] = None
    ):
        self.provider = provider
        self.timeout = timeout if timeout is not None else settings.location_timeout_seconds
        self.high_accuracy = (
            high_accuracy if high_accuracy is not None else settings.location_high_accuracy
        )

        self._state = AcquirerState.IDLE
        self._fix: Optional[GPSFix] = None
        self._inflight: Optional[asyncio.Future] = None
        self._listeners: List[Callable[[GPSFix], None]] = []
        self.last_error: Optional[str] = None

    @property
    def state(self) -> AcquirerState:
        return self._state

    @property
    def fix(self) -> Optional[GPSFix]:
        return self._fix

    def add_fix_listener(self, callback: Callable[[GPSFix], None]) -> None:
        """Register a callback invoked with each new fix."""
        self._listeners.append(callback)

    async def start(self) -> Optional[GPSFix]:
        """
        Begin acquisition from IDLE.

        Joins the in-flight request when one exists; otherwise returns the
        current fix (None when BLOCKED).
        """
        if self._inflight is not None and not self._inflight.done():
            return await asyncio.shield(self._inflight)
        if self._state != AcquirerState.IDLE:
            return self._fix
        return await self._begin()

    async def retry(self) -> Optional[GPSFix]:
        """User initiated retry; only valid from BLOCKED."""
        if self._state != AcquirerState.BLOCKED:
            raise RuntimeError(f"Retry not allowed from state {self._state.value}")
        return await self._begin()

    def cancel(self) -> None:
        """Cancel the in-flight request, if any."""
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
            self._state = AcquirerState.IDLE
            logger.info("Position request cancelled")

    async def _begin(self) -> Optional[GPSFix]:
        self._state = AcquirerState.ACQUIRING
        self._fix = None
        self.last_error = None
        self._inflight = asyncio.ensure_future(self._request())
        return await asyncio.shield(self._inflight)

    async def _request(self) -> Optional[GPSFix]:
        try:
            lat, lng = await asyncio.wait_for(
                self.provider.get_position(high_accuracy=self.high_accuracy),
                timeout=self.timeout,
            )
            fix = GPSFix(lat=lat, lng=lng)
        except asyncio.TimeoutError:
            return self._block(f"Position request timed out after {self.timeout}s")
        except (LocationUnavailableError, ValueError) as e:
            return self._block(str(e))
        except Exception as e:
            logger.error(f"Position request failed: {e}")
            return self._block(f"Position request failed: {e}")

        self._fix = fix
        self._state = AcquirerState.ACQUIRED
        logger.info(f"Position acquired: ({fix.lat:.6f}, {fix.lng:.6f})")

        for callback in list(self._listeners):
            try:
                callback(fix)
            except Exception as e:
                logger.error(f"Fix listener failed: {e}")

        return fix

    def _block(self, reason: str) -> None:
        self._state = AcquirerState.BLOCKED
        self.last_error = reason
        logger.warning(f"Location blocked: {reason}")
        return None
