"""
Tests for location acquisition and reverse geocoding
"""
import asyncio
import math

import httpx
import pytest

from civiclens.core.constants import ADDRESS_UNAVAILABLE, UNKNOWN_LOCATION
from civiclens.core.errors import LocationUnavailableError
from civiclens.location.acquirer import (
    AcquirerState,
    FixedPositionProvider,
    LocationAcquirer,
    NetworkPositionProvider,
    PositionProvider,
)
from civiclens.location.address_resolver import NominatimResolver
from civiclens.location.models import GPSFix


class SlowProvider(PositionProvider):
    """Never answers within the timeout."""

    async def get_position(self, high_accuracy=True):
        await asyncio.sleep(10)
        return (0.0, 0.0)


class DeniedProvider(PositionProvider):
    async def get_position(self, high_accuracy=True):
        raise LocationUnavailableError("User denied Geolocation")


class PermissionDeniedProvider(PositionProvider):
    async def get_position(self, high_accuracy=True):
        raise PermissionError("Location services disabled")


class CountingProvider(PositionProvider):
    """Succeeds after a short delay, records each request."""

    def __init__(self, positions):
        self.positions = list(positions)
        self.calls = 0
        self.high_accuracy = None

    async def get_position(self, high_accuracy=True):
        self.calls += 1
        self.high_accuracy = high_accuracy
        await asyncio.sleep(0.01)
        return self.positions.pop(0)


class TestGPSFix:
    """Test suite for the fix value type."""

    def test_valid_fix(self):
        fix = GPSFix(lat=17.41, lng=78.43)
        assert fix.lat == 17.41
        assert fix.acquired_at is not None

    @pytest.mark.parametrize("lat,lng", [
        (91.0, 0.0),
        (0.0, -180.5),
        (math.nan, 10.0),
        (10.0, math.inf),
    ])
    def test_invalid_fix_rejected(self, lat, lng):
        with pytest.raises(ValueError):
            GPSFix(lat=lat, lng=lng)


class TestLocationAcquirer:
    """Test suite for LocationAcquirer."""

    def test_initial_state_idle(self):
        acquirer = LocationAcquirer(FixedPositionProvider(1.0, 2.0))
        assert acquirer.state == AcquirerState.IDLE
        assert acquirer.fix is None

    def test_acquire_success(self):
        provider = CountingProvider([(17.385, 78.4867)])
        acquirer = LocationAcquirer(provider, timeout=1.0)

        fix = asyncio.run(acquirer.start())

        assert acquirer.state == AcquirerState.ACQUIRED
        assert fix == acquirer.fix
        assert fix.lat == 17.385
        assert provider.high_accuracy is True

    def test_timeout_blocks(self):
        acquirer = LocationAcquirer(SlowProvider(), timeout=0.05)

        fix = asyncio.run(acquirer.start())

        assert fix is None
        assert acquirer.state == AcquirerState.BLOCKED
        assert "timed out" in acquirer.last_error

    def test_denied_blocks(self):
        acquirer = LocationAcquirer(DeniedProvider(), timeout=1.0)
        asyncio.run(acquirer.start())
        assert acquirer.state == AcquirerState.BLOCKED

    def test_out_of_range_position_never_acquired(self):
        acquirer = LocationAcquirer(FixedPositionProvider(123.0, 45.0), timeout=1.0)

        fix = asyncio.run(acquirer.start())

        assert fix is None
        assert acquirer.state == AcquirerState.BLOCKED
        assert acquirer.fix is None

    def test_non_finite_position_never_acquired(self):
        acquirer = LocationAcquirer(FixedPositionProvider(math.nan, 45.0), timeout=1.0)
        asyncio.run(acquirer.start())
        assert acquirer.state == AcquirerState.BLOCKED

    def test_no_automatic_retry(self):
        denied = LocationAcquirer(DeniedProvider(), timeout=1.0)
        asyncio.run(denied.start())
        # A second start from BLOCKED does not issue another request
        assert asyncio.run(denied.start()) is None
        assert denied.state == AcquirerState.BLOCKED

    def test_retry_from_blocked(self):
        provider = CountingProvider([(17.0, 78.0)])

        async def scenario():
            acquirer = LocationAcquirer(DeniedProvider(), timeout=1.0)
            await acquirer.start()
            assert acquirer.state == AcquirerState.BLOCKED
            acquirer.provider = provider
            fix = await acquirer.retry()
            return acquirer, fix

        acquirer, fix = asyncio.run(scenario())
        assert acquirer.state == AcquirerState.ACQUIRED
        assert fix.lat == 17.0
        assert provider.calls == 1

    def test_unexpected_provider_error_blocks(self):
        provider = CountingProvider([(17.0, 78.0)])

        async def scenario():
            acquirer = LocationAcquirer(PermissionDeniedProvider(), timeout=1.0)
            assert await acquirer.start() is None
            assert acquirer.state == AcquirerState.BLOCKED
            assert "Location services disabled" in acquirer.last_error
            acquirer.provider = provider
            return acquirer, await acquirer.retry()

        acquirer, fix = asyncio.run(scenario())
        assert acquirer.state == AcquirerState.ACQUIRED
        assert fix.lat == 17.0

    def test_retry_not_allowed_unless_blocked(self):
        acquirer = LocationAcquirer(FixedPositionProvider(1.0, 2.0))
        with pytest.raises(RuntimeError):
            asyncio.run(acquirer.retry())

        asyncio.run(acquirer.start())
        with pytest.raises(RuntimeError):
            asyncio.run(acquirer.retry())

    def test_single_request_in_flight(self):
        provider = CountingProvider([(1.0, 2.0), (3.0, 4.0)])
        acquirer = LocationAcquirer(provider, timeout=1.0)

        async def scenario():
            return await asyncio.gather(acquirer.start(), acquirer.start())

        first, second = asyncio.run(scenario())

        assert provider.calls == 1
        assert first is second

    def test_fix_listener_called(self):
        seen = []
        acquirer = LocationAcquirer(FixedPositionProvider(5.0, 6.0))
        acquirer.add_fix_listener(seen.append)

        asyncio.run(acquirer.start())

        assert len(seen) == 1
        assert seen[0].lng == 6.0

    def test_failing_listener_does_not_block_fix(self):
        def broken(fix):
            raise RuntimeError("boom")

        acquirer = LocationAcquirer(FixedPositionProvider(5.0, 6.0))
        acquirer.add_fix_listener(broken)

        asyncio.run(acquirer.start())
        assert acquirer.state == AcquirerState.ACQUIRED

    def test_cancel_in_flight(self):
        async def scenario():
            acquirer = LocationAcquirer(SlowProvider(), timeout=5.0)
            task = asyncio.ensure_future(acquirer.start())
            await asyncio.sleep(0.01)
            assert acquirer.state == AcquirerState.ACQUIRING
            acquirer.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            return acquirer

        acquirer = asyncio.run(scenario())
        assert acquirer.state == AcquirerState.IDLE


class TestNetworkPositionProvider:
    """Test suite for the IP geolocation provider."""

    def test_parses_position(self):
        def handler(request):
            return httpx.Response(200, json={"status": "success", "lat": 17.38, "lon": 78.48})

        async def scenario():
            client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
            provider = NetworkPositionProvider(url="http://geo.test/json", client=client)
            try:
                return await provider.get_position()
            finally:
                await provider.aclose()

        assert asyncio.run(scenario()) == (17.38, 78.48)

    def test_non_object_body_raises(self):
        def handler(request):
            return httpx.Response(200, json=[17.38, 78.48])

        async def scenario():
            client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
            provider = NetworkPositionProvider(url="http://geo.test/json", client=client)
            await provider.get_position()

        with pytest.raises(LocationUnavailableError):
            asyncio.run(scenario())

    def test_malformed_body_blocks_acquirer(self):
        def handler(request):
            return httpx.Response(200, json=["not", "a", "position"])

        async def scenario():
            client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
            provider = NetworkPositionProvider(url="http://geo.test/json", client=client)
            acquirer = LocationAcquirer(provider, timeout=1.0)
            await acquirer.start()
            await provider.aclose()
            return acquirer

        assert asyncio.run(scenario()).state == AcquirerState.BLOCKED

    def test_refused_lookup_raises(self):
        def handler(request):
            return httpx.Response(200, json={"status": "fail", "message": "private range"})

        async def scenario():
            client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
            provider = NetworkPositionProvider(url="http://geo.test/json", client=client)
            await provider.get_position()

        with pytest.raises(LocationUnavailableError):
            asyncio.run(scenario())


class TestNominatimResolver:
    """Test suite for reverse geocoding."""

    def setup_method(self):
        self.fix = GPSFix(lat=17.385, lng=78.4867)

    def _resolve(self, handler):
        async def scenario():
            client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
            async with NominatimResolver(url="http://geo.test/reverse", client=client) as resolver:
                return await resolver.resolve(self.fix)

        return asyncio.run(scenario())

    def test_resolves_display_name(self):
        captured = {}

        def handler(request):
            captured["params"] = dict(request.url.params)
            captured["agent"] = request.headers.get("user-agent")
            return httpx.Response(200, json={"display_name": "Charminar, Hyderabad"})

        address = self._resolve(handler)

        assert address.text == "Charminar, Hyderabad"
        assert address.resolved is True
        assert captured["params"]["lat"] == "17.385"
        assert captured["params"]["lon"] == "78.4867"
        assert captured["agent"]

    def test_missing_display_name(self):
        address = self._resolve(lambda request: httpx.Response(200, json={}))
        assert address.text == UNKNOWN_LOCATION

    def test_http_error_falls_back(self):
        address = self._resolve(lambda request: httpx.Response(503))
        assert address.text == ADDRESS_UNAVAILABLE
        assert address.resolved is False

    def test_network_error_falls_back(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        address = self._resolve(handler)
        assert address.text == ADDRESS_UNAVAILABLE
