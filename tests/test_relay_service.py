"""Tests for the bounded relay dispatcher."""
import asyncio

import httpx
import pytest

from app.schemas.smartpay import PaymentStatus
from app.services.relay_service import RelayDispatcher, build_relay_url


class TestBuildRelayUrl:
    def test_appends_to_existing_query(self):
        url = build_relay_url("https://shop.example/hook?psp=rabo", "INV-1", "COMPLETED", "abc")
        assert url == "https://shop.example/hook?psp=rabo&order_id=INV-1&status=COMPLETED&signature=abc"

    def test_plain_base_url(self):
        url = build_relay_url("https://shop.example/hook", "INV 2", "EXPIRED", "def")
        assert httpx.URL(url).params["order_id"] == "INV 2"
        assert httpx.URL(url).params["status"] == "EXPIRED"


class TestRelayDispatcher:
    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        active = 0
        peak = 0

        async def handler(request):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return httpx.Response(200)

        async with RelayDispatcher(
            max_concurrency=2, timeout=1.0, transport=httpx.MockTransport(handler)
        ) as dispatcher:
            for i in range(6):
                dispatcher.submit(f"INV-{i}", PaymentStatus.COMPLETED, f"https://shop.example/hook?i={i}")
            outcomes = await dispatcher.wait()

        assert len(outcomes) == 6
        assert all(o.ok for o in outcomes)
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_timeout_recorded(self):
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200)

        async with RelayDispatcher(
            max_concurrency=1, timeout=0.05, transport=httpx.MockTransport(handler)
        ) as dispatcher:
            dispatcher.submit("INV-1", PaymentStatus.CANCELLED, "https://shop.example/hook")
            outcomes = await dispatcher.wait()

        assert outcomes[0].ok is False
        assert outcomes[0].error == "timeout"

    @pytest.mark.asyncio
    async def test_transport_error_recorded(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with RelayDispatcher(transport=httpx.MockTransport(handler)) as dispatcher:
            dispatcher.submit("INV-1", PaymentStatus.COMPLETED, "https://shop.example/hook")
            outcomes = await dispatcher.wait()

        assert outcomes[0].ok is False
        assert "connection refused" in outcomes[0].error

    @pytest.mark.asyncio
    async def test_wait_without_relays(self):
        async with RelayDispatcher(transport=httpx.MockTransport(lambda r: httpx.Response(200))) as dispatcher:
            assert await dispatcher.wait() == []
