"""Tests for the best-effort status logger."""
import asyncio

import pytest

from app.models.status_log import PaymentStatusLog
from app.services.status_log_service import StatusLogger


class FakeSession:
    def __init__(self, fail=False, delay=0.0):
        self.fail = fail
        self.delay = delay
        self.added = []
        self.committed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def add(self, obj):
        self.added.append(obj)

    async def commit(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("database is down")
        self.committed = True


class TestStatusLogger:
    @pytest.mark.asyncio
    async def test_appends_row(self):
        session = FakeSession()
        await StatusLogger(session_factory=lambda: session).log("rabosmartpay", "INV-1", 1)

        assert session.committed is True
        (row,) = session.added
        assert isinstance(row, PaymentStatusLog)
        assert (row.provider, row.order_id, row.status_code) == ("rabosmartpay", "INV-1", 1)

    @pytest.mark.asyncio
    async def test_database_failure_is_swallowed(self):
        session = FakeSession(fail=True)
        await StatusLogger(session_factory=lambda: session).log("rabosmartpay", "INV-1", 1)
        assert session.committed is False

    @pytest.mark.asyncio
    async def test_slow_database_does_not_block(self):
        session = FakeSession(delay=1.0)
        logger = StatusLogger(session_factory=lambda: session, timeout=0.05)
        await asyncio.wait_for(logger.log("rabosmartpay", "INV-1", 0), timeout=0.5)
        assert session.committed is False
