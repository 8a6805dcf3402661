"""
Unit tests for PriceHistoryService.

Tests history recording, newest-first reads and summary statistics.
"""

from datetime import timedelta

import pytest

from farewatch.services.price_history_service import PriceHistoryService

from helpers import NOW


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def task(add_task):
    return await add_task()


class TestRecordOffer:
    """Tests for PriceHistoryService.record_offer."""

    async def test_records_offer_fields(self, db_session, task, make_offer):
        offer = make_offer(452.5, airlines=("TG", "BA"), currency="EUR")

        point = await PriceHistoryService.record_offer(db_session, task, offer, recorded_at=NOW)
        await db_session.commit()

        assert point.id is not None
        assert point.task_id == task.id
        assert point.price == 452.5
        assert point.currency == "EUR"
        assert point.airlines == ["TG", "BA"]
        assert point.stops == 0
        assert point.duration == "11h"
        assert point.recorded_at == NOW


class TestGetHistory:
    """Tests for PriceHistoryService.get_history."""

    async def test_newest_first(self, db_session, task, make_offer):
        for days, price in ((0, 500), (1, 480), (2, 510)):
            await PriceHistoryService.record_offer(
                db_session, task, make_offer(price), recorded_at=NOW + timedelta(days=days)
            )
        await db_session.commit()

        history = await PriceHistoryService.get_history(db_session, task.id)

        assert [p.price for p in history] == [510, 480, 500]

    async def test_same_instant_ordered_by_insertion(self, db_session, task, make_offer):
        await PriceHistoryService.record_offer(db_session, task, make_offer(500), recorded_at=NOW)
        await PriceHistoryService.record_offer(db_session, task, make_offer(490), recorded_at=NOW)
        await db_session.commit()

        history = await PriceHistoryService.get_history(db_session, task.id)

        assert [p.price for p in history] == [490, 500]

    async def test_limit(self, db_session, task, make_offer):
        for hours in range(5):
            await PriceHistoryService.record_offer(
                db_session, task, make_offer(500 + hours), recorded_at=NOW + timedelta(hours=hours)
            )
        await db_session.commit()

        history = await PriceHistoryService.get_history(db_session, task.id, limit=2)

        assert [p.price for p in history] == [504, 503]

    async def test_other_tasks_excluded(self, db_session, task, add_task, make_offer):
        other = await add_task(name="other")
        await PriceHistoryService.record_offer(db_session, other, make_offer(300), recorded_at=NOW)
        await db_session.commit()

        assert await PriceHistoryService.get_history(db_session, task.id) == []


class TestGetPriceStats:
    """Tests for PriceHistoryService.get_price_stats."""

    async def test_stats(self, db_session, task, make_offer):
        for hours, price in enumerate((500, 450, 475)):
            await PriceHistoryService.record_offer(
                db_session, task, make_offer(price), recorded_at=NOW + timedelta(hours=hours)
            )
        await db_session.commit()

        stats = await PriceHistoryService.get_price_stats(db_session, task.id)

        assert stats == {"count": 3, "min_price": 450, "max_price": 500, "avg_price": 475}

    async def test_no_history(self, db_session, task):
        stats = await PriceHistoryService.get_price_stats(db_session, task.id)

        assert stats == {"count": 0, "min_price": None, "max_price": None, "avg_price": None}
