"""
Unit tests for the usage quota tracker.

Events are kept in a list standing in for the usage_events table;
count_in_window is replaced by a count over that list.
"""

import datetime
import uuid
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import QuotaExceededError
from app.schemas.usage import QuotaLimits, SubscriptionStatus, UsageKind
from app.services import quota_tracker
from app.services.quota_tracker import QuotaTracker, current_window, period_key

SYDNEY = ZoneInfo("Australia/Sydney")
UTC = datetime.timezone.utc


class TestWindows:
    """Tests for window boundaries."""

    def test_week_starts_monday_midnight(self, now):
        start, end = current_window(UsageKind.QUOTE, now, tz=SYDNEY, week_start=0)

        assert start == datetime.datetime(2026, 10, 12, tzinfo=SYDNEY)
        assert end == datetime.datetime(2026, 10, 19, tzinfo=SYDNEY)
        assert period_key(UsageKind.QUOTE, start) == "2026-10-12"

    def test_week_uses_local_date(self):
        """Sunday 13:30 UTC is already Monday in Sydney."""
        sunday_utc = datetime.datetime(2026, 10, 18, 13, 30, tzinfo=UTC)

        start, _ = current_window(UsageKind.QUOTE, sunday_utc, tz=SYDNEY, week_start=0)

        assert start.date() == datetime.date(2026, 10, 19)

    def test_naive_time_is_utc(self):
        naive = datetime.datetime(2026, 10, 18, 13, 30)

        start, _ = current_window(UsageKind.QUOTE, naive, tz=SYDNEY, week_start=0)

        assert start.date() == datetime.date(2026, 10, 19)

    def test_custom_week_start(self, now):
        start, _ = current_window(UsageKind.QUOTE, now, tz=SYDNEY, week_start=6)

        assert start.date() == datetime.date(2026, 10, 11)

    def test_calendar_month(self, now):
        start, end = current_window(UsageKind.INVOICE, now, tz=SYDNEY)

        assert start == datetime.datetime(2026, 10, 1, tzinfo=SYDNEY)
        assert end == datetime.datetime(2026, 11, 1, tzinfo=SYDNEY)
        assert period_key(UsageKind.INVOICE, start) == "2026-10"

    def test_december_rolls_over(self):
        december = datetime.datetime(2026, 12, 15, tzinfo=UTC)

        start, end = current_window(UsageKind.INVOICE, december, tz=SYDNEY)

        assert start.month == 12
        assert end == datetime.datetime(2027, 1, 1, tzinfo=SYDNEY)


class _EventStore:
    """In-memory usage_events with the unique slot constraint."""

    def __init__(self, mock_db):
        self.events = []
        self.pending = None
        self.taken_by_others = set()
        mock_db.add.side_effect = self.add
        mock_db.flush.side_effect = self.flush

    def add(self, event):
        self.pending = event

    async def flush(self):
        event, self.pending = self.pending, None
        key = (event.user_id, event.kind, event.period_key, event.slot)
        if key in self.taken_by_others or any(
            (e.user_id, e.kind, e.period_key, e.slot) == key for e in self.events
        ):
            raise IntegrityError("INSERT INTO usage_events ...", {}, Exception("uq_usage_events_slot"))
        self.events.append(event)

    async def count(self, db, user_id, kind, start, end):
        return sum(
            1
            for e in self.events
            if e.user_id == user_id and e.kind == UsageKind(kind).value and start <= e.occurred_at < end
        )


@pytest.fixture
def store(mock_db):
    return _EventStore(mock_db)


@pytest.fixture
def tracker(free_tier, store):
    tracker = QuotaTracker(subscription_service=free_tier)
    tracker.count_in_window = store.count
    return tracker


class TestCheckAndIncrement:
    """Tests for the quota gate."""

    async def test_three_quotes_then_denied(self, tracker, store, mock_db, user_id, now):
        for _ in range(3):
            await tracker.check_and_increment(mock_db, user_id, UsageKind.QUOTE, now)

        with pytest.raises(QuotaExceededError) as exc_info:
            await tracker.check_and_increment(mock_db, user_id, UsageKind.QUOTE, now)

        assert exc_info.value.extra == {"kind": "quote", "used": 3, "limit": 3}
        assert exc_info.value.status_code == 402
        assert len(store.events) == 3

    async def test_new_week_allows_again(self, tracker, store, mock_db, user_id, now):
        for _ in range(3):
            await tracker.check_and_increment(mock_db, user_id, UsageKind.QUOTE, now)

        # Monday 00:05 in Sydney
        next_week = datetime.datetime(2026, 10, 19, 0, 5, tzinfo=SYDNEY)
        event = await tracker.check_and_increment(mock_db, user_id, UsageKind.QUOTE, next_week)

        assert event.period_key == "2026-10-19"
        assert event.slot == 1

    async def test_kinds_are_independent(self, tracker, mock_db, user_id, now):
        for _ in range(3):
            await tracker.check_and_increment(mock_db, user_id, UsageKind.QUOTE, now)

        event = await tracker.check_and_increment(mock_db, user_id, UsageKind.INVOICE, now)

        assert event.kind == "invoice"
        assert event.period_key == "2026-10"

    async def test_users_are_independent(self, tracker, mock_db, user_id, now):
        for _ in range(3):
            await tracker.check_and_increment(mock_db, user_id, UsageKind.QUOTE, now)

        assert await tracker.check_and_increment(mock_db, uuid.uuid4(), UsageKind.QUOTE, now)

    async def test_premium_never_denied(self, premium_tier, store, mock_db, user_id, now):
        tracker = QuotaTracker(subscription_service=premium_tier)
        tracker.count_in_window = store.count

        for _ in range(10):
            assert await tracker.check_and_increment(mock_db, user_id, UsageKind.QUOTE, now) is None
        assert store.events == []

    async def test_zero_limit(self, free_tier, store, mock_db, user_id, now):
        free_tier.get_status.return_value = SubscriptionStatus(
            is_premium=False, limits=QuotaLimits(quotes_per_week=0, invoices_per_month=3)
        )
        tracker = QuotaTracker(subscription_service=free_tier)
        tracker.count_in_window = store.count

        with pytest.raises(QuotaExceededError):
            await tracker.check_and_increment(mock_db, user_id, UsageKind.QUOTE, now)

    async def test_taken_slot_is_retried(self, tracker, store, mock_db, user_id, now):
        """Another device took slot 1 first: the next free slot is used."""
        store.taken_by_others.add((user_id, "quote", "2026-10-12", 1))
        counts = iter([0, 1])

        async def count(*args):
            return next(counts)

        tracker.count_in_window = count

        event = await tracker.check_and_increment(mock_db, user_id, UsageKind.QUOTE, now)

        assert event.slot == 2

    async def test_last_slot_race_is_denied(self, tracker, store, mock_db, user_id, now):
        """Both devices read 2 of 3; the loser re-reads 3 and is refused."""
        store.taken_by_others.add((user_id, "quote", "2026-10-12", 3))
        counts = iter([2, 3])

        async def count(*args):
            return next(counts)

        tracker.count_in_window = count

        with pytest.raises(QuotaExceededError):
            await tracker.check_and_increment(mock_db, user_id, UsageKind.QUOTE, now)
        assert store.events == []

    async def test_contention_gives_up(self, tracker, mock_db, user_id, now):
        async def always_zero(*args):
            return 0

        tracker.count_in_window = always_zero
        mock_db.flush.side_effect = IntegrityError("INSERT", {}, Exception("uq_usage_events_slot"))

        with pytest.raises(QuotaExceededError):
            await tracker.check_and_increment(mock_db, user_id, UsageKind.QUOTE, now)
        assert mock_db.flush.await_count == quota_tracker.MAX_SLOT_ATTEMPTS


class TestGetUsage:
    """Tests for the usage summary."""

    async def test_summary(self, tracker, mock_db, user_id, now):
        for _ in range(2):
            await tracker.check_and_increment(mock_db, user_id, UsageKind.QUOTE, now)
        await tracker.check_and_increment(mock_db, user_id, UsageKind.INVOICE, now)

        summary = await tracker.get_usage(mock_db, user_id, now)

        assert summary.is_premium is False
        assert summary.quotes_this_week == 2
        assert summary.max_quotes_per_week == 3
        assert summary.invoices_this_month == 1
        assert summary.max_invoices_per_month == 3
