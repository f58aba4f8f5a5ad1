"""
Usage quota tracker
Project: JobQuote (Quote & Invoice Backend)

Gates quote and invoice creation for free-tier users.

Usage is counted on every check from the creation events whose timestamp
falls in the current window (week for quotes, calendar month for
invoices), so nothing is ever reset and there is no stored period start.

Two devices racing for the last slot are separated by the unique
constraint on (user_id, kind, period_key, slot): the loser re-reads the
count and gets QuotaExceededError like any other over-limit request.
"""

import datetime
import logging
import uuid
from typing import Optional, Union
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import QuotaExceededError
from app.models.usage import UsageEvent
from app.schemas.usage import UsageKind, UsageSummary
from app.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

# Attempts at taking a slot before giving up
MAX_SLOT_ATTEMPTS = 5


# ------------------------------------------------------------
# Windows
# ------------------------------------------------------------

def current_window(
    kind: UsageKind,
    now: datetime.datetime,
    tz: Union[str, ZoneInfo, None] = None,
    week_start: Optional[int] = None,
) -> tuple[datetime.datetime, datetime.datetime]:
    """
    Return the [start, end) window containing `now`.

    quote: 7 days from midnight of the week start day
    invoice: first day of the month to first day of the next month

    Args:
        kind: Usage kind
        now: Reference time (naive values are taken as UTC)
        tz: Timezone name or ZoneInfo (default: settings.quota_timezone)
        week_start: First day of the week, 0 = Monday (default: settings.quota_week_start)

    Returns:
        (start, end) as aware datetimes in `tz`
    """
    if tz is None:
        tz = settings.quota_timezone
    if isinstance(tz, str):
        tz = ZoneInfo(tz)
    if week_start is None:
        week_start = settings.quota_week_start
    if now.tzinfo is None:
        now = now.replace(tzinfo=datetime.timezone.utc)

    local = now.astimezone(tz)

    if UsageKind(kind) == UsageKind.QUOTE:
        start_day = local.date() - datetime.timedelta(days=(local.weekday() - week_start) % 7)
        end_day = start_day + datetime.timedelta(days=7)
        start = datetime.datetime.combine(start_day, datetime.time.min, tzinfo=tz)
        end = datetime.datetime.combine(end_day, datetime.time.min, tzinfo=tz)
        return start, end

    start = datetime.datetime(local.year, local.month, 1, tzinfo=tz)
    if local.month == 12:
        end = datetime.datetime(local.year + 1, 1, 1, tzinfo=tz)
    else:
        end = datetime.datetime(local.year, local.month + 1, 1, tzinfo=tz)
    return start, end


def period_key(kind: UsageKind, window_start: datetime.datetime) -> str:
    """Label of a window: "YYYY-MM-DD" (week start) for quotes, "YYYY-MM" for invoices."""
    if UsageKind(kind) == UsageKind.QUOTE:
        return window_start.date().isoformat()
    return f"{window_start.year:04d}-{window_start.month:02d}"


# ------------------------------------------------------------
# Tracker
# ------------------------------------------------------------

class QuotaTracker:
    """
    Checks and records metered creations.

    check_and_increment must run in the same transaction as the insert it
    guards, before it: if the insert fails, the recorded event rolls back
    with it.
    """

    def __init__(self, subscription_service: Optional[SubscriptionService] = None):
        self.subscriptions = subscription_service or SubscriptionService()

    async def count_in_window(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        kind: UsageKind,
        start: datetime.datetime,
        end: datetime.datetime,
    ) -> int:
        """Count the events of (user, kind) with occurred_at in [start, end)."""
        stmt = (
            select(func.count(UsageEvent.id))
            .where(
                UsageEvent.user_id == user_id,
                UsageEvent.kind == UsageKind(kind).value,
                UsageEvent.occurred_at >= start,
                UsageEvent.occurred_at < end,
            )
        )
        result = await db.execute(stmt)
        return result.scalar_one() or 0

    async def check_and_increment(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        kind: UsageKind,
        now: Optional[datetime.datetime] = None,
    ) -> Optional[UsageEvent]:
        """
        Consume one unit of quota, or refuse.

        Args:
            db: Database session
            user_id: UUID of the user
            kind: quote or invoice
            now: Time of the creation (default: current UTC time)

        Returns:
            The recorded UsageEvent, or None for unlimited users

        Raises:
            QuotaExceededError: If the window is already full
        """
        now = now or datetime.datetime.now(datetime.timezone.utc)
        kind = UsageKind(kind)

        status = await self.subscriptions.get_status(db, user_id, now)
        limit = status.limits.for_kind(kind)
        if status.is_premium or limit is None:
            return None

        start, end = current_window(kind, now)
        key = period_key(kind, start)

        for attempt in range(1, MAX_SLOT_ATTEMPTS + 1):
            used = await self.count_in_window(db, user_id, kind, start, end)
            if used >= limit:
                logger.info(
                    "Quota exceeded: user=%s kind=%s used=%s limit=%s",
                    user_id, kind.value, used, limit,
                )
                raise QuotaExceededError(
                    extra={"kind": kind.value, "used": used, "limit": limit}
                )

            event = UsageEvent(
                id=uuid.uuid4(),
                user_id=user_id,
                kind=kind.value,
                occurred_at=now,
                period_key=key,
                slot=used + 1,
            )
            try:
                async with db.begin_nested():
                    db.add(event)
                    await db.flush()
            except IntegrityError:
                logger.info(
                    "Usage slot %s of %s/%s already taken (attempt %s)",
                    used + 1, kind.value, key, attempt,
                )
                continue

            logger.debug("Usage recorded: user=%s kind=%s slot=%s/%s", user_id, kind.value, used + 1, limit)
            return event

        logger.info("Quota slot contention for user=%s kind=%s, refusing", user_id, kind.value)
        raise QuotaExceededError(extra={"kind": kind.value, "limit": limit})

    async def get_usage(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        now: Optional[datetime.datetime] = None,
    ) -> UsageSummary:
        """
        Usage of the current week and month.

        Args:
            db: Database session
            user_id: UUID of the user
            now: Reference time (default: current UTC time)

        Returns:
            UsageSummary
        """
        now = now or datetime.datetime.now(datetime.timezone.utc)
        status = await self.subscriptions.get_status(db, user_id, now)

        week_start, week_end = current_window(UsageKind.QUOTE, now)
        month_start, month_end = current_window(UsageKind.INVOICE, now)

        quotes = await self.count_in_window(db, user_id, UsageKind.QUOTE, week_start, week_end)
        invoices = await self.count_in_window(db, user_id, UsageKind.INVOICE, month_start, month_end)

        return UsageSummary(
            is_premium=status.is_premium,
            quotes_this_week=quotes,
            max_quotes_per_week=status.limits.quotes_per_week,
            invoices_this_month=invoices,
            max_invoices_per_month=status.limits.invoices_per_month,
        )
