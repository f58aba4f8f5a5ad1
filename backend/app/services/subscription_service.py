"""
Service Layer for subscription status
Project: JobQuote (Quote & Invoice Backend)

Answers "is this user premium, and what are their limits?" for the
usage quota tracker.
"""

import datetime
import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.usage import Subscription
from app.schemas.usage import QuotaLimits, SubscriptionStatus

logger = logging.getLogger(__name__)


class SubscriptionService:
    """
    Subscription-status lookup.

    A user without a subscription row is on the free tier with the
    configured default limits. Premium users have no limits.
    """

    @staticmethod
    def free_tier_limits() -> QuotaLimits:
        """Default limits of the free tier."""
        return QuotaLimits(
            quotes_per_week=settings.free_quotes_per_week,
            invoices_per_month=settings.free_invoices_per_month,
        )

    async def get_status(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        now: Optional[datetime.datetime] = None,
    ) -> SubscriptionStatus:
        """
        Return the subscription status of a user.

        Args:
            db: Database session
            user_id: UUID of the user
            now: Reference time for the premium expiry check

        Returns:
            SubscriptionStatus with limits (None = unlimited)
        """
        now = now or datetime.datetime.now(datetime.timezone.utc)

        result = await db.execute(
            select(Subscription).where(Subscription.user_id == user_id)
        )
        subscription = result.scalar_one_or_none()

        if subscription is None:
            return SubscriptionStatus(is_premium=False, limits=self.free_tier_limits())

        if subscription.is_premium and (
            subscription.expires_at is None or subscription.expires_at > now
        ):
            return SubscriptionStatus(is_premium=True, limits=QuotaLimits())

        if subscription.is_premium:
            logger.info("Premium subscription of user %s expired at %s", user_id, subscription.expires_at)

        defaults = self.free_tier_limits()
        return SubscriptionStatus(
            is_premium=False,
            limits=QuotaLimits(
                quotes_per_week=(
                    subscription.quotes_per_week
                    if subscription.quotes_per_week is not None
                    else defaults.quotes_per_week
                ),
                invoices_per_month=(
                    subscription.invoices_per_month
                    if subscription.invoices_per_month is not None
                    else defaults.invoices_per_month
                ),
            ),
        )
