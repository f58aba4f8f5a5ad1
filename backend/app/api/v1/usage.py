"""
FastAPI router for usage and subscription status
Project: JobQuote (Quote & Invoice Backend)
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import CurrentUser
from app.schemas.usage import UsageSummary
from app.services.quota_tracker import QuotaTracker

router = APIRouter(
    prefix="/usage",
    tags=["Usage"],
)


def get_quota_tracker() -> QuotaTracker:
    """Dependency returning a QuotaTracker instance."""
    return QuotaTracker()


@router.get(
    "",
    name="usage_summary",
    summary="Usage this week and month",
    description="Quotes created this week and invoices created this month, with the user's limits.",
    response_model=UsageSummary,
    status_code=status.HTTP_200_OK,
)
async def get_usage(
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    tracker: QuotaTracker = Depends(get_quota_tracker),
) -> UsageSummary:
    return await tracker.get_usage(db=db, user_id=user.id)
