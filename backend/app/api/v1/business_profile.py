"""
FastAPI router for the Business Profile
Project: JobQuote (Quote & Invoice Backend)
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import CurrentUser
from app.schemas.business_profile import BusinessProfileRead, BusinessProfileUpdate
from app.services.business_profile_service import BusinessProfileService

router = APIRouter(
    prefix="/business-profile",
    tags=["Business profile"],
)


def get_business_profile_service() -> BusinessProfileService:
    """Dependency returning a BusinessProfileService instance."""
    return BusinessProfileService()


@router.get(
    "",
    name="business_profile_get",
    summary="Get business profile",
    description="Return the business profile of the user (404 until set up).",
    response_model=BusinessProfileRead,
    status_code=status.HTTP_200_OK,
)
async def get_business_profile(
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: BusinessProfileService = Depends(get_business_profile_service),
) -> BusinessProfileRead:
    profile = await service.get(db=db, user_id=user.id)
    return BusinessProfileRead.model_validate(profile)


@router.put(
    "",
    name="business_profile_upsert",
    summary="Create or update business profile",
    description="Only the fields sent are changed. Hourly rate must be between 30 and 300.",
    response_model=BusinessProfileRead,
    status_code=status.HTTP_200_OK,
)
async def upsert_business_profile(
    data: BusinessProfileUpdate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: BusinessProfileService = Depends(get_business_profile_service),
) -> BusinessProfileRead:
    profile = await service.upsert(db=db, user_id=user.id, data=data)
    await db.commit()
    return BusinessProfileRead.model_validate(profile)
