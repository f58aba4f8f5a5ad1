"""
Service Layer for the Business Profile
Project: JobQuote (Quote & Invoice Backend)
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models import BusinessProfile
from app.schemas.business_profile import BusinessProfileUpdate, validate_profile_fields

logger = logging.getLogger(__name__)


class BusinessProfileService:
    """Read and upsert the single business profile of a user."""

    async def find(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[BusinessProfile]:
        """Return the profile of a user, or None."""
        result = await db.execute(
            select(BusinessProfile).where(BusinessProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get(self, db: AsyncSession, user_id: uuid.UUID) -> BusinessProfile:
        """
        Return the profile of a user.

        Raises:
            NotFoundError: If the user has not set up a profile yet
        """
        profile = await self.find(db, user_id)
        if profile is None:
            raise NotFoundError("Business profile not found")
        return profile

    async def upsert(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        data: BusinessProfileUpdate,
    ) -> BusinessProfile:
        """
        Create the profile or update the fields sent.

        Args:
            db: Database session
            user_id: UUID of the owner
            data: Profile fields (unset fields are left unchanged)

        Returns:
            The stored profile

        Raises:
            BusinessValidationError: Invalid email or hourly rate
        """
        update_data = data.model_dump(exclude_unset=True)
        profile = await self.find(db, user_id)

        validate_profile_fields(
            update_data.get("email", profile.email if profile else None),
            update_data.get("hourly_rate", profile.hourly_rate if profile else None),
        )

        if profile is None:
            # Explicit None values must not override column defaults
            values = {k: v for k, v in update_data.items() if v is not None}
            profile = BusinessProfile(user_id=user_id, **values)
            db.add(profile)
            logger.info("Created business profile for user %s", user_id)
        else:
            for field, value in update_data.items():
                if value is None and field in ("country", "hourly_rate", "gst_enabled"):
                    continue
                setattr(profile, field, value)
            logger.info("Updated business profile for user %s", user_id)

        await db.flush()
        await db.refresh(profile)
        return profile
