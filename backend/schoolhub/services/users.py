"""User lookups consumed by the onboarding workflow."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.models.user import User


async def user_exists(db: AsyncSession, user_id: str) -> bool:
    result = await db.execute(select(User.id).where(User.id == user_id))
    return result.scalar_one_or_none() is not None
