from typing import List
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from homeplanner.models.family import FamilyMember


async def is_user_member(db: AsyncSession, family_id: str, user_id: str) -> bool:
    """Check whether a user belongs to the family"""
    result = await db.execute(
        select(FamilyMember.id).where(
            and_(
                FamilyMember.family_id == family_id,
                FamilyMember.user_id == user_id
            )
        )
    )
    return result.first() is not None


async def get_family_members(db: AsyncSession, family_id: str) -> List[FamilyMember]:
    result = await db.execute(
        select(FamilyMember).where(FamilyMember.family_id == family_id)
    )
    return list(result.scalars().all())
