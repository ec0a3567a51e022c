from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from homeplanner.models.family import Child


async def find_by_family_id(db: AsyncSession, family_id: str) -> List[Child]:
    """Get the children of a family"""
    result = await db.execute(
        select(Child).where(Child.family_id == family_id).order_by(Child.name)
    )
    return list(result.scalars().all())
