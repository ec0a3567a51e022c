from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from homeplanner.models.enums import ActorType
from homeplanner.models.log import Log


async def create(
    db: AsyncSession,
    family_id: Optional[str],
    actor_id: Optional[str],
    action: str,
    details: Optional[Dict[str, Any]] = None,
    actor_type: ActorType = ActorType.USER
) -> Log:
    """Record an audit log entry"""
    entry = Log(
        family_id=family_id,
        actor_id=actor_id,
        actor_type=actor_type,
        action=action,
        details=details
    )
    db.add(entry)
    await db.flush()
    return entry
