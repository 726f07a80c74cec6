from sqlalchemy.ext.asyncio import AsyncSession
from decimal import Decimal
from typing import Optional
import uuid

from backoffice.models.team import Team


async def create_team_member(
    db: AsyncSession,
    first_name: str,
    last_name: str,
    hourly_rate: Optional[Decimal] = None,
    branch: Optional[str] = None,
    position: Optional[str] = None,
    staff_code: Optional[str] = None,
):
    """Create a staff member (seed scripts and tests; no public route)"""
    member = Team(
        id=str(uuid.uuid4()),
        first_name=first_name,
        last_name=last_name,
        hourly_rate=hourly_rate,
        branch=branch,
        position=position,
        staff_code=staff_code,
    )
    db.add(member)
    await db.commit()
    return member


async def get_team_member(db: AsyncSession, team_id: str):
    return await db.get(Team, team_id)
