from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError
import logging
import uuid

from backoffice.core.errors import DuplicateKpiError, NotFoundError
from backoffice.models.ai_insight import AiInsight
from backoffice.models.kpi import Kpi
from backoffice.schemas.kpi import KpiCreate

log = logging.getLogger(__name__)


async def get_kpis(db: AsyncSession):
    result = await db.execute(select(Kpi).order_by(Kpi.created_at.desc()))
    return result.scalars().all()


async def get_kpi_for_insight(db: AsyncSession, ai_insight_id: str):
    result = await db.execute(select(Kpi).where(Kpi.ai_insight_id == ai_insight_id))
    return result.scalars().first()


async def create_kpi(db: AsyncSession, data: KpiCreate):
    """Promote an insight to a tracked KPI; one KPI per insight"""
    insight = await db.get(AiInsight, data.ai_insight_id)
    if insight is None:
        raise NotFoundError("AI insight not found.")

    if await get_kpi_for_insight(db, data.ai_insight_id):
        raise DuplicateKpiError("A KPI for this insight already exists.")

    kpi = Kpi(
        id=str(uuid.uuid4()),
        ai_insight_id=data.ai_insight_id,
        title=data.title,
        description=data.description,
        baseline_value=data.baseline_value,
        target_value=data.target_value,
        unit=data.unit,
        start_date=data.start_date,
        end_date=data.end_date,
        milestones=[m.model_dump(mode="json") for m in data.milestones] if data.milestones else None,
    )
    db.add(kpi)
    try:
        await db.commit()
    except IntegrityError:
        # concurrent create for the same insight hit the unique constraint
        await db.rollback()
        log.warning("duplicate KPI insert rejected: insight=%s", data.ai_insight_id)
        raise DuplicateKpiError("A KPI for this insight already exists.")

    log.info("kpi created: kpi=%s insight=%s", kpi.id, kpi.ai_insight_id)
    return kpi
