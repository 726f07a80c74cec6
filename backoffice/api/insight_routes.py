from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from backoffice.core.errors import NotFoundError
from backoffice.crud import insight as insight_crud
from backoffice.db import get_db
from backoffice.dependencies import get_insight_generator
from backoffice.schemas.insight import AiInsightDetail, AiInsightRead, InsightBatchRead
from backoffice.services.insight_generator import InsightBatchGenerator

router = APIRouter()


@router.get("/", response_model=List[AiInsightRead])
async def list_insights(db: AsyncSession = Depends(get_db)):
    """All insights, newest first, with their KPI"""
    return await insight_crud.get_insights(db)


@router.post("/generate-all", response_model=InsightBatchRead)
async def generate_all(generator: InsightBatchGenerator = Depends(get_insight_generator)):
    """Regenerate insights for every supplier, recipe and ingredient"""
    result = await generator.generate_all()
    return InsightBatchRead(
        message=f"Insight generation process completed successfully for {result.generated} items.",
        generated=result.generated,
        errors=result.errors,
    )


@router.get("/{insight_id}", response_model=AiInsightDetail)
async def get_insight(insight_id: str, db: AsyncSession = Depends(get_db)):
    insight = await insight_crud.get_insight(db, insight_id)
    if not insight:
        raise NotFoundError("AI insight not found.")
    detail = AiInsightDetail.model_validate(insight)
    detail.entity = await insight_crud.resolve_entity(db, insight)
    return detail
