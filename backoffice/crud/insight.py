from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from backoffice.models.ai_insight import AiInsight, InsightEntityKind
from backoffice.models.ingredient import Ingredient
from backoffice.models.recipe import Recipe
from backoffice.models.supplier import Supplier
from backoffice.crud import recipe as recipe_crud


async def get_insights(db: AsyncSession):
    result = await db.execute(
        select(AiInsight)
        .options(selectinload(AiInsight.kpi))
        .order_by(AiInsight.created_at.desc())
    )
    return result.scalars().all()


async def get_insight(db: AsyncSession, insight_id: str):
    result = await db.execute(
        select(AiInsight)
        .where(AiInsight.id == insight_id)
        .options(selectinload(AiInsight.kpi))
    )
    return result.scalar_one_or_none()


async def resolve_entity(db: AsyncSession, insight: AiInsight):
    """Summary of the Supplier, Recipe or Ingredient an insight is about"""
    kind = InsightEntityKind(insight.entity_kind)
    if kind == InsightEntityKind.SUPPLIER:
        supplier = await db.get(Supplier, insight.entity_id)
        if supplier is None:
            return None
        return {"kind": kind.value, "id": supplier.id, "name": supplier.company_name}
    elif kind == InsightEntityKind.RECIPE:
        recipe = await recipe_crud.get_recipe(db, insight.entity_id)
        if recipe is None:
            return None
        return {"kind": kind.value, **recipe_crud.to_read(recipe).model_dump()}
    elif kind == InsightEntityKind.INGREDIENT:
        ingredient = await db.get(Ingredient, insight.entity_id)
        if ingredient is None:
            return None
        return {
            "kind": kind.value,
            "id": ingredient.id,
            "name": ingredient.name,
            "unit": ingredient.unit,
            "category": ingredient.category,
        }
    raise ValueError(f"Unknown insight entity kind: {insight.entity_kind}")
