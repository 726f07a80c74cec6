"""
Insight Batch Generator

Builds a metrics payload for every supplier, recipe and ingredient that has
something to analyze and asks the AI insight engine to summarize it.

One failing entity never stops the batch: its error is logged and collected.
The old insights are only replaced when at least one new insight came back;
a batch that produces nothing reports every collected error and leaves the
existing insights untouched.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.errors import InsightGenerationError
from backoffice.crud import ingredient as ingredient_crud
from backoffice.crud import recipe as recipe_crud
from backoffice.crud import supplier as supplier_crud
from backoffice.models.ai_insight import AiInsight, InsightEntityKind
from backoffice.models.ingredient import Ingredient
from backoffice.models.kpi import Kpi
from backoffice.models.recipe import Recipe
from backoffice.models.supplier import Supplier
from backoffice.services.costing import (
    current_price,
    ingredient_cost_breakdown,
    most_impacted_recipe,
    recipe_cost,
    recipe_margin,
)
from backoffice.utils.money import ZERO, to_decimal
from backoffice.utils.timezones import utcnow

log = logging.getLogger(__name__)

TOP_INGREDIENTS = 5
RECENT_PRICES = 10
NO_INSIGHTS_MESSAGE = (
    "No insights could be generated. This might be due to a lack of data or an "
    "API connection issue. Check server logs for details."
)

DATA_TYPES = {
    InsightEntityKind.SUPPLIER: "Supplier",
    InsightEntityKind.RECIPE: "Recipe",
    InsightEntityKind.INGREDIENT: "Ingredient",
}


@dataclass
class InsightBatchResult:
    generated: int
    errors: List[str] = field(default_factory=list)


def supplier_payload(supplier: Supplier) -> Optional[Dict[str, Any]]:
    if not supplier.invoices and not supplier.ingredients:
        return None
    total_spend = sum((to_decimal(i.total or 0) for i in supplier.invoices), ZERO)
    return {
        "name": supplier.company_name,
        "total_spend_mtd": float(total_spend),
        "invoice_count": len(supplier.invoices),
        "ingredients_supplied_count": len(supplier.ingredients),
        "top_ingredients": [i.name for i in supplier.ingredients[:TOP_INGREDIENTS]],
    }


def recipe_payload(recipe: Recipe) -> Optional[Dict[str, Any]]:
    if not recipe.ingredient_lines:
        return None
    return {
        "name": recipe.name,
        "selling_price": float(recipe.selling_price or 0),
        "total_cost": float(recipe_cost(recipe)),
        "actual_margin_percent": round(float(recipe_margin(recipe)), 1),
        "ingredients": ingredient_cost_breakdown(recipe),
    }


def ingredient_payload(ingredient: Ingredient) -> Optional[Dict[str, Any]]:
    if not ingredient.price_history:
        return None
    recent = sorted(ingredient.price_history, key=lambda e: (e.log_date, e.id), reverse=True)
    return {
        "name": ingredient.name,
        "current_price": float(current_price(ingredient) or 0),
        "unit": ingredient.unit,
        "supplier": ingredient.supplier.company_name if ingredient.supplier else "N/A",
        "price_history_recent": [
            {"date": e.log_date.date().isoformat(), "price": float(e.price)}
            for e in recent[:RECENT_PRICES]
        ],
        "most_impacted_recipe": most_impacted_recipe(ingredient),
    }


class InsightBatchGenerator:
    def __init__(self, db: AsyncSession, ai):
        self.db = db
        self.ai = ai

    async def _summarize(
        self,
        kind: InsightEntityKind,
        entity,
        build: Callable[[Any], Optional[Dict[str, Any]]],
        results: List[Tuple[InsightEntityKind, str, Dict[str, Any]]],
        errors: List[str],
    ) -> None:
        label = DATA_TYPES[kind]
        try:
            data = build(entity)
            if data is None:
                log.debug("insight skipped, nothing to analyze: %s=%s", kind.value, entity.id)
                return
            insight = await self.ai.summarize_insight({"dataType": label, "data": data})
        except Exception as exc:
            errors.append(f"{label} ID {entity.id}: {exc}")
            log.error("Insight generation crashed for %s ID %s: %s", label, entity.id, exc)
            return

        if not insight:
            log.warning("AI returned an empty insight for %s ID %s", label, entity.id)
            return
        results.append((kind, entity.id, insight))

    async def generate_all(self) -> InsightBatchResult:
        results: List[Tuple[InsightEntityKind, str, Dict[str, Any]]] = []
        errors: List[str] = []

        for supplier in await supplier_crud.get_suppliers_for_insights(self.db):
            await self._summarize(InsightEntityKind.SUPPLIER, supplier, supplier_payload, results, errors)
        for recipe in await recipe_crud.get_recipes(self.db):
            await self._summarize(InsightEntityKind.RECIPE, recipe, recipe_payload, results, errors)
        for ingredient in await ingredient_crud.get_ingredients_for_insights(self.db):
            await self._summarize(InsightEntityKind.INGREDIENT, ingredient, ingredient_payload, results, errors)

        if not results:
            message = NO_INSIGHTS_MESSAGE
            if errors:
                message += "\n\nError Details:\n- " + "\n- ".join(errors)
            log.error("insight batch produced nothing: errors=%s", len(errors))
            raise InsightGenerationError(message)

        # replace the previous batch in one transaction; KPIs outlive their insight
        await self.db.execute(
            update(Kpi).where(Kpi.ai_insight_id.is_not(None)).values(ai_insight_id=None)
        )
        await self.db.execute(delete(AiInsight))
        now = utcnow()
        for kind, entity_id, data in results:
            self.db.add(AiInsight(
                id=str(uuid.uuid4()),
                entity_kind=kind,
                entity_id=entity_id,
                data=data,
                created_at=now,
            ))
        await self.db.commit()

        log.info("insight batch complete: generated=%s errors=%s", len(results), len(errors))
        return InsightBatchResult(generated=len(results), errors=errors)
