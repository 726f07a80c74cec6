"""
Recipe Costing

Cost-of-goods and margin for recipes, derived on every call from the
ingredient price history currently loaded on the objects. Nothing here is
cached: a new price-history row is visible the next time these run.

Callers must eager-load the relationships (see RECIPE_COSTING_OPTIONS and
INGREDIENT_IMPACT_OPTIONS); async sessions cannot lazy-load.
"""
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import selectinload

from backoffice.models.ingredient import Ingredient, IngredientPriceHistory
from backoffice.models.recipe import Recipe, RecipeIngredient
from backoffice.utils.money import ZERO, to_decimal

HUNDRED = Decimal("100")

RECIPE_COSTING_OPTIONS = (
    selectinload(Recipe.ingredient_lines)
    .selectinload(RecipeIngredient.ingredient)
    .selectinload(Ingredient.price_history),
)

INGREDIENT_IMPACT_OPTIONS = (
    selectinload(Ingredient.price_history),
    selectinload(Ingredient.supplier),
    selectinload(Ingredient.recipe_lines)
    .selectinload(RecipeIngredient.recipe)
    .selectinload(Recipe.ingredient_lines)
    .selectinload(RecipeIngredient.ingredient)
    .selectinload(Ingredient.price_history),
)


def latest_price_entry(ingredient: Ingredient) -> Optional[IngredientPriceHistory]:
    entries = ingredient.price_history or []
    if not entries:
        return None
    return max(entries, key=lambda e: (e.log_date, e.id or 0))


def current_price(ingredient: Ingredient) -> Optional[Decimal]:
    """Most recent price-history price, or None when the ingredient was never priced."""
    entry = latest_price_entry(ingredient)
    if entry is None:
        return None
    return to_decimal(entry.price, "price")


def seven_day_change(ingredient: Ingredient) -> Optional[int]:
    """Percent change between the two latest price entries."""
    entries = sorted(
        ingredient.price_history or [],
        key=lambda e: (e.log_date, e.id or 0),
        reverse=True,
    )
    if len(entries) < 2:
        return None
    latest = to_decimal(entries[0].price)
    previous = to_decimal(entries[1].price)
    if previous == 0:
        return 100 if latest > 0 else 0
    return int(round((latest - previous) / previous * HUNDRED))


def line_cost(line: RecipeIngredient) -> Decimal:
    # A missing price contributes nothing
    price = current_price(line.ingredient) or ZERO
    return to_decimal(line.quantity, "quantity") * price


def recipe_cost(recipe: Recipe) -> Decimal:
    return sum((line_cost(line) for line in recipe.ingredient_lines), ZERO)


def recipe_margin(recipe: Recipe) -> Decimal:
    selling_price = to_decimal(recipe.selling_price or 0)
    if selling_price <= 0:
        return ZERO
    cost = recipe_cost(recipe)
    return (selling_price - cost) / selling_price * HUNDRED


def ingredient_cost_breakdown(recipe: Recipe) -> List[Dict]:
    """Per-ingredient cost and share of the recipe cost, largest share first."""
    total = recipe_cost(recipe)
    rows = []
    for line in recipe.ingredient_lines:
        cost = line_cost(line)
        share = cost / total * HUNDRED if total > 0 else ZERO
        rows.append({
            "name": line.ingredient.name,
            "cost": round(float(cost), 2),
            "percentage_of_total": round(float(share), 1),
        })
    rows.sort(key=lambda row: row["percentage_of_total"], reverse=True)
    return rows


def most_impacted_recipe(ingredient: Ingredient) -> Optional[Dict]:
    """
    The recipe whose cost depends most on this ingredient.

    ratio = ingredient cost inside the recipe / recipe cost (0 when the
    recipe costs nothing). Returns name and the ratio as a percentage with
    one decimal, or None when the ingredient is in no recipe.
    """
    price = current_price(ingredient) or ZERO
    best = None
    best_ratio = None
    for line in ingredient.recipe_lines:
        cost = recipe_cost(line.recipe)
        ratio = (price * to_decimal(line.quantity, "quantity")) / cost if cost > 0 else ZERO
        if best_ratio is None or ratio > best_ratio:
            best, best_ratio = line.recipe, ratio

    if best is None:
        return None
    return {
        "name": best.name,
        "ingredient_cost_percentage": round(float(best_ratio * HUNDRED), 1),
    }
