from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import Iterable
import uuid

from backoffice.models.ingredient import Ingredient
from backoffice.models.recipe import Recipe, RecipeIngredient
from backoffice.schemas.recipe import RecipeCreate, RecipeUpdate, RecipeRead, RecipeLineRead
from backoffice.services.costing import (
    RECIPE_COSTING_OPTIONS,
    current_price,
    line_cost,
    recipe_cost,
    recipe_margin,
)


async def _check_ingredients(db: AsyncSession, ingredient_ids: Iterable[str]):
    ids = set(ingredient_ids)
    if not ids:
        return []
    result = await db.execute(select(Ingredient.id).where(Ingredient.id.in_(ids)))
    found = set(result.scalars().all())
    return sorted(ids - found)


def _lines(data: RecipeCreate):
    return [
        RecipeIngredient(ingredient_id=line.ingredient_id, quantity=line.quantity, position=i)
        for i, line in enumerate(data.ingredients)
    ]


async def get_recipe(db: AsyncSession, recipe_id: str, refresh: bool = False):
    query = select(Recipe).where(Recipe.id == recipe_id).options(*RECIPE_COSTING_OPTIONS)
    if refresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_recipes(db: AsyncSession, recipe_ids: Iterable[str] = None):
    query = (
        select(Recipe)
        .options(*RECIPE_COSTING_OPTIONS)
        .order_by(Recipe.name)
        .execution_options(populate_existing=True)
    )
    if recipe_ids is not None:
        query = query.where(Recipe.id.in_(set(recipe_ids)))
    result = await db.execute(query)
    return result.scalars().all()


async def create_recipe(db: AsyncSession, data: RecipeCreate):
    """Create a recipe; returns (recipe, missing_ingredient_ids)"""
    missing = await _check_ingredients(db, (l.ingredient_id for l in data.ingredients))
    if missing:
        return None, missing

    recipe = Recipe(
        id=str(uuid.uuid4()),
        name=data.name.strip(),
        selling_price=data.selling_price,
        target_margin=data.target_margin,
        ingredient_lines=_lines(data),
    )
    db.add(recipe)
    await db.commit()
    return await get_recipe(db, recipe.id, refresh=True), []


async def update_recipe(db: AsyncSession, recipe_id: str, data: RecipeUpdate):
    recipe = await get_recipe(db, recipe_id)
    if not recipe:
        return None, []
    missing = await _check_ingredients(db, (l.ingredient_id for l in data.ingredients))
    if missing:
        return None, missing

    recipe.name = data.name.strip()
    recipe.selling_price = data.selling_price
    recipe.target_margin = data.target_margin
    recipe.ingredient_lines.clear()
    await db.flush()  # unique (recipe_id, ingredient_id) needs the old rows gone first
    recipe.ingredient_lines.extend(_lines(data))

    await db.commit()
    return await get_recipe(db, recipe.id, refresh=True), []


def to_read(recipe: Recipe) -> RecipeRead:
    """Serialize with cost and margin computed from current prices"""
    lines = []
    for line in recipe.ingredient_lines:
        price = current_price(line.ingredient)
        lines.append(RecipeLineRead(
            ingredient_id=line.ingredient_id,
            name=line.ingredient.name,
            unit=line.ingredient.unit,
            quantity=float(line.quantity),
            current_price=float(price) if price is not None else None,
            line_cost=round(float(line_cost(line)), 2),
        ))
    return RecipeRead(
        id=recipe.id,
        name=recipe.name,
        selling_price=float(recipe.selling_price or 0),
        target_margin=float(recipe.target_margin) if recipe.target_margin is not None else None,
        cost=round(float(recipe_cost(recipe)), 2),
        margin=round(float(recipe_margin(recipe)), 1),
        ingredients=lines,
    )
