from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from backoffice.core.errors import BusinessRuleError, NotFoundError
from backoffice.crud import recipe as recipe_crud
from backoffice.db import get_db
from backoffice.schemas.recipe import RecipeCreate, RecipeRead, RecipeUpdate

router = APIRouter()


def _missing(ids):
    return BusinessRuleError(f"Ingredient not found: {', '.join(ids)}")


@router.get("/", response_model=List[RecipeRead])
async def list_recipes(db: AsyncSession = Depends(get_db)):
    """All recipes with cost and margin at current prices"""
    return [recipe_crud.to_read(r) for r in await recipe_crud.get_recipes(db)]


@router.post("/", response_model=RecipeRead, status_code=201)
async def create_recipe(data: RecipeCreate, db: AsyncSession = Depends(get_db)):
    recipe, missing = await recipe_crud.create_recipe(db, data)
    if missing:
        raise _missing(missing)
    return recipe_crud.to_read(recipe)


@router.get("/{recipe_id}", response_model=RecipeRead)
async def get_recipe(recipe_id: str, db: AsyncSession = Depends(get_db)):
    recipe = await recipe_crud.get_recipe(db, recipe_id)
    if not recipe:
        raise NotFoundError("Recipe not found.")
    return recipe_crud.to_read(recipe)


@router.put("/{recipe_id}", response_model=RecipeRead)
async def update_recipe(recipe_id: str, data: RecipeUpdate, db: AsyncSession = Depends(get_db)):
    recipe, missing = await recipe_crud.update_recipe(db, recipe_id, data)
    if missing:
        raise _missing(missing)
    if not recipe:
        raise NotFoundError("Recipe not found.")
    return recipe_crud.to_read(recipe)
