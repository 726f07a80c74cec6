from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.errors import NotFoundError
from backoffice.crud import ingredient as ingredient_crud
from backoffice.db import get_db
from backoffice.models.ingredient import Ingredient
from backoffice.schemas.ingredient import IngredientCreate, IngredientRead, IngredientUpdate, PriceHistoryRead
from backoffice.services.costing import current_price, seven_day_change

router = APIRouter()


def _read(ingredient: Ingredient) -> IngredientRead:
    price = current_price(ingredient)
    return IngredientRead(
        id=ingredient.id,
        name=ingredient.name,
        category=ingredient.category,
        unit=ingredient.unit,
        supplier_id=ingredient.supplier_id,
        brand=ingredient.brand,
        storage_type=ingredient.storage_type,
        reorder_level=ingredient.reorder_level,
        notes=ingredient.notes,
        current_price=float(price) if price is not None else None,
        seven_day_change=seven_day_change(ingredient),
        price_history=[PriceHistoryRead.model_validate(e) for e in ingredient.price_history],
    )


@router.post("/", response_model=IngredientRead, status_code=201)
async def create_ingredient(data: IngredientCreate, db: AsyncSession = Depends(get_db)):
    """Create an ingredient (or update the one with the same name)"""
    return _read(await ingredient_crud.create_ingredient(db, data))


@router.get("/{ingredient_id}", response_model=IngredientRead)
async def get_ingredient(ingredient_id: str, db: AsyncSession = Depends(get_db)):
    ingredient = await ingredient_crud.get_ingredient(db, ingredient_id)
    if not ingredient:
        raise NotFoundError("Ingredient not found.")
    return _read(ingredient)


@router.put("/{ingredient_id}", response_model=IngredientRead)
async def update_ingredient(ingredient_id: str, data: IngredientUpdate, db: AsyncSession = Depends(get_db)):
    ingredient = await ingredient_crud.update_ingredient(db, ingredient_id, data)
    if not ingredient:
        raise NotFoundError("Ingredient not found.")
    return _read(ingredient)
