from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy import func
from decimal import Decimal
from typing import Optional
import logging
import uuid

from backoffice.models.ingredient import Ingredient, IngredientPriceHistory
from backoffice.schemas.ingredient import IngredientCreate, IngredientUpdate
from backoffice.services.costing import INGREDIENT_IMPACT_OPTIONS, current_price
from backoffice.utils.money import money
from backoffice.utils.timezones import utcnow

log = logging.getLogger(__name__)

INGREDIENT_FIELDS = (
    "category", "unit", "supplier_id", "brand", "storage_type", "reorder_level", "notes",
)


def record_price(ingredient: Ingredient, price: Optional[Decimal]) -> bool:
    """
    Append a price-history entry when the price differs from the current one.

    The ingredient's price_history collection must already be loaded (or be a
    fresh list on a new object). Returns True when an entry was added.
    """
    if price is None:
        return False
    price = money(price)
    if current_price(ingredient) == price:
        return False
    ingredient.price_history.append(
        IngredientPriceHistory(price=price, log_date=utcnow())
    )
    log.info("price logged: ingredient=%s price=%s", ingredient.name, price)
    return True


async def get_ingredient(db: AsyncSession, ingredient_id: str, refresh: bool = False):
    query = (
        select(Ingredient)
        .where(Ingredient.id == ingredient_id)
        .options(selectinload(Ingredient.price_history), selectinload(Ingredient.supplier))
    )
    if refresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def find_by_name(db: AsyncSession, name: str):
    """Case-insensitive name match"""
    result = await db.execute(
        select(Ingredient)
        .where(func.lower(Ingredient.name) == name.strip().lower())
        .options(selectinload(Ingredient.price_history))
    )
    return result.scalars().first()


async def create_ingredient(db: AsyncSession, data: IngredientCreate):
    """Create (or update by name) an ingredient and log its price"""
    ingredient = await find_by_name(db, data.name)
    if ingredient is None:
        ingredient = Ingredient(id=str(uuid.uuid4()), name=data.name.strip(), price_history=[])
        db.add(ingredient)

    for key in INGREDIENT_FIELDS:
        setattr(ingredient, key, getattr(data, key))
    record_price(ingredient, data.current_price)

    await db.commit()
    return await get_ingredient(db, ingredient.id, refresh=True)


async def update_ingredient(db: AsyncSession, ingredient_id: str, data: IngredientUpdate):
    ingredient = await get_ingredient(db, ingredient_id)
    if not ingredient:
        return None

    ingredient.name = data.name.strip()
    for key in INGREDIENT_FIELDS:
        setattr(ingredient, key, getattr(data, key))
    record_price(ingredient, data.current_price)

    await db.commit()
    return await get_ingredient(db, ingredient.id, refresh=True)


async def get_ingredients_for_insights(db: AsyncSession):
    result = await db.execute(
        select(Ingredient)
        .options(*INGREDIENT_IMPACT_OPTIONS)
        .order_by(Ingredient.name)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()
