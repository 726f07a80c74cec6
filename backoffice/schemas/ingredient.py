from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


class IngredientBase(BaseModel):
    name: str
    category: str = "Uncategorised"
    unit: str = "unit"
    supplier_id: Optional[str] = None
    brand: Optional[str] = None
    storage_type: Optional[str] = None
    reorder_level: Optional[int] = None
    notes: Optional[str] = None


class IngredientCreate(IngredientBase):
    current_price: Decimal = Field(ge=0)


class IngredientUpdate(IngredientBase):
    current_price: Decimal = Field(ge=0)


class PriceHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    price: float
    log_date: datetime


class IngredientRead(IngredientBase):
    id: str
    current_price: Optional[float] = None
    seven_day_change: Optional[int] = None
    price_history: List[PriceHistoryRead] = []
