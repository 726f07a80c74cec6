from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal


class RecipeLineIn(BaseModel):
    ingredient_id: str
    quantity: Decimal = Field(gt=0)


class RecipeCreate(BaseModel):
    name: str
    selling_price: Decimal = Field(ge=0)
    target_margin: Optional[Decimal] = None
    ingredients: List[RecipeLineIn] = Field(default_factory=list)


class RecipeUpdate(RecipeCreate):
    pass


class RecipeLineRead(BaseModel):
    ingredient_id: str
    name: str
    unit: str
    quantity: float
    current_price: Optional[float] = None
    line_cost: float


class RecipeRead(BaseModel):
    id: str
    name: str
    selling_price: float
    target_margin: Optional[float] = None
    cost: float
    margin: float
    ingredients: List[RecipeLineRead]
