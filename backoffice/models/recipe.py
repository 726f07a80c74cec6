from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Integer, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from backoffice.models.base import Base
from backoffice.utils.timezones import utcnow
import uuid


class Recipe(Base):
    """Menu item. cost/margin are computed on read by services.costing."""
    __tablename__ = "recipes"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False, unique=True)
    selling_price = Column(Numeric(10, 2), nullable=False, default=0)
    target_margin = Column(Numeric(5, 2), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    ingredient_lines = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.position",
    )


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipe_id = Column(String, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    ingredient_id = Column(String, ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Numeric(10, 3), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    recipe = relationship("Recipe", back_populates="ingredient_lines")
    ingredient = relationship("Ingredient", back_populates="recipe_lines")

    __table_args__ = (
        UniqueConstraint("recipe_id", "ingredient_id", name="uq_recipe_ingredient"),
        Index("idx_recipe_ingredients_recipe", "recipe_id"),
    )
