from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Integer, Text, Index, CheckConstraint
from sqlalchemy.orm import relationship
from backoffice.models.base import Base
from backoffice.utils.timezones import utcnow
import uuid


class Ingredient(Base):
    """Ingredient; its price lives only in the price-history log."""
    __tablename__ = "ingredients"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False, unique=True)
    category = Column(String, nullable=False, default="Uncategorised")
    unit = Column(String, nullable=False, default="unit")
    supplier_id = Column(String, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True)
    brand = Column(String, nullable=True)
    storage_type = Column(String, nullable=True)
    reorder_level = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    supplier = relationship("Supplier", back_populates="ingredients")
    price_history = relationship(
        "IngredientPriceHistory",
        back_populates="ingredient",
        cascade="all, delete-orphan",
        order_by="desc(IngredientPriceHistory.log_date)",
    )
    recipe_lines = relationship("RecipeIngredient", back_populates="ingredient")


class IngredientPriceHistory(Base):
    """Append-only price log"""
    __tablename__ = "ingredient_price_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ingredient_id = Column(String, ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    log_date = Column(DateTime, nullable=False, default=utcnow)

    ingredient = relationship("Ingredient", back_populates="price_history")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_price_history_price_nonneg"),
        Index("idx_price_history_ingredient_date", "ingredient_id", "log_date"),
    )
