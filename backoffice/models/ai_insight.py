from sqlalchemy import Column, String, DateTime, JSON, Enum, Index
from sqlalchemy.orm import relationship
from backoffice.models.base import Base
from backoffice.utils.timezones import utcnow
import enum
import uuid


class InsightEntityKind(str, enum.Enum):
    SUPPLIER = "supplier"
    RECIPE = "recipe"
    INGREDIENT = "ingredient"


class AiInsight(Base):
    """AI observation about a Supplier, Recipe or Ingredient (entity_kind + entity_id)."""
    __tablename__ = "ai_insights"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    entity_kind = Column(Enum(InsightEntityKind), nullable=False)
    entity_id = Column(String, nullable=False)
    data = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    kpi = relationship("Kpi", back_populates="ai_insight", uselist=False)

    __table_args__ = (
        Index("idx_ai_insights_entity", "entity_kind", "entity_id"),
    )
