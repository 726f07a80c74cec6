from sqlalchemy import Column, String, DateTime, Date, ForeignKey, Numeric, JSON, Text
from sqlalchemy.orm import relationship
from backoffice.models.base import Base
from backoffice.utils.timezones import utcnow
import uuid


class Kpi(Base):
    __tablename__ = "kpis"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # unique: one KPI per insight; detached (NULL) when insights are regenerated
    ai_insight_id = Column(
        String, ForeignKey("ai_insights.id", ondelete="SET NULL"), nullable=True, unique=True
    )
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    baseline_value = Column(Numeric(12, 2), nullable=False)
    target_value = Column(Numeric(12, 2), nullable=False)
    unit = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    milestones = Column(JSON, nullable=True)
    status = Column(String, nullable=False, default="active")  # active, completed, archived
    created_at = Column(DateTime, default=utcnow)

    ai_insight = relationship("AiInsight", back_populates="kpi")
