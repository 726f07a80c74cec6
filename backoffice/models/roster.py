from sqlalchemy import Column, String, DateTime, Date, Time, Integer, JSON, Index
from backoffice.models.base import Base
from backoffice.utils.timezones import utcnow
import uuid


class Roster(Base):
    """One rostered shift slot in a week (week_start is the Monday)."""
    __tablename__ = "rosters"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    week_start = Column(Date, nullable=False)
    day = Column(String, nullable=False)  # MON, TUE, ...
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    target = Column(Integer, nullable=False, default=6)
    assigned_staff = Column(JSON, nullable=False, default=list)  # team ids
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("idx_rosters_week_start", "week_start"),
    )
