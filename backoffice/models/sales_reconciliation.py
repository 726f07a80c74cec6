from sqlalchemy import Column, String, DateTime, Date, Numeric, JSON, Index, Text, text
from backoffice.models.base import Base
from backoffice.utils.timezones import utcnow
import enum
import uuid


class ReconciliationStatus(str, enum.Enum):
    PENDING = "pending"
    NEEDS_REVIEW = "needs_review"
    REJECTED = "rejected"
    RECONCILED = "reconciled"   # terminal


class SalesReconciliation(Base):
    __tablename__ = "sales_reconciliations"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    branch = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default=ReconciliationStatus.PENDING.value)
    receipt_file_path = Column(String, nullable=True)
    receipt_mime_type = Column(String, nullable=True)
    total_sales_from_receipt = Column(Numeric(12, 2), nullable=True)
    recipe_breakdown = Column(JSON, nullable=True)
    total_breakdown_sales = Column(Numeric(12, 2), nullable=False, default=0)
    total_cogs = Column(Numeric(12, 2), nullable=False, default=0)
    variance = Column(Numeric(12, 2), nullable=False, default=0)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        # One non-terminal record per branch and day
        Index(
            "uq_sales_reconciliations_active_day",
            "branch",
            "date",
            unique=True,
            postgresql_where=text("status <> 'reconciled'"),
            sqlite_where=text("status <> 'reconciled'"),
        ),
        Index("idx_sales_reconciliations_branch_date", "branch", "date"),
    )
