from sqlalchemy import Column, String, DateTime, Date, ForeignKey, Numeric, JSON, Index
from sqlalchemy.orm import relationship
from backoffice.models.base import Base
from backoffice.utils.timezones import utcnow
import enum
import uuid


class InvoiceStatus(str, enum.Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"      # AI extraction in flight
    PROCESSED = "processed"
    NEEDS_REVIEW = "needs review"
    REJECTED = "rejected"


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    supplier_id = Column(String, ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False)
    invoice_number = Column(String, nullable=False, unique=True)
    invoice_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)
    invoice_file = Column(String, nullable=True)  # storage key
    file_mime_type = Column(String, nullable=True)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String, nullable=False, default=InvoiceStatus.UPLOADED.value)
    extracted_data = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    supplier = relationship("Supplier", back_populates="invoices")

    __table_args__ = (
        Index("idx_invoices_supplier", "supplier_id"),
        Index("idx_invoices_status", "status"),
    )
