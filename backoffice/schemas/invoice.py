from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal

from backoffice.models.invoice import InvoiceStatus
from backoffice.schemas.supplier import SupplierRead


class InvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    supplier_id: str
    invoice_number: str
    invoice_date: date
    due_date: Optional[date] = None
    invoice_file: Optional[str] = None
    total: float
    status: InvoiceStatus
    extracted_data: Optional[Dict[str, Any]] = None
    created_at: datetime
    supplier: Optional[SupplierRead] = None


class InvoiceStats(BaseModel):
    processing_queue: int
    needs_review: int
    approved: int
    match_rate: int


class InvoiceList(BaseModel):
    invoices: List[InvoiceRead]
    stats: InvoiceStats


class InvoiceLineIn(BaseModel):
    """A manually corrected line; its total is always qty × price."""
    description: str = Field(min_length=1)
    qty: Decimal = Field(ge=0)
    price: Decimal = Field(ge=0)
    unit: Optional[str] = None
    category: Optional[str] = None


class InvoiceItemsUpdate(BaseModel):
    orders: List[InvoiceLineIn] = Field(min_length=1)


class InvoiceOutcome(BaseModel):
    message: str
    outcome: str  # processed, needs_review, rejected
    invoice: InvoiceRead
