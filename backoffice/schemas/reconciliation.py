from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal

from backoffice.models.sales_reconciliation import ReconciliationStatus


class BreakdownItemIn(BaseModel):
    recipe_id: str
    quantity: int = Field(ge=1)
    actual_price: Decimal = Field(ge=0)


class BreakdownUpdate(BaseModel):
    items: List[BreakdownItemIn]


class SalesReconciliationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    branch: str
    date: date
    status: ReconciliationStatus
    receipt_file_path: Optional[str] = None
    total_sales_from_receipt: Optional[float] = None
    recipe_breakdown: Optional[List[Dict[str, Any]]] = None
    total_breakdown_sales: float
    total_cogs: float
    variance: float
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ReconciliationOutcome(BaseModel):
    message: str
    outcome: str  # pending, needs_review, rejected, reconciled
    reconciliation: SalesReconciliationRead


class ReconciliationDashboard(BaseModel):
    total_sales_mtd: float
    avg_variance_percent: float
    pending_reconciliations: int
    needs_review_reconciliations: int
