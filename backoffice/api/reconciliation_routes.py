from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import JSONResponse
from datetime import date
from typing import List

from backoffice.dependencies import get_reconciliation_engine
from backoffice.models.sales_reconciliation import ReconciliationStatus
from backoffice.schemas.reconciliation import (
    BreakdownUpdate,
    ReconciliationDashboard,
    ReconciliationOutcome,
    SalesReconciliationRead,
)
from backoffice.services.reconciliation import SalesReconciliationEngine

router = APIRouter()


def _outcome(rec, message: str):
    status = ReconciliationStatus(rec.status)
    body = ReconciliationOutcome(
        message=message,
        outcome=status.value,
        reconciliation=SalesReconciliationRead.model_validate(rec),
    )
    if status == ReconciliationStatus.REJECTED:
        body.message = rec.rejection_reason or "Receipt was rejected."
        return JSONResponse(status_code=422, content=body.model_dump(mode="json"))
    return body


@router.get("/for-date", response_model=SalesReconciliationRead)
async def get_for_date(
    branch: str,
    day: date = Query(..., alias="date"),
    engine: SalesReconciliationEngine = Depends(get_reconciliation_engine),
):
    """The open reconciliation for a branch and day, created if needed"""
    return await engine.get_or_create_for_date(branch, day)


@router.get("/dashboard", response_model=ReconciliationDashboard)
async def get_dashboard(
    branch: str,
    engine: SalesReconciliationEngine = Depends(get_reconciliation_engine),
):
    data = await engine.dashboard(branch)
    return ReconciliationDashboard(
        total_sales_mtd=float(data.total_sales_mtd),
        avg_variance_percent=float(data.avg_variance_percent),
        pending_reconciliations=data.pending_reconciliations,
        needs_review_reconciliations=data.needs_review_reconciliations,
    )


@router.get("/history", response_model=List[SalesReconciliationRead])
async def get_history(
    branch: str,
    engine: SalesReconciliationEngine = Depends(get_reconciliation_engine),
):
    return await engine.history(branch)


@router.post("/{reconciliation_id}/receipt", response_model=ReconciliationOutcome)
async def upload_receipt(
    reconciliation_id: str,
    receipt: UploadFile = File(...),
    engine: SalesReconciliationEngine = Depends(get_reconciliation_engine),
):
    """Upload the day's Z-Read and read its sales total"""
    content = await receipt.read()
    rec = await engine.upload_receipt(reconciliation_id, receipt.filename, content, receipt.content_type)
    return _outcome(rec, "Receipt processed.")


@router.put("/{reconciliation_id}/breakdown", response_model=ReconciliationOutcome)
async def update_breakdown(
    reconciliation_id: str,
    updates: BreakdownUpdate,
    engine: SalesReconciliationEngine = Depends(get_reconciliation_engine),
):
    rec = await engine.update_breakdown(reconciliation_id, updates.items)
    return _outcome(rec, "Sales breakdown updated.")


@router.post("/{reconciliation_id}/confirm", response_model=ReconciliationOutcome)
async def confirm_and_close(
    reconciliation_id: str,
    engine: SalesReconciliationEngine = Depends(get_reconciliation_engine),
):
    rec = await engine.confirm_and_close(reconciliation_id)
    return _outcome(rec, "Reconciliation confirmed and closed.")


@router.post("/{reconciliation_id}/flag", response_model=ReconciliationOutcome)
async def flag_for_review(
    reconciliation_id: str,
    engine: SalesReconciliationEngine = Depends(get_reconciliation_engine),
):
    rec = await engine.flag_for_review(reconciliation_id)
    return _outcome(rec, "Reconciliation flagged for review.")
