from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date
from typing import Optional

from backoffice.crud import invoice as invoice_crud
from backoffice.core.errors import NotFoundError
from backoffice.db import get_db
from backoffice.dependencies import get_invoice_workflow
from backoffice.models.invoice import InvoiceStatus
from backoffice.schemas.invoice import (
    InvoiceItemsUpdate,
    InvoiceList,
    InvoiceOutcome,
    InvoiceRead,
    InvoiceStats,
)
from backoffice.services.invoice_workflow import InvoiceWorkflow

router = APIRouter()

OUTCOME_MESSAGES = {
    InvoiceStatus.PROCESSED: "Invoice processed successfully.",
    InvoiceStatus.NEEDS_REVIEW: "Invoice processed with discrepancies and needs review.",
}


def _outcome(invoice, message: str = None):
    status = InvoiceStatus(invoice.status)
    body = InvoiceOutcome(
        message=message or OUTCOME_MESSAGES.get(status, f"Invoice status set to: {status.value}"),
        outcome=status.value.replace(" ", "_"),
        invoice=InvoiceRead.model_validate(invoice),
    )
    if status == InvoiceStatus.REJECTED:
        reason = (invoice.extracted_data or {}).get("invalid_reason") or "Invoice was rejected."
        body.message = reason
        return JSONResponse(status_code=422, content=body.model_dump(mode="json"))
    return body


@router.post("/", response_model=InvoiceRead, status_code=201)
async def create_invoice(
    supplier_id: str = Form(...),
    invoice_date: date = Form(...),
    due_date: Optional[date] = Form(None),
    invoice_file: UploadFile = File(...),
    workflow: InvoiceWorkflow = Depends(get_invoice_workflow),
):
    """Upload an invoice document for a supplier"""
    content = await invoice_file.read()
    return await workflow.create_invoice(
        supplier_id,
        invoice_date,
        due_date,
        invoice_file.filename,
        content,
        invoice_file.content_type,
    )


@router.get("/", response_model=InvoiceList)
async def list_invoices(
    supplier_id: str = None,
    status: str = None,
    db: AsyncSession = Depends(get_db),
):
    """All invoices with queue stats"""
    invoices = await invoice_crud.get_invoices(db, supplier_id, status)
    return InvoiceList(
        invoices=[InvoiceRead.model_validate(i) for i in invoices],
        stats=InvoiceStats(**invoice_crud.invoice_stats(invoices)),
    )


@router.get("/{invoice_id}", response_model=InvoiceRead)
async def get_invoice(invoice_id: str, db: AsyncSession = Depends(get_db)):
    inv = await invoice_crud.get_invoice(db, invoice_id)
    if not inv:
        raise NotFoundError("Invoice not found.")
    return inv


@router.post("/{invoice_id}/process", response_model=InvoiceOutcome)
async def process_invoice(
    invoice_id: str,
    workflow: InvoiceWorkflow = Depends(get_invoice_workflow),
):
    """Run AI extraction and arithmetic validation"""
    invoice = await workflow.process(invoice_id)
    return _outcome(invoice)


@router.put("/{invoice_id}/items", response_model=InvoiceOutcome)
async def update_invoice_items(
    invoice_id: str,
    updates: InvoiceItemsUpdate,
    workflow: InvoiceWorkflow = Depends(get_invoice_workflow),
):
    """Replace line items with manually corrected ones"""
    invoice = await workflow.update_items(invoice_id, updates.orders)
    return _outcome(invoice, "Invoice items updated successfully.")


@router.delete("/{invoice_id}", status_code=204)
async def delete_invoice(
    invoice_id: str,
    workflow: InvoiceWorkflow = Depends(get_invoice_workflow),
):
    await workflow.delete_invoice(invoice_id)
