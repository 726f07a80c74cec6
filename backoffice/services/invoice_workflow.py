"""
Invoice Workflow

Drives an invoice from upload to a reviewed record:

    uploaded -> processing -> processed | needs review | rejected

`process` sends the stored document to the AI extractor, then checks the
structure of what came back before anything is trusted. Declared-invalid
documents and documents without line items or an invoice number end up
`rejected` with a reason. Everything else goes through the line-item
validator, which decides between `processed` and `needs review`.

Any failure while talking to the AI or reading the file rolls back the
partial work and parks the invoice in `needs review`, so it is never left
in `processing`. The caller gets a ProcessingFailedError and can retry.
"""
import copy
import logging
import random
import string
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.constants import (
    ALLOWED_UPLOAD_TYPES,
    MAX_INVOICE_BYTES,
    UPLOAD_PREFIXES,
    upload_extension,
)
from backoffice.core.errors import (
    BusinessRuleError,
    ConflictError,
    InvoiceInProgressError,
    NotFoundError,
    ProcessingFailedError,
)
from backoffice.crud import ingredient as ingredient_crud
from backoffice.crud import invoice as invoice_crud
from backoffice.models.ingredient import Ingredient
from backoffice.models.invoice import Invoice, InvoiceStatus
from backoffice.models.supplier import Supplier
from backoffice.schemas.invoice import InvoiceLineIn
from backoffice.services.line_item_validator import validate_line_items
from backoffice.services.state_machine import transition_invoice
from backoffice.utils.gemini_client import AiServiceError, RAW_LOG_LIMIT
from backoffice.utils.money import json_number, money, to_decimal
from backoffice.utils.storage import StorageError
from backoffice.utils.timezones import utcnow

log = logging.getLogger(__name__)

MISSING_STRUCTURE_REASON = "Missing invoice structure"
DECLARED_INVALID_STATUSES = {"invalid", "rejected"}


def generate_invoice_number(company_name: str, on: date, rng: random.Random = None) -> str:
    """{PREFIX}-{YYYYMMDD}-{random4}; prefix is the first three letters of the supplier name"""
    rng = rng or random
    letters = "".join(ch for ch in (company_name or "") if ch.isalpha())
    prefix = letters[:3].upper() or "INV"
    suffix = "".join(rng.choices(string.ascii_letters + string.digits, k=4))
    return f"{prefix}-{on.strftime('%Y%m%d')}-{suffix}"


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


class InvoiceWorkflow:
    """Upload, AI extraction, validation and manual correction of invoices"""

    def __init__(self, db: AsyncSession, ai, storage):
        self.db = db
        self.ai = ai
        self.storage = storage

    async def _get(self, invoice_id: str, refresh: bool = False) -> Invoice:
        invoice = await invoice_crud.get_invoice(self.db, invoice_id, refresh=refresh)
        if not invoice:
            raise NotFoundError("Invoice not found.")
        return invoice

    # ------------------------------------------------------------------
    # Upload / delete
    # ------------------------------------------------------------------
    async def create_invoice(
        self,
        supplier_id: str,
        invoice_date: date,
        due_date: Optional[date],
        filename: str,
        content: bytes,
        content_type: str,
    ) -> Invoice:
        supplier = await self.db.get(Supplier, supplier_id)
        if not supplier:
            raise NotFoundError("Supplier not found.")
        if content_type not in ALLOWED_UPLOAD_TYPES:
            raise BusinessRuleError("Invoice file must be a PDF, JPEG or PNG.")
        if not content:
            raise BusinessRuleError("Invoice file is empty.")
        if len(content) > MAX_INVOICE_BYTES:
            raise BusinessRuleError("Invoice file must be 4MB or smaller.")

        key = f"{UPLOAD_PREFIXES['invoices']}/{uuid.uuid4()}{upload_extension(filename, content_type)}"
        try:
            key = await self.storage.put(key, content, content_type)
        except StorageError as exc:
            log.error("invoice upload failed: supplier=%s file=%s: %s", supplier.id, filename, exc)
            raise ProcessingFailedError(f"File upload failed: {exc}") from exc

        invoice = Invoice(
            id=str(uuid.uuid4()),
            supplier_id=supplier.id,
            invoice_number=generate_invoice_number(supplier.company_name, utcnow().date()),
            invoice_date=invoice_date,
            due_date=due_date,
            invoice_file=key,
            file_mime_type=content_type,
            total=Decimal("0"),
            status=InvoiceStatus.UPLOADED.value,
        )
        self.db.add(invoice)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            try:
                await self.storage.delete(key)
            except StorageError as cleanup_exc:
                log.warning("orphaned upload %s left behind: %s", key, cleanup_exc)
            raise

        log.info("invoice uploaded: invoice=%s supplier=%s file=%s", invoice.id, supplier.id, key)
        return await self._get(invoice.id, refresh=True)

    async def delete_invoice(self, invoice_id: str) -> None:
        invoice = await self._get(invoice_id)
        if invoice.invoice_file:
            try:
                await self.storage.delete(invoice.invoice_file)
            except StorageError as exc:
                log.warning("invoice=%s file delete failed: %s", invoice.id, exc)
        await self.db.delete(invoice)
        await self.db.commit()
        log.info("invoice deleted: invoice=%s", invoice_id)

    # ------------------------------------------------------------------
    # AI processing
    # ------------------------------------------------------------------
    async def process(self, invoice_id: str) -> Invoice:
        """Run AI extraction and validation; returns the invoice in its new state"""
        invoice = await self._get(invoice_id)
        current = InvoiceStatus(invoice.status)
        if current == InvoiceStatus.PROCESSING:
            raise InvoiceInProgressError("Invoice is currently being processed.")
        if current == InvoiceStatus.PROCESSED:
            raise ConflictError("Invoice has already been processed.")

        transition_invoice(invoice, InvoiceStatus.PROCESSING)
        await self.db.commit()

        try:
            if not invoice.invoice_file:
                raise StorageError("Invoice has no stored file.")
            content = await self.storage.get(invoice.invoice_file)
            extraction = await self.ai.extract_invoice(
                content, invoice.file_mime_type or "application/pdf"
            )
            await self._apply_extraction(invoice, extraction)
            await self.db.commit()
        except Exception as exc:
            await self.db.rollback()
            raw = exc.raw[:RAW_LOG_LIMIT] if isinstance(exc, AiServiceError) and exc.raw else None
            log.error("AI processing failed for invoice=%s: %s raw=%r", invoice_id, exc, raw)

            invoice = await self._get(invoice_id, refresh=True)
            transition_invoice(invoice, InvoiceStatus.NEEDS_REVIEW)
            await self.db.commit()
            raise ProcessingFailedError(f"AI processing failed: {exc}") from exc

        return await self._get(invoice_id, refresh=True)

    async def _apply_extraction(self, invoice: Invoice, extraction: Dict[str, Any]) -> None:
        if not isinstance(extraction, dict):
            raise ValueError("AI extraction is not a JSON object")

        declared = str(extraction.get("status") or "").strip().lower()
        if declared in DECLARED_INVALID_STATUSES:
            reason = extraction.get("invalid_reason") or "Document is not a valid invoice"
            self._reject(invoice, extraction, str(reason))
            return

        orders = extraction.get("orders")
        details = extraction.get("details")
        number = details.get("invoice_number") if isinstance(details, dict) else None
        number = str(number).strip() if number is not None else ""
        if not isinstance(orders, list) or not orders or not number:
            self._reject(invoice, extraction, MISSING_STRUCTURE_REASON)
            return

        if await invoice_crud.invoice_number_taken(self.db, number, exclude_id=invoice.id):
            self._reject(invoice, extraction, f"Duplicate invoice number: {number}")
            return

        status = validate_line_items(extraction)
        added = await self._sync_ingredients(invoice, orders)

        invoice.invoice_number = number
        invoice.total = money(to_decimal(extraction["totals"]["grand_total"], "grand_total"))
        invoice.extracted_data = copy.deepcopy(extraction)
        transition_invoice(invoice, status)
        log.info(
            "invoice=%s extracted: status=%s lines=%s new_ingredients=%s",
            invoice.id, status.value, len(orders), added,
        )

    def _reject(self, invoice: Invoice, extraction: Any, reason: str) -> None:
        data = copy.deepcopy(extraction) if isinstance(extraction, dict) else {}
        data["status"] = InvoiceStatus.REJECTED.value
        data["invalid_reason"] = reason
        invoice.extracted_data = data
        transition_invoice(invoice, InvoiceStatus.REJECTED)
        log.warning("invoice=%s rejected: %s", invoice.id, reason)

    async def _sync_ingredients(self, invoice: Invoice, orders: List[Dict[str, Any]]) -> int:
        """
        Match each line to an ingredient by name, creating unknown ones.

        Lines get an `is_new_system` flag. A line price that differs from the
        ingredient's current price is logged to its price history.
        """
        added = 0
        seen: Dict[str, Ingredient] = {}
        for item in orders:
            description = str(item.get("description") or "").strip()
            if not description:
                continue
            key = description.lower()

            ingredient = seen.get(key)
            if ingredient is None:
                ingredient = await ingredient_crud.find_by_name(self.db, description)
            if ingredient is None:
                ingredient = Ingredient(
                    id=str(uuid.uuid4()),
                    name=description,
                    category=_capitalize(str(item.get("category") or "Uncategorised")),
                    unit=str(item.get("unit") or "unit").lower(),
                    supplier_id=invoice.supplier_id,
                    price_history=[],
                )
                self.db.add(ingredient)
                item["is_new_system"] = True
                added += 1
            else:
                item["is_new_system"] = False
            seen[key] = ingredient

            price = item.get("price")
            if price:
                ingredient_crud.record_price(ingredient, to_decimal(price, f"{description} price"))
        return added

    # ------------------------------------------------------------------
    # Manual correction
    # ------------------------------------------------------------------
    async def update_items(self, invoice_id: str, orders: List[InvoiceLineIn]) -> Invoice:
        """
        Replace the extracted line items with a manually corrected set.

        Every line total is forced to qty × price, then the grand-total check
        against the document total runs again.
        """
        invoice = await self._get(invoice_id)
        if InvoiceStatus(invoice.status) == InvoiceStatus.PROCESSING:
            raise InvoiceInProgressError("Invoice is currently being processed.")
        if not invoice.extracted_data or not invoice.extracted_data.get("orders"):
            raise ConflictError("Invoice has no extracted line items to edit.")

        extraction = copy.deepcopy(invoice.extracted_data)
        lines = []
        for line in orders:
            item = {
                "description": line.description.strip(),
                "qty": json_number(line.qty),
                "price": json_number(line.price),
                "total": json_number(line.qty * line.price),
            }
            if line.unit is not None:
                item["unit"] = line.unit
            if line.category is not None:
                item["category"] = line.category
            lines.append(item)
        extraction["orders"] = lines
        extraction.pop("invalid_reason", None)

        status = validate_line_items(extraction)
        transition_invoice(invoice, status)
        invoice.extracted_data = extraction
        invoice.total = money(to_decimal(extraction["totals"]["grand_total"], "grand_total"))
        await self.db.commit()

        log.info("invoice=%s items updated: lines=%s status=%s", invoice.id, len(lines), status.value)
        return await self._get(invoice_id, refresh=True)
