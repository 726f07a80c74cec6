"""
Sales Reconciliation Engine

Matches a day's Z-Read receipt total (read by the AI) against the sales
breakdown a manager enters per recipe.

    pending -> needs_review | rejected
    pending | needs_review -> reconciled     (confirm)
    any non-terminal -> needs_review         (flag)

The receipt total is the truth for the day. variance = receipt - breakdown.
A breakdown that exceeds the receipt by more than five cents is refused
outright. Otherwise a pending record moves to needs_review when the variance
is over 2% of the receipt; records already in needs_review stay there.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.constants import (
    ALLOWED_UPLOAD_TYPES,
    MAX_RECEIPT_BYTES,
    UPLOAD_PREFIXES,
    upload_extension,
)
from backoffice.core.errors import (
    BreakdownExceedsReceiptError,
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    ProcessingFailedError,
)
from backoffice.crud import reconciliation as reconciliation_crud
from backoffice.crud import recipe as recipe_crud
from backoffice.models.sales_reconciliation import ReconciliationStatus, SalesReconciliation
from backoffice.schemas.reconciliation import BreakdownItemIn
from backoffice.services.costing import recipe_cost
from backoffice.services.state_machine import transition_reconciliation
from backoffice.utils.gemini_client import AiServiceError, RAW_LOG_LIMIT
from backoffice.utils.money import ZERO, json_number, money, to_decimal
from backoffice.utils.storage import StorageError
from backoffice.utils.timezones import month_start

log = logging.getLogger(__name__)

OVERAGE_TOLERANCE = Decimal("-0.05")
REVIEW_THRESHOLD = Decimal("0.02")
INVALID_RECEIPT_REASON = "Document is not a valid sales receipt"
NO_SALES_REASON = "Receipt shows no sales"


@dataclass
class ReconciliationDashboardData:
    total_sales_mtd: Decimal
    avg_variance_percent: Decimal
    pending_reconciliations: int
    needs_review_reconciliations: int


def receipt_flag(value) -> bool:
    """Only an explicit yes from the model counts; "false", 0 and a missing flag do not."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes")
    if isinstance(value, (int, float)):
        return value == 1
    return False


def variance_ratio(receipt_total: Decimal, variance: Decimal) -> Decimal:
    if receipt_total > 0:
        return abs(variance) / receipt_total
    return Decimal(1)


class SalesReconciliationEngine:
    def __init__(self, db: AsyncSession, ai=None, storage=None):
        self.db = db
        self.ai = ai
        self.storage = storage

    async def _get(self, reconciliation_id: str, refresh: bool = False) -> SalesReconciliation:
        rec = await reconciliation_crud.get_reconciliation(self.db, reconciliation_id, refresh=refresh)
        if not rec:
            raise NotFoundError("Sales reconciliation not found.")
        return rec

    async def get_or_create_for_date(self, branch: str, day: date) -> SalesReconciliation:
        """The active record for (branch, day); a new pending one if all are reconciled"""
        rec = await reconciliation_crud.get_active_for_date(self.db, branch, day)
        if rec:
            return rec

        rec = SalesReconciliation(
            id=str(uuid.uuid4()),
            branch=branch,
            date=day,
            status=ReconciliationStatus.PENDING.value,
            total_breakdown_sales=ZERO,
            total_cogs=ZERO,
            variance=ZERO,
        )
        self.db.add(rec)
        try:
            await self.db.commit()
        except IntegrityError:
            # another request created the active record first
            await self.db.rollback()
            existing = await reconciliation_crud.get_active_for_date(self.db, branch, day)
            if existing:
                log.info("reconciliation idempotent hit: branch=%s date=%s", branch, day)
                return existing
            raise

        log.info("reconciliation created: reconciliation=%s branch=%s date=%s", rec.id, branch, day)
        return rec

    async def upload_receipt(
        self, reconciliation_id: str, filename: str, content: bytes, content_type: str
    ) -> SalesReconciliation:
        """Store a Z-Read, reset the record and read the day's sales total from it"""
        rec = await self._get(reconciliation_id)
        if rec.status == ReconciliationStatus.RECONCILED.value:
            raise ConflictError("This reconciliation is already closed.")
        if content_type not in ALLOWED_UPLOAD_TYPES:
            raise BusinessRuleError("Receipt must be a PDF, JPEG or PNG.")
        if not content:
            raise BusinessRuleError("Receipt file is empty.")
        if len(content) > MAX_RECEIPT_BYTES:
            raise BusinessRuleError("Receipt must be 5MB or smaller.")

        key = f"{UPLOAD_PREFIXES['receipts']}/{uuid.uuid4()}{upload_extension(filename, content_type)}"
        try:
            key = await self.storage.put(key, content, content_type)
        except StorageError as exc:
            log.error("receipt upload failed: reconciliation=%s file=%s: %s", rec.id, filename, exc)
            raise ProcessingFailedError(f"File upload failed: {exc}") from exc

        transition_reconciliation(rec, ReconciliationStatus.PENDING)
        rec.receipt_file_path = key
        rec.receipt_mime_type = content_type
        rec.recipe_breakdown = None
        rec.total_sales_from_receipt = None
        rec.total_breakdown_sales = ZERO
        rec.total_cogs = ZERO
        rec.variance = ZERO
        rec.rejection_reason = None
        await self.db.commit()

        try:
            data = await self.ai.extract_receipt(content, content_type)
            if not isinstance(data, dict):
                raise ValueError("AI extraction is not a JSON object")
            valid = receipt_flag(data.get("is_valid_sales_receipt"))
            total = data.get("total_sales")
            total = ZERO if total is None else to_decimal(total, "total_sales")
        except (AiServiceError, ValueError) as exc:
            raw = exc.raw[:RAW_LOG_LIMIT] if isinstance(exc, AiServiceError) and exc.raw else None
            log.error("Z-Read extraction failed for reconciliation=%s: %s raw=%r", rec.id, exc, raw)
            transition_reconciliation(rec, ReconciliationStatus.NEEDS_REVIEW)
            await self.db.commit()
            raise ProcessingFailedError(f"AI processing failed: {exc}") from exc

        if not valid or total <= 0:
            reason = NO_SALES_REASON if valid else INVALID_RECEIPT_REASON
            transition_reconciliation(rec, ReconciliationStatus.REJECTED)
            rec.total_sales_from_receipt = ZERO
            rec.variance = ZERO
            rec.rejection_reason = reason
            await self.db.commit()
            log.warning("receipt rejected: reconciliation=%s reason=%s", rec.id, reason)
            return rec

        rec.total_sales_from_receipt = money(total)
        rec.variance = money(total)
        await self.db.commit()
        log.info("receipt read: reconciliation=%s total_sales=%s", rec.id, rec.total_sales_from_receipt)
        return rec

    async def update_breakdown(
        self, reconciliation_id: str, items: List[BreakdownItemIn]
    ) -> SalesReconciliation:
        rec = await self._get(reconciliation_id)
        status = ReconciliationStatus(rec.status)
        if status not in (ReconciliationStatus.PENDING, ReconciliationStatus.NEEDS_REVIEW):
            raise ConflictError(f"Breakdown cannot be edited while the reconciliation is {status.value}.")
        if rec.total_sales_from_receipt is None:
            raise BusinessRuleError("Upload the day's receipt before entering the sales breakdown.")

        recipes = {r.id: r for r in await recipe_crud.get_recipes(self.db, [i.recipe_id for i in items])}
        missing = sorted({i.recipe_id for i in items} - set(recipes))
        if missing:
            raise BusinessRuleError(f"Recipe not found: {', '.join(missing)}")

        breakdown = []
        total_sales = ZERO
        total_cogs = ZERO
        for item in items:
            recipe = recipes[item.recipe_id]
            unit_cogs = recipe_cost(recipe)
            item_cogs = unit_cogs * item.quantity
            item_sale = item.actual_price * item.quantity
            total_cogs += item_cogs
            total_sales += item_sale
            breakdown.append({
                "recipe_id": recipe.id,
                "name": recipe.name,
                "quantity": item.quantity,
                "actual_price": json_number(item.actual_price),
                "unit_cogs": json_number(money(unit_cogs)),
                "total_cogs": json_number(money(item_cogs)),
                "total_sale": json_number(item_sale),
            })

        receipt_total = to_decimal(rec.total_sales_from_receipt, "total_sales_from_receipt")
        variance = receipt_total - total_sales
        if variance < OVERAGE_TOLERANCE:
            raise BreakdownExceedsReceiptError(
                f"Breakdown sales ({money(total_sales)}) exceed the receipt total ({money(receipt_total)})."
            )

        rec.recipe_breakdown = breakdown
        rec.total_breakdown_sales = money(total_sales)
        rec.total_cogs = money(total_cogs)
        rec.variance = money(variance)

        if status == ReconciliationStatus.PENDING:
            if variance_ratio(receipt_total, variance) > REVIEW_THRESHOLD:
                transition_reconciliation(rec, ReconciliationStatus.NEEDS_REVIEW)

        await self.db.commit()
        log.info(
            "breakdown updated: reconciliation=%s items=%s sales=%s variance=%s status=%s",
            rec.id, len(breakdown), rec.total_breakdown_sales, rec.variance, rec.status,
        )
        return rec

    async def confirm_and_close(self, reconciliation_id: str) -> SalesReconciliation:
        """Close the day regardless of variance"""
        rec = await self._get(reconciliation_id)
        transition_reconciliation(rec, ReconciliationStatus.RECONCILED)
        await self.db.commit()
        return rec

    async def flag_for_review(self, reconciliation_id: str) -> SalesReconciliation:
        rec = await self._get(reconciliation_id)
        transition_reconciliation(rec, ReconciliationStatus.NEEDS_REVIEW)
        await self.db.commit()
        return rec

    async def dashboard(self, branch: str, today: date = None) -> ReconciliationDashboardData:
        records = await reconciliation_crud.get_month_to_date(self.db, branch, month_start(today))
        receipts = [to_decimal(r.total_sales_from_receipt) for r in records if r.total_sales_from_receipt is not None]
        variances = [to_decimal(r.variance) for r in records if r.variance is not None]

        total_sales = sum(receipts, ZERO)
        avg_sales = total_sales / len(receipts) if receipts else ZERO
        avg_variance = sum(variances, ZERO) / len(variances) if variances else ZERO
        avg_variance_percent = (avg_variance / avg_sales) * 100 if avg_sales > 0 else ZERO

        return ReconciliationDashboardData(
            total_sales_mtd=total_sales,
            avg_variance_percent=avg_variance_percent,
            pending_reconciliations=await reconciliation_crud.count_by_status(
                self.db, branch, ReconciliationStatus.PENDING
            ),
            needs_review_reconciliations=await reconciliation_crud.count_by_status(
                self.db, branch, ReconciliationStatus.NEEDS_REVIEW
            ),
        )

    async def history(self, branch: str, limit: int = 50):
        return await reconciliation_crud.get_history(self.db, branch, limit)
