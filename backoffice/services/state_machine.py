"""Explicit status transitions for invoices and sales reconciliations."""
import logging
from typing import Dict, FrozenSet

from backoffice.core.errors import InvalidTransitionError
from backoffice.models.invoice import InvoiceStatus
from backoffice.models.sales_reconciliation import ReconciliationStatus

log = logging.getLogger(__name__)

INVOICE_TRANSITIONS: Dict[InvoiceStatus, FrozenSet[InvoiceStatus]] = {
    InvoiceStatus.UPLOADED: frozenset({InvoiceStatus.PROCESSING}),
    InvoiceStatus.PROCESSING: frozenset({
        InvoiceStatus.PROCESSED,
        InvoiceStatus.NEEDS_REVIEW,
        InvoiceStatus.REJECTED,
    }),
    # manual line edits re-derive processed / needs review
    InvoiceStatus.PROCESSED: frozenset({InvoiceStatus.PROCESSED, InvoiceStatus.NEEDS_REVIEW}),
    InvoiceStatus.NEEDS_REVIEW: frozenset({
        InvoiceStatus.PROCESSING,
        InvoiceStatus.PROCESSED,
        InvoiceStatus.NEEDS_REVIEW,
    }),
    InvoiceStatus.REJECTED: frozenset({InvoiceStatus.PROCESSING}),
}

RECONCILIATION_TRANSITIONS: Dict[ReconciliationStatus, FrozenSet[ReconciliationStatus]] = {
    # a receipt upload restarts any non-terminal record at pending
    ReconciliationStatus.PENDING: frozenset({
        ReconciliationStatus.PENDING,
        ReconciliationStatus.NEEDS_REVIEW,
        ReconciliationStatus.REJECTED,
        ReconciliationStatus.RECONCILED,
    }),
    ReconciliationStatus.NEEDS_REVIEW: frozenset({
        ReconciliationStatus.PENDING,
        ReconciliationStatus.NEEDS_REVIEW,
        ReconciliationStatus.RECONCILED,
    }),
    ReconciliationStatus.REJECTED: frozenset({
        ReconciliationStatus.PENDING,
        ReconciliationStatus.NEEDS_REVIEW,
    }),
    ReconciliationStatus.RECONCILED: frozenset(),
}


def can_transition(table, current, target) -> bool:
    return target in table.get(current, frozenset())


def _transition(entity, table, enum_cls, target, label: str) -> None:
    current = enum_cls(entity.status)
    if not can_transition(table, current, target):
        raise InvalidTransitionError(
            f"{label} cannot move from '{current.value}' to '{target.value}'."
        )
    entity.status = target.value
    log.info("%s=%s status %s -> %s", label.lower(), entity.id, current.value, target.value)


def transition_invoice(invoice, target: InvoiceStatus) -> None:
    _transition(invoice, INVOICE_TRANSITIONS, InvoiceStatus, target, "Invoice")


def transition_reconciliation(reconciliation, target: ReconciliationStatus) -> None:
    _transition(
        reconciliation, RECONCILIATION_TRANSITIONS, ReconciliationStatus, target, "Reconciliation"
    )
