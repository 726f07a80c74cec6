"""
Line-Item Validation

Re-does the arithmetic on AI-extracted invoice lines. The extraction is
untrusted: every line total is compared with qty × price, and the sum of the
printed line totals with the document's grand total. Comparisons are exact
Decimal equality, no rounding.

The payload is augmented in place:
    orders[i].expected_total, orders[i].calculated_correctly
    calculation_validation {line_items_correct, grand_total_correct,
                            sum_of_line_totals, document_grand_total, discrepancies}
    status  "processed" | "needs review"
"""
import logging
from decimal import Decimal
from typing import Any, Dict

from backoffice.models.invoice import InvoiceStatus
from backoffice.utils.money import (
    ZERO,
    MalformedAmountError,
    format_amount,
    json_number,
    to_decimal,
)

log = logging.getLogger(__name__)


class MalformedExtractionError(ValueError):
    """The extraction payload does not have the shape the validator needs"""
    pass


def _amount(value: Any, field: str) -> Decimal:
    try:
        return to_decimal(value, field)
    except MalformedAmountError as exc:
        raise MalformedExtractionError(str(exc)) from exc


def validate_line_items(extraction: Dict[str, Any]) -> InvoiceStatus:
    orders = extraction.get("orders")
    if not isinstance(orders, list) or not orders:
        # Empty documents are rejected before they get here
        raise MalformedExtractionError("Extraction has no line items to validate")

    discrepancies = []
    line_items_correct = True
    sum_of_line_totals = ZERO

    for index, order in enumerate(orders):
        if not isinstance(order, dict):
            raise MalformedExtractionError(f"Line {index + 1} is not an object")

        description = str(order.get("description") or f"Line {index + 1}").strip()
        qty = _amount(order.get("qty", 1), f"{description} qty")
        price = _amount(order.get("price", 0), f"{description} price")
        expected = qty * price

        if order.get("total") is None:
            printed = expected
        else:
            printed = _amount(order["total"], f"{description} total")

        correct = printed == expected
        if not correct:
            line_items_correct = False
            discrepancies.append(
                f"{description}: {format_amount(qty)} × {format_amount(price)} = "
                f"{format_amount(expected)} but shows {format_amount(printed)}"
            )

        order["qty"] = json_number(qty)
        order["price"] = json_number(price)
        order["total"] = json_number(printed)
        order["expected_total"] = json_number(expected)
        order["calculated_correctly"] = correct
        sum_of_line_totals += printed

    totals = extraction.get("totals")
    if totals is None:
        totals = {}
        extraction["totals"] = totals
    if not isinstance(totals, dict):
        raise MalformedExtractionError("totals is not an object")

    grand_total_raw = totals.get("grand_total")
    document_grand_total = ZERO if grand_total_raw is None else _amount(grand_total_raw, "grand_total")
    totals["grand_total"] = json_number(document_grand_total)

    grand_total_correct = sum_of_line_totals == document_grand_total
    if not grand_total_correct:
        discrepancies.append(
            f"Sum of line totals: {format_amount(sum_of_line_totals)} "
            f"but Grand Total shows {format_amount(document_grand_total)}"
        )

    status = (
        InvoiceStatus.PROCESSED
        if line_items_correct and grand_total_correct
        else InvoiceStatus.NEEDS_REVIEW
    )

    extraction["calculation_validation"] = {
        "line_items_correct": line_items_correct,
        "grand_total_correct": grand_total_correct,
        "sum_of_line_totals": json_number(sum_of_line_totals),
        "document_grand_total": json_number(document_grand_total),
        "discrepancies": discrepancies,
    }
    extraction["status"] = status.value

    if discrepancies:
        log.info("line validation found %s discrepancies", len(discrepancies))
    return status
