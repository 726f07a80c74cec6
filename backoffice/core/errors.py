"""
Domain errors raised by services and rendered by the API layer.

`outcome` tells the client how to treat the failure:
    retry        nothing was persisted as done; safe to call again
    rejected     the document was rejected for a specific reason
    needs_review a human has to look at the record
    conflict     the record is in a state that forbids the request
    invalid      the request broke a business rule
"""


class BackOfficeError(Exception):
    status_code = 400
    outcome = "invalid"

    def __init__(self, message: str, status_code: int = None, outcome: str = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if outcome is not None:
            self.outcome = outcome


class NotFoundError(BackOfficeError):
    status_code = 404
    outcome = "not_found"


class ConflictError(BackOfficeError):
    status_code = 409
    outcome = "conflict"


class InvoiceInProgressError(ConflictError):
    pass


class InvalidTransitionError(ConflictError):
    pass


class DuplicateKpiError(ConflictError):
    pass


class AlreadyClockedInError(ConflictError):
    pass


class BusinessRuleError(BackOfficeError):
    status_code = 422
    outcome = "invalid"


class BreakdownExceedsReceiptError(BusinessRuleError):
    pass


class InsightGenerationError(BusinessRuleError):
    pass


class ProcessingFailedError(BackOfficeError):
    """AI or file failure; the entity was moved to a review state before raising."""
    status_code = 500
    outcome = "retry"
