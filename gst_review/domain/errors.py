from typing import List, Optional
from gst_review.domain.schemas import ValidationIssue

class GSTReviewError(Exception):
    """
    Base class for every failure raised by the review engine. All of them are
    scoped to a single invoice.
    """

class InvoiceValidationError(GSTReviewError, ValueError):
    """
    Working copy failed input validation. Raised before any network call.
    """
    def __init__(self, issues: List[ValidationIssue]):
        self.issues = list(issues)
        summary = "; ".join(f"{i.field}: {i.message}" for i in self.issues)
        super().__init__(f"Validation failed: {summary}")

class InvoiceNotFoundError(GSTReviewError):
    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice {invoice_id} not found")

class PersistenceError(GSTReviewError):
    """
    Save request failed (network, HTTP or database). The working copy is kept for retry.
    """
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

class TransitionError(GSTReviewError):
    """
    Lifecycle transition refused or failed.
    """
    def __init__(self, message: str, invoice_id: Optional[str] = None, status: Optional[str] = None):
        self.invoice_id = invoice_id
        self.status = status
        super().__init__(message)

class SavedNotApprovedError(TransitionError):
    """
    Save went through but the approve transition did not. Re-approving must not re-save.
    """

class RequestInFlightError(GSTReviewError):
    def __init__(self, invoice_id: Optional[str], action: str):
        self.invoice_id = invoice_id
        self.action = action
        super().__init__(f"A {action} request for invoice {invoice_id} is already in flight")

