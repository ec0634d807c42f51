from typing import Any, Dict, List, Optional

from gst_review.domain import lifecycle
from gst_review.domain.persistence.invoices import get_invoice, list_invoices, update_invoice
from gst_review.domain.persistence.transitions import bulk_transition, transition_invoice
from gst_review.domain.schemas import Invoice

class Neo4jInvoiceStore:
    """
    Tenant-scoped invoice store over a Neo4j driver. Same interface as
    BackendClient so a ReviewSession can run against either.
    """

    def __init__(self, driver, user_email: str):
        self.driver = driver
        self.user_email = user_email

    def get_invoice(self, invoice_id: str) -> Invoice:
        return get_invoice(self.driver, invoice_id, self.user_email)

    def list_invoices(self, status: Optional[str] = None, search: Optional[str] = None,
                      limit: int = 25, offset: int = 0) -> Dict[str, Any]:
        return list_invoices(self.driver, self.user_email, status=status, search=search, limit=limit, offset=offset)

    def update_invoice(self, invoice_id: str, payload: Dict[str, Any]) -> None:
        update_invoice(self.driver, invoice_id, payload, self.user_email)

    def approve_invoice(self, invoice_id: str) -> None:
        transition_invoice(self.driver, invoice_id, lifecycle.APPROVE, self.user_email)

    def reject_invoice(self, invoice_id: str) -> None:
        transition_invoice(self.driver, invoice_id, lifecycle.REJECT, self.user_email)

    def bulk_approve(self, invoice_ids: List[str]) -> int:
        return bulk_transition(self.driver, invoice_ids, lifecycle.APPROVE, self.user_email)
