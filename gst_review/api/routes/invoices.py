from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field

from gst_review.api.deps import get_invoice_store
from gst_review.domain.schemas import Invoice, InvoiceStatus
from gst_review.services.bulk_approval import BulkApprovalCoordinator
from gst_review.services.review_session import ReviewSession
from gst_review.utils.logging_config import get_logger

logger = get_logger("api.invoices")
router = APIRouter(prefix="/invoices", tags=["invoices"])

class ReviewEditRequest(BaseModel):
    """
    Edits from the review dialog. Only the parts that are present are applied.
    """
    header: Dict[str, Any] = Field(default_factory=dict)
    line_items: Optional[List[Dict[str, Any]]] = None
    round_off: Optional[Decimal] = None
    additional_charges: Optional[Dict[str, Any]] = None
    discount: Optional[Dict[str, Any]] = None

def _apply_edits(session: ReviewSession, edits: Optional[ReviewEditRequest]):
    if edits is None:
        return
    # Header first: a state code change decides the split for the lines below
    if edits.header:
        session.update_header(**edits.header)
    if edits.line_items is not None:
        session.replace_line_items(edits.line_items)
    if edits.round_off is not None:
        session.set_round_off(edits.round_off)
    if "additional_charges" in edits.model_fields_set:
        session.set_additional_charges(edits.additional_charges)
    if "discount" in edits.model_fields_set:
        session.set_discount(edits.discount)

def _warnings(found) -> List[Dict[str, Any]]:
    return [w.model_dump() for w in found]

@router.get("", response_model=Dict[str, Any])
async def list_invoices(status: Optional[InvoiceStatus] = None, search: Optional[str] = None,
                        limit: int = 25, offset: int = 0, store=Depends(get_invoice_store)):
    result = store.list_invoices(status=status.value if status else None, search=search, limit=limit, offset=offset)
    return {
        "data": [inv.model_dump(mode="json") for inv in result["data"]],
        "total": result["total"],
    }

@router.post("/preview", response_model=Dict[str, Any])
async def preview_invoice(invoice: Invoice):
    """
    Recomputes a posted working copy. Pure: nothing is loaded or stored.
    """
    session = ReviewSession(invoice, store=None)
    return session.to_view()

@router.post("/bulk-approve", response_model=Dict[str, Any])
async def bulk_approve(invoice_ids: List[str] = Body(...), store=Depends(get_invoice_store)):
    result = BulkApprovalCoordinator(store).approve(invoice_ids)
    return result.model_dump()

@router.get("/{invoice_id}", response_model=Dict[str, Any])
async def get_invoice(invoice_id: str, store=Depends(get_invoice_store)):
    """
    Opens the invoice for review. Approved/rejected/exported invoices come
    back with read_only set.
    """
    return ReviewSession.open(store, invoice_id).to_view()

@router.put("/{invoice_id}", response_model=Dict[str, Any])
async def save_invoice(invoice_id: str, edits: ReviewEditRequest, store=Depends(get_invoice_store)):
    session = ReviewSession.open(store, invoice_id)
    _apply_edits(session, edits)
    found = session.save()
    if found:
        logger.info(f"Invoice {invoice_id} saved with {len(found)} warning(s).")
    return {
        "status": "success",
        "message": f"Invoice {invoice_id} saved.",
        "invoice": session.invoice.model_dump(mode="json"),
        "warnings": _warnings(found),
    }

@router.post("/{invoice_id}/approve", response_model=Dict[str, Any])
async def approve_invoice(invoice_id: str, edits: Optional[ReviewEditRequest] = None,
                          store=Depends(get_invoice_store)):
    """
    Save-then-approve on a session opened for this request only.

    Retry-without-resave after saved_not_approved lives in the in-process
    ReviewSession, as does the in-flight guard (429). Over HTTP every call
    opens a fresh session, so a retried approve saves again. The store only
    writes while the invoice is still editable, which keeps that re-save
    harmless.
    """
    session = ReviewSession.open(store, invoice_id)
    _apply_edits(session, edits)
    found = session.approve()
    return {
        "status": "success",
        "message": f"Invoice {invoice_id} approved.",
        "invoice_status": session.status.value,
        "warnings": _warnings(found),
    }

@router.post("/{invoice_id}/reject", response_model=Dict[str, Any])
async def reject_invoice(invoice_id: str, store=Depends(get_invoice_store)):
    session = ReviewSession.open(store, invoice_id)
    session.reject()
    return {
        "status": "success",
        "message": f"Invoice {invoice_id} rejected.",
        "invoice_status": session.status.value,
    }
