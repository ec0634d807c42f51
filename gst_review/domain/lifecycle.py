from typing import Dict, FrozenSet, Union

from gst_review.domain.errors import TransitionError
from gst_review.domain.schemas import InvoiceStatus
from gst_review.utils.logging_config import get_logger

logger = get_logger(__name__)

SAVE = "save"
APPROVE = "approve"
REJECT = "reject"
EXPORT = "export"

EDITABLE_STATUSES: FrozenSet[InvoiceStatus] = frozenset({
    InvoiceStatus.PENDING_USER_CONFIRMATION,
    InvoiceStatus.PENDING_REVIEW,
})

# action -> (allowed source statuses, target status)
TRANSITIONS: Dict[str, tuple] = {
    APPROVE: (EDITABLE_STATUSES, InvoiceStatus.APPROVED),
    REJECT: (EDITABLE_STATUSES, InvoiceStatus.REJECTED),
    EXPORT: (frozenset({InvoiceStatus.APPROVED}), InvoiceStatus.EXPORTED),
}

def _coerce(status: Union[str, InvoiceStatus]) -> InvoiceStatus:
    try:
        return InvoiceStatus(status)
    except ValueError:
        raise TransitionError(f"Unknown invoice status '{status}'", status=str(status))

def is_editable(status: Union[str, InvoiceStatus]) -> bool:
    return _coerce(status) in EDITABLE_STATUSES

def is_read_only(status: Union[str, InvoiceStatus]) -> bool:
    """
    approved / rejected / exported invoices only get a read-only view.
    """
    return not is_editable(status)

def next_status(current: Union[str, InvoiceStatus], action: str, invoice_id: str = None) -> InvoiceStatus:
    """
    Returns the status an invoice moves to when `action` is applied, or raises
    TransitionError if the action is not allowed from `current`.
    Save is allowed only on editable invoices and keeps the status.
    """
    current = _coerce(current)

    if action == SAVE:
        if current not in EDITABLE_STATUSES:
            logger.warning(f"Refused save on invoice {invoice_id}: status is {current.value}")
            raise TransitionError(
                f"Invoice {invoice_id} is {current.value} and can no longer be edited",
                invoice_id=invoice_id,
                status=current.value,
            )
        return current

    if action not in TRANSITIONS:
        raise TransitionError(f"Unknown lifecycle action '{action}'", invoice_id=invoice_id, status=current.value)

    allowed_from, target = TRANSITIONS[action]
    if current not in allowed_from:
        logger.warning(f"Refused {action} on invoice {invoice_id}: status is {current.value}")
        raise TransitionError(
            f"Cannot {action} invoice {invoice_id} from status {current.value}",
            invoice_id=invoice_id,
            status=current.value,
        )
    return target

def source_statuses(action: str) -> list:
    """
    Status values (as strings) an action may start from. Used by stores to
    make writes conditional on the current status.
    """
    if action == SAVE:
        return sorted(s.value for s in EDITABLE_STATUSES)
    allowed_from, _ = TRANSITIONS[action]
    return sorted(s.value for s in allowed_from)
