from typing import List
from neo4j.exceptions import DriverError, Neo4jError

from gst_review.domain import lifecycle
from gst_review.domain.errors import InvoiceNotFoundError, PersistenceError, TransitionError
from gst_review.domain.persistence.invoices import _invoice_status
from gst_review.utils.logging_config import get_logger

logger = get_logger(__name__)

def transition_invoice(driver, invoice_id: str, action: str, user_email: str) -> str:
    """
    Applies a lifecycle action (approve / reject / export) to one invoice.
    Returns the new status value.
    """
    _, target = lifecycle.TRANSITIONS[action]
    try:
        with driver.session() as session:
            modified, status = session.execute_write(
                _transition_tx, [invoice_id], lifecycle.source_statuses(action), target.value, user_email
            )
    except (Neo4jError, DriverError) as e:
        logger.error(f"Failed to {action} invoice {invoice_id}: {e}")
        raise TransitionError(f"Could not {action} invoice {invoice_id}: {e}", invoice_id=invoice_id)

    if not modified:
        if status is None:
            raise InvoiceNotFoundError(invoice_id)
        # Raises TransitionError naming the blocking status
        lifecycle.next_status(status, action, invoice_id=invoice_id)

    logger.info(f"Invoice {invoice_id} -> {target.value}")
    return target.value

def bulk_transition(driver, invoice_ids: List[str], action: str, user_email: str) -> int:
    """
    Applies one action to many invoices in a single write. Ids that are
    missing or no longer in a source status are skipped; the return value is
    the number of invoices actually modified.
    """
    if not invoice_ids:
        return 0
    _, target = lifecycle.TRANSITIONS[action]
    try:
        with driver.session() as session:
            modified, _ = session.execute_write(
                _transition_tx, list(invoice_ids), lifecycle.source_statuses(action), target.value, user_email
            )
    except (Neo4jError, DriverError) as e:
        logger.error(f"Bulk {action} failed for {len(invoice_ids)} invoices: {e}")
        raise PersistenceError(f"Bulk {action} failed: {e}")
    return modified

def _transition_tx(tx, invoice_ids, from_statuses, to_status, user_email):
    query = """
    MATCH (u:User {email: $user_email})-[:OWNS]->(i:Invoice)
    WHERE i.invoice_id IN $invoice_ids AND i.status IN $from_statuses
    SET i.status = $to_status,
        i.updated_at = timestamp()
    RETURN count(i) AS modified
    """
    record = tx.run(query,
                    user_email=user_email,
                    invoice_ids=invoice_ids,
                    from_statuses=from_statuses,
                    to_status=to_status).single()
    modified = record["modified"] if record else 0
    if modified or len(invoice_ids) != 1:
        return modified, None
    return 0, _invoice_status(tx, invoice_ids[0], user_email)
