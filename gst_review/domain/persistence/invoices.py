from typing import Dict, Any, Optional
import json
from neo4j.exceptions import DriverError, Neo4jError

from gst_review.domain import lifecycle
from gst_review.domain.errors import InvoiceNotFoundError, PersistenceError
from gst_review.domain.schemas import HEADER_FIELDS, Invoice
from gst_review.utils.logging_config import get_logger

logger = get_logger(__name__)

def _node_to_invoice(node: Dict[str, Any]) -> Invoice:
    """
    Rebuilds the invoice document from node properties. Line items, totals,
    charges and discount are stored as JSON strings on the node.
    """
    data = dict(node)
    data["id"] = data.pop("invoice_id", None)
    for key in ("line_items", "totals", "additional_charges", "discount"):
        raw = data.get(key)
        if isinstance(raw, str):
            data[key] = json.loads(raw) if raw else None
        if data.get(key) is None:
            data.pop(key, None)
    # timestamp() values come back as epoch millis
    for key in ("created_at", "updated_at"):
        if data.get(key) is not None:
            data[key] = str(data[key])
    return Invoice(**data)

def get_invoice(driver, invoice_id: str, user_email: str) -> Invoice:
    """
    Fetches one invoice owned by the user.
    """
    query = """
    MATCH (u:User {email: $user_email})-[:OWNS]->(i:Invoice {invoice_id: $invoice_id})
    RETURN i
    """
    try:
        with driver.session() as session:
            record = session.run(query, user_email=user_email, invoice_id=invoice_id).single()
    except (Neo4jError, DriverError) as e:
        logger.error(f"Failed to load invoice {invoice_id}: {e}")
        raise PersistenceError(f"Could not load invoice {invoice_id}: {e}")

    if not record:
        raise InvoiceNotFoundError(invoice_id)
    return _node_to_invoice(record["i"])

def list_invoices(driver, user_email: str, status: Optional[str] = None, search: Optional[str] = None,
                  limit: int = 25, offset: int = 0) -> Dict[str, Any]:
    """
    Paged listing for the invoice table, newest first.
    """
    query = """
    MATCH (u:User {email: $user_email})-[:OWNS]->(i:Invoice)
    WHERE ($status IS NULL OR i.status = $status)
      AND ($search IS NULL
           OR toLower(i.invoice_number) CONTAINS toLower($search)
           OR toLower(i.seller_name) CONTAINS toLower($search)
           OR toLower(i.buyer_name) CONTAINS toLower($search))
    WITH i ORDER BY i.created_at DESC
    WITH collect(i) AS rows
    RETURN size(rows) AS total, rows[$offset..$offset + $limit] AS page
    """
    try:
        with driver.session() as session:
            record = session.run(
                query,
                user_email=user_email,
                status=status,
                search=search or None,
                limit=limit,
                offset=offset,
            ).single()
    except (Neo4jError, DriverError) as e:
        logger.error(f"Failed to list invoices for {user_email}: {e}")
        raise PersistenceError(f"Could not list invoices: {e}")

    if not record:
        return {"data": [], "total": 0}
    return {
        "data": [_node_to_invoice(node) for node in record["page"]],
        "total": record["total"],
    }

def _invoice_status(tx, invoice_id: str, user_email: str) -> Optional[str]:
    query = """
    MATCH (u:User {email: $user_email})-[:OWNS]->(i:Invoice {invoice_id: $invoice_id})
    RETURN i.status AS status
    """
    record = tx.run(query, user_email=user_email, invoice_id=invoice_id).single()
    return record["status"] if record else None

def update_invoice(driver, invoice_id: str, payload: Dict[str, Any], user_email: str) -> None:
    """
    Persists header, line items and totals of an editable invoice. The status
    is left alone. The write only matches while the invoice is still editable,
    so an invoice approved/rejected in the meantime is refused.
    """
    header = {field: payload[field] for field in HEADER_FIELDS if field in payload}
    line_items_json = json.dumps(payload.get("line_items", []), default=str)
    totals = payload.get("totals") or {}
    totals_json = json.dumps(totals, default=str)
    charges = payload.get("additional_charges")
    discount = payload.get("discount")

    try:
        with driver.session() as session:
            updated, status = session.execute_write(
                _update_invoice_tx,
                invoice_id,
                header,
                line_items_json,
                totals_json,
                totals.get("grand_total"),
                json.dumps(charges, default=str) if charges else None,
                json.dumps(discount, default=str) if discount else None,
                user_email,
            )
    except (Neo4jError, DriverError) as e:
        logger.error(f"Failed to save invoice {invoice_id}: {e}")
        raise PersistenceError(f"Could not save invoice {invoice_id}: {e}")

    if not updated:
        if status is None:
            raise InvoiceNotFoundError(invoice_id)
        # Re-run the lifecycle check to raise the proper TransitionError
        lifecycle.next_status(status, lifecycle.SAVE, invoice_id=invoice_id)

    logger.info(f"Invoice {invoice_id} saved ({len(payload.get('line_items', []))} line items).")

def _update_invoice_tx(tx, invoice_id, header, line_items_json, totals_json, grand_total,
                       charges_json, discount_json, user_email):
    query = """
    MATCH (u:User {email: $user_email})-[:OWNS]->(i:Invoice {invoice_id: $invoice_id})
    WHERE i.status IN $editable
    SET i += $header,
        i.line_items = $line_items_json,
        i.totals = $totals_json,
        i.grand_total = $grand_total,
        i.additional_charges = $charges_json,
        i.discount = $discount_json,
        i.updated_at = timestamp()
    RETURN count(i) AS updated
    """
    record = tx.run(query,
                    user_email=user_email,
                    invoice_id=invoice_id,
                    editable=lifecycle.source_statuses(lifecycle.SAVE),
                    header=header,
                    line_items_json=line_items_json,
                    totals_json=totals_json,
                    grand_total=grand_total,
                    charges_json=charges_json,
                    discount_json=discount_json).single()
    updated = record["updated"] if record else 0
    if updated:
        return updated, None
    return 0, _invoice_status(tx, invoice_id, user_email)
