from decimal import Decimal

from gst_review.domain.schemas import LineItem, ZERO

HUNDRED = Decimal("100")
TWO = Decimal("2")

def recalc_line_item(item: LineItem, inter_state: bool) -> LineItem:
    """
    Recomputes the derived amounts of one line and returns a NEW LineItem.
    The input is never mutated, so running this twice (or toggling
    inter_state and back) gives identical results.

    1. taxable = quantity * rate
    2. gst = taxable * gst_rate / 100
    3. inter-state -> all of it is IGST; intra-state -> half CGST, half SGST
    4. total = taxable + gst + cess

    No currency rounding at line level; the invoice round_off absorbs it.
    """
    taxable = item.quantity * item.rate
    gst_amount = taxable * (item.gst_rate / HUNDRED)

    if inter_state:
        cgst = sgst = ZERO
        igst = gst_amount
    else:
        cgst = sgst = gst_amount / TWO
        igst = ZERO

    return item.model_copy(update={
        "taxable_amount": taxable,
        "cgst_amount": cgst,
        "sgst_amount": sgst,
        "igst_amount": igst,
        "total_amount": taxable + gst_amount + item.cess_amount,
    })

def recalc_line_items(items, inter_state: bool) -> list:
    return [recalc_line_item(item, inter_state) for item in items]
