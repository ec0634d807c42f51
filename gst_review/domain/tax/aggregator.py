from decimal import Decimal
from typing import Iterable, Optional

from gst_review.domain.schemas import (
    AdditionalCharges,
    Discount,
    InvoiceTotals,
    LineItem,
    PayableSummary,
    ZERO,
)

HUNDRED = Decimal("100")

def calc_totals(items: Iterable[LineItem], round_off: Decimal = ZERO, amount_in_words: Optional[str] = None) -> InvoiceTotals:
    """
    Sums already-recalculated line items into invoice totals.
    grand_total = taxable + cgst + sgst + igst + cess + round_off
    """
    items = list(items)
    round_off = Decimal(round_off or 0)

    taxable = sum((i.taxable_amount for i in items), ZERO)
    cgst = sum((i.cgst_amount for i in items), ZERO)
    sgst = sum((i.sgst_amount for i in items), ZERO)
    igst = sum((i.igst_amount for i in items), ZERO)
    cess = sum((i.cess_amount for i in items), ZERO)

    return InvoiceTotals(
        taxable_amount=taxable,
        cgst_total=cgst,
        sgst_total=sgst,
        igst_total=igst,
        cess_total=cess,
        round_off=round_off,
        grand_total=taxable + cgst + sgst + igst + cess + round_off,
        amount_in_words=amount_in_words,
    )

def charges_total(charges: Optional[AdditionalCharges]) -> Decimal:
    if charges is None:
        return ZERO
    return (
        charges.service_charge
        + charges.delivery_charge
        + charges.packaging_charge
        + charges.tip
        + charges.convenience_fee
        + charges.other_charges
    )

def discount_amount(discount: Optional[Discount], grand_total: Decimal) -> Decimal:
    if discount is None:
        return ZERO
    if discount.amount is not None:
        return discount.amount
    if discount.percentage is not None:
        return grand_total * discount.percentage / HUNDRED
    return ZERO

def calc_payable(totals: InvoiceTotals, charges: Optional[AdditionalCharges] = None, discount: Optional[Discount] = None) -> PayableSummary:
    """
    Display-only amount after charges and discount. Kept apart from
    grand_total, which stays the pure tax sum plus round_off.
    """
    added = charges_total(charges)
    taken = discount_amount(discount, totals.grand_total)
    return PayableSummary(
        grand_total=totals.grand_total,
        charges_total=added,
        discount_amount=taken,
        net_payable=totals.grand_total + added - taken,
    )
