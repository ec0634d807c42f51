from .interstate import is_inter_state, missing_state_codes
from .calculator import recalc_line_item, recalc_line_items
from .aggregator import calc_totals, calc_payable, charges_total, discount_amount

# Re-export key functions
__all__ = [
    'is_inter_state',
    'missing_state_codes',
    'recalc_line_item',
    'recalc_line_items',
    'calc_totals',
    'calc_payable',
    'charges_total',
    'discount_amount',
]
