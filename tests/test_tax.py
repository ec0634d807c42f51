import os
import sys
import unittest
from decimal import Decimal

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from gst_review.domain.schemas import AdditionalCharges, Discount, LineItem
from gst_review.domain.tax import (
    calc_payable,
    calc_totals,
    is_inter_state,
    missing_state_codes,
    recalc_line_item,
    recalc_line_items,
)

def _line(**kwargs):
    values = {"description": "Widget", "quantity": 2, "rate": 100, "gst_rate": 18}
    values.update(kwargs)
    return LineItem(**values)

class TestInterState(unittest.TestCase):

    def test_same_state_is_intra(self):
        self.assertFalse(is_inter_state("27", "27"))

    def test_different_states_is_inter(self):
        self.assertTrue(is_inter_state("27", "09"))

    def test_missing_code_defaults_to_intra(self):
        """Either side unknown keeps CGST/SGST active."""
        self.assertFalse(is_inter_state("27", None))
        self.assertFalse(is_inter_state(None, "09"))
        self.assertFalse(is_inter_state("", "09"))
        self.assertFalse(is_inter_state("27", "   "))

    def test_whitespace_is_ignored(self):
        self.assertFalse(is_inter_state(" 27", "27 "))

    def test_missing_state_codes(self):
        self.assertEqual(missing_state_codes("27", ""), ["buyer_state_code"])
        self.assertEqual(missing_state_codes(None, None), ["seller_state_code", "buyer_state_code"])
        self.assertEqual(missing_state_codes("27", "09"), [])

class TestLineItemCalculator(unittest.TestCase):

    def test_scenario_a_intra_state(self):
        item = recalc_line_item(_line(), inter_state=is_inter_state("27", "27"))
        self.assertEqual(item.taxable_amount, Decimal("200"))
        self.assertEqual(item.cgst_amount, Decimal("18"))
        self.assertEqual(item.sgst_amount, Decimal("18"))
        self.assertEqual(item.igst_amount, Decimal("0"))
        self.assertEqual(item.total_amount, Decimal("236"))

    def test_scenario_b_inter_state(self):
        item = recalc_line_item(_line(), inter_state=is_inter_state("27", "09"))
        self.assertEqual(item.taxable_amount, Decimal("200"))
        self.assertEqual(item.igst_amount, Decimal("36"))
        self.assertEqual(item.cgst_amount, Decimal("0"))
        self.assertEqual(item.sgst_amount, Decimal("0"))
        self.assertEqual(item.total_amount, Decimal("236"))

    def test_scenario_c_missing_buyer_state(self):
        intra = recalc_line_item(_line(), inter_state=is_inter_state("27", "27"))
        missing = recalc_line_item(_line(), inter_state=is_inter_state("27", None))
        self.assertEqual(intra, missing)

    def test_cess_is_added_to_total(self):
        item = recalc_line_item(_line(cess_amount="12.50"), inter_state=False)
        self.assertEqual(item.total_amount, Decimal("248.50"))

    def test_zero_quantity_leaves_only_cess(self):
        item = recalc_line_item(_line(quantity=0, cess_amount=5), inter_state=False)
        self.assertEqual(item.taxable_amount, Decimal("0"))
        self.assertEqual(item.total_amount, Decimal("5"))

    def test_zero_rate_leaves_only_cess(self):
        item = recalc_line_item(_line(rate=0, cess_amount=3), inter_state=True)
        self.assertEqual(item.taxable_amount, Decimal("0"))
        self.assertEqual(item.igst_amount, Decimal("0"))
        self.assertEqual(item.total_amount, Decimal("3"))

    def test_no_line_level_rounding(self):
        item = recalc_line_item(_line(quantity="3", rate="33.33", gst_rate=5), inter_state=False)
        self.assertEqual(item.taxable_amount, Decimal("99.99"))
        # 99.99 * 5% = 4.9995, split without rounding
        self.assertEqual(item.cgst_amount, Decimal("2.49975"))
        self.assertEqual(item.sgst_amount, Decimal("2.49975"))

    def test_input_is_not_mutated(self):
        original = _line()
        recalc_line_item(original, inter_state=False)
        self.assertEqual(original.taxable_amount, Decimal("0"))

    def test_split_is_mutually_exclusive(self):
        lines = [
            _line(quantity="1.5", rate="999.99", gst_rate=28, cess_amount="7"),
            _line(quantity=7, rate="12.10", gst_rate="0.25"),
            _line(quantity=1, rate=1, gst_rate=5),
        ]
        for inter_state in (True, False):
            for item in recalc_line_items(lines, inter_state):
                self.assertEqual(item.cgst_amount, item.sgst_amount)
                split_nonzero = item.cgst_amount != 0
                igst_nonzero = item.igst_amount != 0
                self.assertNotEqual(split_nonzero, igst_nonzero)
                self.assertEqual(
                    item.total_amount,
                    item.taxable_amount + item.cgst_amount + item.sgst_amount + item.igst_amount + item.cess_amount,
                )

    def test_toggle_restores_split_exactly(self):
        original = recalc_line_item(_line(quantity="3", rate="17.77", gst_rate=12), inter_state=False)
        toggled = recalc_line_item(original, inter_state=True)
        restored = recalc_line_item(toggled, inter_state=False)
        self.assertEqual(restored, original)

class TestAggregator(unittest.TestCase):

    def test_totals_sum_line_items(self):
        items = recalc_line_items([_line(), _line(quantity=1, rate=50, gst_rate=5, cess_amount=2)], inter_state=False)
        totals = calc_totals(items, round_off=Decimal("-0.50"))
        self.assertEqual(totals.taxable_amount, Decimal("250"))
        self.assertEqual(totals.cgst_total, Decimal("19.25"))
        self.assertEqual(totals.sgst_total, Decimal("19.25"))
        self.assertEqual(totals.igst_total, Decimal("0"))
        self.assertEqual(totals.cess_total, Decimal("2"))
        self.assertEqual(totals.round_off, Decimal("-0.50"))
        self.assertEqual(totals.grand_total, Decimal("290.00"))

    def test_grand_total_invariant(self):
        items = recalc_line_items([_line(quantity="2.5", rate="40.4", gst_rate=12, cess_amount="1.1")], inter_state=True)
        t = calc_totals(items, round_off="0.37")
        self.assertEqual(
            t.grand_total,
            t.taxable_amount + t.cgst_total + t.sgst_total + t.igst_total + t.cess_total + t.round_off,
        )

    def test_empty_sequence_is_round_off_only(self):
        totals = calc_totals([], round_off=Decimal("0.40"))
        self.assertEqual(totals.taxable_amount, Decimal("0"))
        self.assertEqual(totals.cess_total, Decimal("0"))
        self.assertEqual(totals.grand_total, Decimal("0.40"))

    def test_recompute_is_idempotent(self):
        items = recalc_line_items([_line(), _line(rate="0.33", gst_rate=18)], inter_state=False)
        first = calc_totals(items, round_off=Decimal("0.01"))
        second = calc_totals(items, round_off=Decimal("0.01"))
        self.assertEqual(first, second)

    def test_amount_in_words_passes_through(self):
        totals = calc_totals([], amount_in_words="Zero Rupees Only")
        self.assertEqual(totals.amount_in_words, "Zero Rupees Only")

class TestPayableSummary(unittest.TestCase):

    def setUp(self):
        self.totals = calc_totals(recalc_line_items([_line()], inter_state=False))

    def test_charges_and_amount_discount(self):
        summary = calc_payable(
            self.totals,
            AdditionalCharges(delivery_charge=40, packaging_charge=10),
            Discount(amount=36),
        )
        self.assertEqual(summary.grand_total, Decimal("236"))
        self.assertEqual(summary.charges_total, Decimal("50"))
        self.assertEqual(summary.net_payable, Decimal("250"))

    def test_percentage_discount(self):
        summary = calc_payable(self.totals, None, Discount(percentage=10))
        self.assertEqual(summary.discount_amount, Decimal("23.6"))
        self.assertEqual(summary.net_payable, Decimal("212.4"))

    def test_grand_total_unchanged_by_adjustments(self):
        calc_payable(self.totals, AdditionalCharges(tip=20), Discount(amount=5))
        self.assertEqual(self.totals.grand_total, Decimal("236"))

    def test_discount_rejects_both_kinds(self):
        with self.assertRaises(ValueError):
            Discount(amount=5, percentage=5)

if __name__ == '__main__':
    unittest.main()
