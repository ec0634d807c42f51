import os
import sys
import unittest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from gst_review.domain import lifecycle
from gst_review.domain.errors import TransitionError
from gst_review.domain.schemas import InvoiceStatus

class TestInvoiceLifecycle(unittest.TestCase):

    def test_pending_statuses_are_editable(self):
        self.assertTrue(lifecycle.is_editable("pending_review"))
        self.assertTrue(lifecycle.is_editable(InvoiceStatus.PENDING_USER_CONFIRMATION))

    def test_terminal_statuses_are_read_only(self):
        for status in ("approved", "rejected", "exported"):
            self.assertTrue(lifecycle.is_read_only(status), status)

    def test_approve_and_reject_from_pending(self):
        for status in (InvoiceStatus.PENDING_REVIEW, InvoiceStatus.PENDING_USER_CONFIRMATION):
            self.assertEqual(lifecycle.next_status(status, lifecycle.APPROVE), InvoiceStatus.APPROVED)
            self.assertEqual(lifecycle.next_status(status, lifecycle.REJECT), InvoiceStatus.REJECTED)

    def test_save_keeps_status(self):
        self.assertEqual(
            lifecycle.next_status("pending_user_confirmation", lifecycle.SAVE),
            InvoiceStatus.PENDING_USER_CONFIRMATION,
        )

    def test_export_only_from_approved(self):
        self.assertEqual(lifecycle.next_status("approved", lifecycle.EXPORT), InvoiceStatus.EXPORTED)
        with self.assertRaises(TransitionError):
            lifecycle.next_status("pending_review", lifecycle.EXPORT)

    def test_scenario_d_approve_exported_is_refused(self):
        with self.assertRaises(TransitionError) as ctx:
            lifecycle.next_status("exported", lifecycle.APPROVE, invoice_id="inv-9")
        self.assertEqual(ctx.exception.status, "exported")
        self.assertEqual(ctx.exception.invoice_id, "inv-9")

    def test_approve_twice_is_refused(self):
        with self.assertRaises(TransitionError):
            lifecycle.next_status("approved", lifecycle.APPROVE)

    def test_save_on_read_only_is_refused(self):
        for status in ("approved", "rejected", "exported"):
            with self.assertRaises(TransitionError):
                lifecycle.next_status(status, lifecycle.SAVE)

    def test_unknown_status_and_action(self):
        with self.assertRaises(TransitionError):
            lifecycle.next_status("archived", lifecycle.APPROVE)
        with self.assertRaises(TransitionError):
            lifecycle.next_status("pending_review", "delete")

    def test_source_statuses(self):
        self.assertEqual(lifecycle.source_statuses(lifecycle.APPROVE), ["pending_review", "pending_user_confirmation"])
        self.assertEqual(lifecycle.source_statuses(lifecycle.EXPORT), ["approved"])

if __name__ == '__main__':
    unittest.main()
