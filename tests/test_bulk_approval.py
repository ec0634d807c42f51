import os
import sys
import unittest
from unittest.mock import MagicMock

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from gst_review.domain.errors import PersistenceError
from gst_review.services.bulk_approval import BulkApprovalCoordinator

class TestBulkApprovalCoordinator(unittest.TestCase):

    def setUp(self):
        self.store = MagicMock()
        self.coordinator = BulkApprovalCoordinator(self.store)

    def test_full_success(self):
        self.store.bulk_approve.return_value = 2
        result = self.coordinator.approve(["id1", "id2"])
        self.store.bulk_approve.assert_called_once_with(["id1", "id2"])
        self.assertEqual(result.modified_count, 2)
        self.assertFalse(result.partial)

    def test_scenario_e_concurrently_rejected_id(self):
        """id2 was rejected by another reviewer: partial success, no exception."""
        self.store.bulk_approve.return_value = 1
        result = self.coordinator.approve(["id1", "id2"])
        self.assertEqual(result.modified_count, 1)
        self.assertEqual(result.requested, 2)
        self.assertTrue(result.partial)

    def test_duplicates_and_blanks_are_dropped(self):
        self.store.bulk_approve.return_value = 2
        result = self.coordinator.approve(["id1", "", "id2", "id1"])
        self.store.bulk_approve.assert_called_once_with(["id1", "id2"])
        self.assertEqual(result.requested, 2)

    def test_empty_selection_skips_store(self):
        result = self.coordinator.approve([])
        self.store.bulk_approve.assert_not_called()
        self.assertEqual(result.modified_count, 0)

    def test_store_failure_propagates(self):
        self.store.bulk_approve.side_effect = PersistenceError("down")
        with self.assertRaises(PersistenceError):
            self.coordinator.approve(["id1"])

if __name__ == '__main__':
    unittest.main()
