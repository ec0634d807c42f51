import os
import sys
import unittest
from unittest.mock import MagicMock

import requests

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from gst_review.domain.errors import InvoiceNotFoundError, PersistenceError, TransitionError
from gst_review.services.backend_client import BackendClient

def _response(status_code=200, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.text = text
    return response

class TestBackendClient(unittest.TestCase):

    def setUp(self):
        self.http = MagicMock()
        self.http.headers = {}
        self.client = BackendClient(base_url="http://backend.test/", token="tok", timeout=5, session=self.http)

    def test_auth_header_and_base_url(self):
        self.assertEqual(self.http.headers["Authorization"], "Bearer tok")
        self.assertEqual(self.client.base_url, "http://backend.test")

    def test_get_invoice_unwraps_data(self):
        self.http.request.return_value = _response(json_data={"data": {"id": "inv-1", "invoice_number": "A-1"}})
        invoice = self.client.get_invoice("inv-1")
        self.assertEqual(invoice.invoice_number, "A-1")
        method, url = self.http.request.call_args.args
        self.assertEqual((method, url), ("GET", "http://backend.test/api/invoices/inv-1"))
        self.assertEqual(self.http.request.call_args.kwargs["timeout"], 5)

    def test_get_invoice_404(self):
        self.http.request.return_value = _response(404, text="not found")
        with self.assertRaises(InvoiceNotFoundError):
            self.client.get_invoice("inv-1")

    def test_list_invoices_passes_filters(self):
        self.http.request.return_value = _response(json_data={"data": [{"id": "inv-1"}], "total": 1})
        result = self.client.list_invoices(status="pending_review", limit=10)
        self.assertEqual(result["total"], 1)
        self.assertEqual(result["data"][0].id, "inv-1")
        params = self.http.request.call_args.kwargs["params"]
        self.assertEqual(params, {"limit": 10, "offset": 0, "status": "pending_review"})

    def test_update_sends_payload(self):
        self.http.request.return_value = _response(json_data={"status": "ok"})
        self.client.update_invoice("inv-1", {"invoice_number": "A-1"})
        self.assertEqual(self.http.request.call_args.args[0], "PUT")
        self.assertEqual(self.http.request.call_args.kwargs["json"], {"invoice_number": "A-1"})

    def test_network_failure_is_persistence_error(self):
        self.http.request.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(PersistenceError) as ctx:
            self.client.update_invoice("inv-1", {})
        self.assertIsNone(ctx.exception.status_code)

    def test_server_error_keeps_status_code(self):
        self.http.request.return_value = _response(500, text="boom")
        with self.assertRaises(PersistenceError) as ctx:
            self.client.update_invoice("inv-1", {})
        self.assertEqual(ctx.exception.status_code, 500)

    def test_update_conflict_is_transition_error(self):
        self.http.request.return_value = _response(409, text="approved")
        with self.assertRaises(TransitionError):
            self.client.update_invoice("inv-1", {})

    def test_approve_failure_is_transition_error(self):
        self.http.request.return_value = _response(409, text="already exported")
        with self.assertRaises(TransitionError) as ctx:
            self.client.approve_invoice("inv-1")
        self.assertEqual(ctx.exception.invoice_id, "inv-1")

    def test_reject_url(self):
        self.http.request.return_value = _response()
        self.client.reject_invoice("inv-1")
        self.assertEqual(self.http.request.call_args.args, ("POST", "http://backend.test/api/invoices/inv-1/reject"))

    def test_bulk_approve_returns_modified_count(self):
        self.http.request.return_value = _response(json_data={"modified_count": 1})
        self.assertEqual(self.client.bulk_approve(["id1", "id2"]), 1)
        self.assertEqual(self.http.request.call_args.kwargs["json"], ["id1", "id2"])

    def test_bulk_approve_bad_response(self):
        self.http.request.return_value = _response(json_data=["unexpected"])
        with self.assertRaises(PersistenceError):
            self.client.bulk_approve(["id1"])

if __name__ == '__main__':
    unittest.main()
