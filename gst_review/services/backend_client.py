from typing import Any, Dict, List, Optional

import requests

from gst_review.core.config import BACKEND_API_TOKEN, BACKEND_TIMEOUT_SECONDS, get_backend_base_url
from gst_review.domain.errors import InvoiceNotFoundError, PersistenceError, TransitionError
from gst_review.domain.schemas import Invoice
from gst_review.utils.logging_config import get_logger

logger = get_logger(__name__)

class BackendClient:
    """
    HTTP client for the dashboard invoice API.

    Contract:
      - GET  /api/invoices                  -> {"data": [...], "total": n}
      - GET  /api/invoices/{id}             -> invoice (optionally wrapped in {"data": ...})
      - PUT  /api/invoices/{id}             <- invoice document
      - POST /api/invoices/{id}/approve
      - POST /api/invoices/{id}/reject
      - POST /api/invoices/bulk-approve     <- [id, ...] -> {"modified_count": n}
    No automatic retries: every retry is a user action.
    """

    def __init__(self, base_url: str = None, token: Optional[str] = BACKEND_API_TOKEN,
                 timeout: float = BACKEND_TIMEOUT_SECONDS, session: requests.Session = None):
        self.base_url = (base_url or get_backend_base_url()).rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json", "Accept": "application/json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    # ---------- internals ----------
    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise PersistenceError(f"Backend unreachable: {e}")

        if response.status_code >= 400:
            detail = response.text[:200]
            logger.error(f"{method} {url} -> HTTP {response.status_code}: {detail}")
            raise PersistenceError(f"Backend HTTP {response.status_code}: {detail}", status_code=response.status_code)
        return response

    def _json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            raise PersistenceError(f"Backend returned non-JSON: {response.text[:200]}", status_code=response.status_code)

    def _transition(self, invoice_id: str, action: str) -> None:
        try:
            self._request("POST", f"/api/invoices/{invoice_id}/{action}")
        except PersistenceError as e:
            if e.status_code == 404:
                raise InvoiceNotFoundError(invoice_id)
            raise TransitionError(f"Could not {action} invoice {invoice_id}: {e}", invoice_id=invoice_id)

    # ---------- store interface ----------
    def get_invoice(self, invoice_id: str) -> Invoice:
        try:
            response = self._request("GET", f"/api/invoices/{invoice_id}")
        except PersistenceError as e:
            if e.status_code == 404:
                raise InvoiceNotFoundError(invoice_id)
            raise
        data = self._json(response)
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            data = data["data"]
        return Invoice(**data)

    def list_invoices(self, status: Optional[str] = None, search: Optional[str] = None,
                      limit: int = 25, offset: int = 0) -> Dict[str, Any]:
        params = {"limit": limit, "offset": offset}
        if status:
            params["status"] = status
        if search:
            params["search"] = search
        data = self._json(self._request("GET", "/api/invoices", params=params))
        return {
            "data": [Invoice(**row) for row in data.get("data") or []],
            "total": data.get("total", 0),
        }

    def update_invoice(self, invoice_id: str, payload: Dict[str, Any]) -> None:
        try:
            self._request("PUT", f"/api/invoices/{invoice_id}", json=payload)
        except PersistenceError as e:
            if e.status_code == 404:
                raise InvoiceNotFoundError(invoice_id)
            if e.status_code == 409:
                raise TransitionError(f"Invoice {invoice_id} is no longer editable", invoice_id=invoice_id)
            raise
        logger.info(f"Invoice {invoice_id} saved via backend.")

    def approve_invoice(self, invoice_id: str) -> None:
        self._transition(invoice_id, "approve")

    def reject_invoice(self, invoice_id: str) -> None:
        self._transition(invoice_id, "reject")

    def bulk_approve(self, invoice_ids: List[str]) -> int:
        data = self._json(self._request("POST", "/api/invoices/bulk-approve", json=list(invoice_ids)))
        try:
            return int(data.get("modified_count", 0))
        except (AttributeError, TypeError, ValueError):
            raise PersistenceError(f"Unexpected bulk-approve response: {data}")
