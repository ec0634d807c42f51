from typing import Iterable

from gst_review.domain.schemas import BulkApproveResult
from gst_review.utils.logging_config import get_logger

logger = get_logger(__name__)

class BulkApprovalCoordinator:
    """
    Approves many invoices in one store request. Totals are not recomputed:
    invoices reaching bulk approval are expected to be consistent already.
    """

    def __init__(self, store):
        self.store = store

    def approve(self, invoice_ids: Iterable[str]) -> BulkApproveResult:
        """
        Returns the store's modified_count as reported. Fewer modifications
        than requested (another reviewer got there first) is a partial
        success, not an error.
        """
        # De-duplicate, keep selection order
        ids = list(dict.fromkeys(i for i in invoice_ids if i))
        if not ids:
            return BulkApproveResult(requested=0, modified_count=0)

        modified = self.store.bulk_approve(ids)
        result = BulkApproveResult(requested=len(ids), modified_count=modified, partial=modified < len(ids))

        if result.partial:
            logger.warning(f"Bulk approve: {modified} of {len(ids)} invoices approved; the rest were no longer pending.")
        else:
            logger.info(f"Bulk approve: {modified} invoices approved.")
        return result
