from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from gst_review.domain import lifecycle
from gst_review.domain.errors import (
    GSTReviewError,
    InvoiceValidationError,
    RequestInFlightError,
    SavedNotApprovedError,
)
from gst_review.domain.schemas import (
    HEADER_FIELDS,
    LINE_INPUT_FIELDS,
    AdditionalCharges,
    Discount,
    Invoice,
    InvoiceStatus,
    InvoiceTotals,
    LineItem,
    PayableSummary,
    ValidationIssue,
)
from gst_review.domain.tax import calc_payable, calc_totals, is_inter_state, recalc_line_item, recalc_line_items
from gst_review.domain.validation import check_line_inputs, ensure_valid, validate_invoice, warnings
from gst_review.utils.config_loader import get_new_line_defaults, load_gst_rules, load_state_master
from gst_review.utils.logging_config import get_logger

logger = get_logger(__name__)

# Read-only upstream metadata, never sent back on save
PAYLOAD_EXCLUDE = {
    "id",
    "status",
    "client_id",
    "client_name",
    "sender_phone",
    "confidence_score",
    "extraction_notes",
    "created_at",
    "updated_at",
}

def _issues_from_pydantic(exc: ValidationError, prefix: str = "") -> List[ValidationIssue]:
    return [
        ValidationIssue(field=prefix + ".".join(str(p) for p in err["loc"]), message=err["msg"])
        for err in exc.errors()
    ]

class ReviewSession:
    """
    Interactive review of one invoice.

    Holds a working copy of the stored invoice and keeps it internally
    consistent: every edit runs state determination -> line recalculation
    -> totals aggregation before returning, and the working copy is replaced
    as a whole, never patched in place. Save/approve/reject go through the
    injected store (Neo4jInvoiceStore or BackendClient).

    Sessions share nothing; closing one without saving just drops it.
    """

    def __init__(self, invoice: Invoice, store, rules: Dict[str, Any] = None):
        self.store = store
        self.rules = rules if rules is not None else load_gst_rules()
        self.invoice_id = invoice.id
        self.status = InvoiceStatus(invoice.status)
        self.last_error: Optional[GSTReviewError] = None
        self._busy: Optional[str] = None
        # Set once a save went through but approve did not; cleared by any edit
        self._saved_pending_approval = False

        self._state_master = load_state_master(self.rules)
        self._inter_state = is_inter_state(invoice.seller_state_code, invoice.buyer_state_code)
        self.invoice = self._recompute(self._fill_state_names(invoice.model_copy(deep=True)), all_lines=True)
        self._snapshot = self.invoice.model_copy(deep=True)

    @classmethod
    def open(cls, store, invoice_id: str, rules: Dict[str, Any] = None) -> "ReviewSession":
        """
        Loads the invoice from the store and starts a session on it.
        """
        invoice = store.get_invoice(invoice_id)
        if invoice.id is None:
            invoice = invoice.model_copy(update={"id": invoice_id})
        logger.info(f"Review session opened for invoice {invoice_id} ({invoice.status.value}).")
        return cls(invoice, store, rules)

    # ---------- read side ----------
    @property
    def inter_state(self) -> bool:
        return self._inter_state

    @property
    def read_only(self) -> bool:
        return lifecycle.is_read_only(self.status)

    @property
    def busy(self) -> bool:
        return self._busy is not None

    @property
    def is_dirty(self) -> bool:
        return self.invoice != self._snapshot

    @property
    def line_items(self) -> List[LineItem]:
        return list(self.invoice.line_items)

    @property
    def totals(self) -> InvoiceTotals:
        return self.invoice.totals

    @property
    def payable(self) -> PayableSummary:
        return calc_payable(self.invoice.totals, self.invoice.additional_charges, self.invoice.discount)

    @property
    def warnings(self) -> List[ValidationIssue]:
        return warnings(validate_invoice(self.invoice, self.rules))

    def validate(self) -> List[ValidationIssue]:
        return validate_invoice(self.invoice, self.rules)

    def build_payload(self) -> Dict[str, Any]:
        """
        The persisted document: header, line items with every derived field,
        and totals. Status is not part of a save.
        """
        return self.invoice.model_dump(mode="json", exclude=PAYLOAD_EXCLUDE, exclude_none=True)

    def to_view(self) -> Dict[str, Any]:
        issues = self.validate()
        return {
            "invoice": self.invoice.model_dump(mode="json"),
            "inter_state": self.inter_state,
            "read_only": self.read_only,
            "dirty": self.is_dirty,
            "payable": self.payable.model_dump(mode="json"),
            "errors": [i.model_dump() for i in issues if i.blocking],
            "warnings": [i.model_dump() for i in issues if not i.blocking],
        }

    # ---------- recompute pipeline ----------
    def _fill_state_names(self, invoice: Invoice) -> Invoice:
        update = {}
        for party in ("seller", "buyer"):
            code = (getattr(invoice, f"{party}_state_code") or "").strip()
            if code and not getattr(invoice, f"{party}_state_name") and code in self._state_master:
                update[f"{party}_state_name"] = self._state_master[code]
        return invoice.model_copy(update=update) if update else invoice

    def _recompute(self, invoice: Invoice, all_lines: bool = False, line_index: Optional[int] = None) -> Invoice:
        """
        1. InterStateDeterminer
        2. LineItemCalculator (every line if the flag flipped or all_lines, else one)
        3. Aggregator
        Returns a new Invoice; the caller swaps it in.
        """
        inter_state = is_inter_state(invoice.seller_state_code, invoice.buyer_state_code)
        flag_changed = inter_state != self._inter_state
        self._inter_state = inter_state

        items = list(invoice.line_items)
        if all_lines or flag_changed:
            items = recalc_line_items(items, inter_state)
        elif line_index is not None:
            items[line_index] = recalc_line_item(items[line_index], inter_state)

        totals = calc_totals(items, invoice.totals.round_off, invoice.totals.amount_in_words)
        return invoice.model_copy(update={"line_items": items, "totals": totals})

    def _apply(self, invoice: Invoice, **kwargs) -> Invoice:
        self.invoice = self._recompute(invoice, **kwargs)
        self._saved_pending_approval = False
        return self.invoice

    def _require_editable(self, action: str = lifecycle.SAVE):
        lifecycle.next_status(self.status, action, invoice_id=self.invoice_id)

    def _check_index(self, index: int):
        if not 0 <= index < len(self.invoice.line_items):
            raise InvoiceValidationError([ValidationIssue(field=f"line_items[{index}]", message="no such line item")])

    # ---------- edits ----------
    def update_header(self, **fields) -> Invoice:
        self._require_editable()
        unknown = [f for f in fields if f not in HEADER_FIELDS]
        if unknown:
            raise InvoiceValidationError([ValidationIssue(field=f, message="not an editable header field") for f in unknown])

        # A changed state code invalidates the looked-up name unless one was given
        for party in ("seller", "buyer"):
            if f"{party}_state_code" in fields and f"{party}_state_name" not in fields:
                fields[f"{party}_state_name"] = None

        try:
            updated = Invoice.model_validate({**self.invoice.model_dump(), **fields})
        except ValidationError as e:
            raise InvoiceValidationError(_issues_from_pydantic(e))
        return self._apply(self._fill_state_names(updated))

    def _build_line(self, base: Dict[str, Any], fields: Dict[str, Any], index: int) -> LineItem:
        unknown = [f for f in fields if f not in LINE_INPUT_FIELDS]
        prefix = f"line_items[{index}]."
        if unknown:
            raise InvoiceValidationError([ValidationIssue(field=prefix + f, message="not an editable line field") for f in unknown])

        errors = [i for i in check_line_inputs(fields, prefix=prefix, rules=self.rules) if i.blocking]
        if errors:
            raise InvoiceValidationError(errors)
        try:
            return LineItem.model_validate({**base, **fields})
        except ValidationError as e:
            raise InvoiceValidationError(_issues_from_pydantic(e, prefix))

    def update_line_item(self, index: int, **fields) -> LineItem:
        """
        Edits operator inputs of one line. Invalid input (e.g. gst_rate 40) is
        refused and the working copy stays as it was.
        """
        self._require_editable()
        self._check_index(index)
        line = self._build_line(self.invoice.line_items[index].model_dump(), fields, index)
        items = list(self.invoice.line_items)
        items[index] = line
        self._apply(self.invoice.model_copy(update={"line_items": items}), line_index=index)
        return self.invoice.line_items[index]

    def add_line_item(self, **fields) -> LineItem:
        self._require_editable()
        index = len(self.invoice.line_items)
        line = self._build_line(get_new_line_defaults(self.rules), fields, index)
        items = list(self.invoice.line_items) + [line]
        self._apply(self.invoice.model_copy(update={"line_items": items}), line_index=index)
        return self.invoice.line_items[index]

    def replace_line_items(self, rows: List[Dict[str, Any]]) -> List[LineItem]:
        """
        Swaps in a whole new line sequence (form resubmission). Derived
        amounts in `rows` are ignored and recomputed.
        """
        self._require_editable()
        defaults = get_new_line_defaults(self.rules)
        items = []
        issues = []
        for index, row in enumerate(rows):
            inputs = {k: v for k, v in row.items() if k in LINE_INPUT_FIELDS}
            try:
                items.append(self._build_line(defaults, inputs, index))
            except InvoiceValidationError as e:
                issues.extend(e.issues)
        if issues:
            raise InvoiceValidationError(issues)
        self._apply(self.invoice.model_copy(update={"line_items": items}), all_lines=True)
        return self.line_items

    def remove_line_item(self, index: int) -> LineItem:
        self._require_editable()
        self._check_index(index)
        items = list(self.invoice.line_items)
        removed = items.pop(index)
        self._apply(self.invoice.model_copy(update={"line_items": items}))
        return removed

    def set_round_off(self, value: Union[Decimal, float, str]) -> InvoiceTotals:
        self._require_editable()
        try:
            round_off = Decimal(str(value))
        except ArithmeticError:
            round_off = None
        if round_off is None or not round_off.is_finite():
            raise InvoiceValidationError([ValidationIssue(field="totals.round_off", message="must be a number")])
        totals = self.invoice.totals.model_copy(update={"round_off": round_off})
        self._apply(self.invoice.model_copy(update={"totals": totals}))
        return self.invoice.totals

    def set_additional_charges(self, charges: Union[AdditionalCharges, Dict[str, Any], None]) -> Invoice:
        self._require_editable()
        if isinstance(charges, dict):
            try:
                charges = AdditionalCharges(**charges)
            except ValidationError as e:
                raise InvoiceValidationError(_issues_from_pydantic(e, "additional_charges."))
        return self._apply(self.invoice.model_copy(update={"additional_charges": charges}))

    def set_discount(self, discount: Union[Discount, Dict[str, Any], None]) -> Invoice:
        self._require_editable()
        if isinstance(discount, dict):
            try:
                discount = Discount(**discount)
            except ValidationError as e:
                raise InvoiceValidationError(_issues_from_pydantic(e, "discount."))
        return self._apply(self.invoice.model_copy(update={"discount": discount}))

    def discard(self) -> Invoice:
        """
        Drops unsaved edits and returns to the last loaded/saved state.
        """
        self.invoice = self._snapshot.model_copy(deep=True)
        self._inter_state = is_inter_state(self.invoice.seller_state_code, self.invoice.buyer_state_code)
        return self.invoice

    # ---------- effectful operations ----------
    @contextmanager
    def _in_flight(self, action: str):
        if self._busy is not None:
            raise RequestInFlightError(self.invoice_id, self._busy)
        self._busy = action
        try:
            yield
        except GSTReviewError as e:
            self.last_error = e
            raise
        else:
            self.last_error = None
        finally:
            self._busy = None

    def _persist(self) -> List[ValidationIssue]:
        found = ensure_valid(self.invoice, self.rules)
        payload = self.build_payload()
        self.store.update_invoice(self.invoice_id, payload)
        self._snapshot = self.invoice.model_copy(deep=True)
        return found

    def save(self) -> List[ValidationIssue]:
        """
        Persists the working copy without touching the status. Returns the
        non-blocking warnings. On failure the working copy is left intact.
        """
        with self._in_flight(lifecycle.SAVE):
            self._require_editable()
            try:
                found = self._persist()
            except GSTReviewError as e:
                logger.error(f"Save failed for invoice {self.invoice_id}: {e}")
                raise
            logger.info(f"Invoice {self.invoice_id} saved from review session.")
            return found

    def approve(self) -> List[ValidationIssue]:
        """
        Save, then request the approve transition.

        If the save succeeds and the transition fails, SavedNotApprovedError is
        raised and the session remembers the save: calling approve() again
        without further edits only retries the transition.
        """
        with self._in_flight(lifecycle.APPROVE):
            lifecycle.next_status(self.status, lifecycle.APPROVE, invoice_id=self.invoice_id)

            found: List[ValidationIssue] = []
            if not self._saved_pending_approval:
                try:
                    found = self._persist()
                except GSTReviewError as e:
                    logger.error(f"Approve aborted, save failed for invoice {self.invoice_id}: {e}")
                    raise
                self._saved_pending_approval = True
            else:
                logger.info(f"Invoice {self.invoice_id} already saved, retrying approve only.")

            try:
                self.store.approve_invoice(self.invoice_id)
            except GSTReviewError as e:
                logger.error(f"Invoice {self.invoice_id} saved but approve failed: {e}")
                raise SavedNotApprovedError(
                    f"Invoice {self.invoice_id} was saved but not approved: {e}",
                    invoice_id=self.invoice_id,
                    status=self.status.value,
                ) from e

            self._saved_pending_approval = False
            self.status = InvoiceStatus.APPROVED
            logger.info(f"Invoice {self.invoice_id} approved.")
            return found

    def reject(self) -> InvoiceStatus:
        """
        Requests the reject transition. Pending edits are NOT persisted.
        """
        with self._in_flight(lifecycle.REJECT):
            lifecycle.next_status(self.status, lifecycle.REJECT, invoice_id=self.invoice_id)
            if self.is_dirty:
                logger.info(f"Rejecting invoice {self.invoice_id}; unsaved edits are dropped.")
            self.store.reject_invoice(self.invoice_id)
            self.status = InvoiceStatus.REJECTED
            logger.info(f"Invoice {self.invoice_id} rejected.")
            return self.status
