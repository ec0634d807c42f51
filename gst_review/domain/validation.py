import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from gst_review.core.config import LOW_CONFIDENCE_THRESHOLD
from gst_review.domain.errors import InvoiceValidationError
from gst_review.domain.schemas import Invoice, LineItem, ValidationIssue
from gst_review.domain.tax import is_inter_state, missing_state_codes
from gst_review.utils.config_loader import (
    get_gst_rate_bounds,
    get_required_header_fields,
    get_standard_slabs,
    load_gst_rules,
    load_state_master,
)

GSTIN_PATTERN = re.compile(r'^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$')

NON_NEGATIVE_LINE_FIELDS = ("quantity", "rate", "cess_amount")

def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        num = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    # NaN and Infinity parse but are not amounts
    return num if num.is_finite() else None

def check_line_inputs(values: Dict[str, Any], prefix: str = "", rules: Dict[str, Any] = None) -> List[ValidationIssue]:
    """
    Checks the numeric operator inputs of a line. gst_rate outside the allowed
    range is reported, never clamped: it usually means extraction misread a column.
    """
    rules = rules if rules is not None else load_gst_rules()
    issues = []

    for field in NON_NEGATIVE_LINE_FIELDS:
        if field not in values:
            continue
        num = _to_decimal(values[field])
        if num is None:
            issues.append(ValidationIssue(field=f"{prefix}{field}", message="must be a number"))
        elif num < 0:
            issues.append(ValidationIssue(field=f"{prefix}{field}", message="cannot be negative"))

    if "gst_rate" in values:
        rate = _to_decimal(values["gst_rate"])
        low, high = get_gst_rate_bounds(rules)
        if rate is None:
            issues.append(ValidationIssue(field=f"{prefix}gst_rate", message="must be a number"))
        elif rate < low or rate > high:
            issues.append(ValidationIssue(
                field=f"{prefix}gst_rate",
                message=f"{rate}% is outside the allowed range {low}-{high}%",
            ))
        elif rate not in get_standard_slabs(rules):
            issues.append(ValidationIssue(
                field=f"{prefix}gst_rate",
                message=f"{rate}% is not a standard GST slab",
                blocking=False,
            ))

    return issues

def _line_values(item: LineItem) -> Dict[str, Any]:
    return {
        "quantity": item.quantity,
        "rate": item.rate,
        "gst_rate": item.gst_rate,
        "cess_amount": item.cess_amount,
    }

def _check_party(invoice: Invoice, party: str, state_master: Dict[str, str]) -> List[ValidationIssue]:
    issues = []
    gstin = (getattr(invoice, f"{party}_gstin") or "").strip().upper()
    state_code = (getattr(invoice, f"{party}_state_code") or "").strip()

    if state_code and state_master and state_code not in state_master:
        issues.append(ValidationIssue(
            field=f"{party}_state_code",
            message=f"'{state_code}' is not a known GST state code",
            blocking=False,
        ))

    if gstin:
        if not GSTIN_PATTERN.match(gstin):
            issues.append(ValidationIssue(field=f"{party}_gstin", message="GSTIN format looks invalid", blocking=False))
        elif state_code and gstin[:2] != state_code:
            issues.append(ValidationIssue(
                field=f"{party}_state_code",
                message=f"GSTIN {gstin} belongs to state {gstin[:2]}, not {state_code}",
                blocking=False,
            ))
    return issues

def validate_invoice(invoice: Invoice, rules: Dict[str, Any] = None) -> List[ValidationIssue]:
    """
    Full check of a working copy. Returns blocking errors and non-blocking
    warnings together; callers split them on `blocking`.
    """
    rules = rules if rules is not None else load_gst_rules()
    issues = []

    # 1. Required header fields
    for field in get_required_header_fields(rules):
        value = getattr(invoice, field, None)
        if value is None or not str(value).strip():
            issues.append(ValidationIssue(field=field, message="is required"))

    # 2. Line items
    for index, item in enumerate(invoice.line_items):
        issues.extend(check_line_inputs(_line_values(item), prefix=f"line_items[{index}].", rules=rules))

    # 3. Parties
    state_master = load_state_master(rules)
    issues.extend(_check_party(invoice, "seller", state_master))
    issues.extend(_check_party(invoice, "buyer", state_master))

    # 4. Documented intra-state default
    for field in missing_state_codes(invoice.seller_state_code, invoice.buyer_state_code):
        issues.append(ValidationIssue(
            field=field,
            message="state code missing, tax treated as intra-state (CGST+SGST)",
            blocking=False,
        ))

    # 5. supply_type is operator-entered; flag it when it contradicts the state codes
    inter_state = is_inter_state(invoice.seller_state_code, invoice.buyer_state_code)
    declared = (invoice.supply_type or "").strip().lower()
    if declared and declared.startswith("inter") != inter_state:
        issues.append(ValidationIssue(
            field="supply_type",
            message=f"'{invoice.supply_type}' disagrees with state codes ({'inter' if inter_state else 'intra'}-state tax applied)",
            blocking=False,
        ))

    # 6. Extraction confidence, when extraction reported one
    if invoice.confidence_score is not None and invoice.confidence_score < LOW_CONFIDENCE_THRESHOLD:
        issues.append(ValidationIssue(
            field="confidence_score",
            message=f"low extraction confidence ({invoice.confidence_score:.0%}), check every field",
            blocking=False,
        ))

    return issues

def blocking(issues: List[ValidationIssue]) -> List[ValidationIssue]:
    return [i for i in issues if i.blocking]

def warnings(issues: List[ValidationIssue]) -> List[ValidationIssue]:
    return [i for i in issues if not i.blocking]

def ensure_valid(invoice: Invoice, rules: Dict[str, Any] = None) -> List[ValidationIssue]:
    """
    Raises InvoiceValidationError on any blocking issue, otherwise returns the warnings.
    """
    issues = validate_invoice(invoice, rules)
    errors = blocking(issues)
    if errors:
        raise InvoiceValidationError(errors)
    return warnings(issues)
