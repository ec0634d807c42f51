from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Optional
from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, model_validator

# Decimal in memory, plain JSON number on the wire.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

ZERO = Decimal("0")

class InvoiceStatus(str, Enum):
    PENDING_USER_CONFIRMATION = "pending_user_confirmation"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPORTED = "exported"

class LineItem(BaseModel):
    """
    A single invoice row. quantity, rate, gst_rate and cess_amount are operator
    inputs; the remaining amounts are derived by the line calculator.
    """
    model_config = ConfigDict(extra="ignore")

    description: str = Field("", description="Item description as printed.")
    hsn_sac_code: str = Field("", description="HSN (goods) or SAC (services) code.")
    quantity: Money = Field(ZERO, description="Billed quantity.")
    unit: str = Field("NOS", description="Unit of measure.")
    rate: Money = Field(ZERO, description="Unit price before tax.")
    gst_rate: Money = Field(ZERO, description="GST percentage (0-28).")
    cess_amount: Money = Field(ZERO, description="Cess entered directly, not rate derived.")

    # Derived
    taxable_amount: Money = Field(ZERO)
    cgst_amount: Money = Field(ZERO)
    sgst_amount: Money = Field(ZERO)
    igst_amount: Money = Field(ZERO)
    total_amount: Money = Field(ZERO)

class InvoiceTotals(BaseModel):
    model_config = ConfigDict(extra="ignore")

    taxable_amount: Money = ZERO
    cgst_total: Money = ZERO
    sgst_total: Money = ZERO
    igst_total: Money = ZERO
    cess_total: Money = ZERO
    round_off: Money = Field(ZERO, description="Signed operator correction.")
    grand_total: Money = ZERO
    amount_in_words: Optional[str] = None

class AdditionalCharges(BaseModel):
    """
    Named charges shown under the totals. Added to the payable amount, never taxed here.
    """
    service_charge: Money = ZERO
    delivery_charge: Money = ZERO
    packaging_charge: Money = ZERO
    tip: Money = ZERO
    convenience_fee: Money = ZERO
    other_charges: Money = ZERO

class Discount(BaseModel):
    """
    Either a flat amount or a percentage of the grand total. Not distributed to lines.
    """
    amount: Optional[Money] = None
    percentage: Optional[Money] = Field(None, ge=0, le=100)

    @model_validator(mode="after")
    def _one_kind(self):
        if self.amount is not None and self.percentage is not None:
            raise ValueError("Discount takes either an amount or a percentage, not both.")
        if self.amount is not None and self.amount < 0:
            raise ValueError("Discount amount cannot be negative.")
        return self

class PayableSummary(BaseModel):
    grand_total: Money
    charges_total: Money
    discount_amount: Money
    net_payable: Money

class Invoice(BaseModel):
    """
    Invoice document as stored by the backend. The review engine only ever
    edits a copy of it.
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None

    # Header
    invoice_number: str = ""
    invoice_date: str = ""
    invoice_type: str = "Tax Invoice"
    voucher_type: str = "Purchase"
    supply_type: str = "Intra-State"
    reverse_charge: bool = False
    seller_name: str = ""
    seller_gstin: Optional[str] = None
    seller_state_code: Optional[str] = None
    seller_state_name: Optional[str] = None
    buyer_name: str = ""
    buyer_gstin: Optional[str] = None
    buyer_state_code: Optional[str] = None
    buyer_state_name: Optional[str] = None

    line_items: List[LineItem] = Field(default_factory=list)
    totals: InvoiceTotals = Field(default_factory=InvoiceTotals)
    additional_charges: Optional[AdditionalCharges] = None
    discount: Optional[Discount] = None

    status: InvoiceStatus = InvoiceStatus.PENDING_REVIEW

    # Upstream metadata (read-only here)
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    sender_phone: Optional[str] = None
    confidence_score: Optional[float] = Field(None, ge=0, le=1)
    extraction_notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

HEADER_FIELDS = (
    "invoice_number",
    "invoice_date",
    "invoice_type",
    "voucher_type",
    "supply_type",
    "reverse_charge",
    "seller_name",
    "seller_gstin",
    "seller_state_code",
    "seller_state_name",
    "buyer_name",
    "buyer_gstin",
    "buyer_state_code",
    "buyer_state_name",
)

LINE_INPUT_FIELDS = ("description", "hsn_sac_code", "quantity", "unit", "rate", "gst_rate", "cess_amount")

class ValidationIssue(BaseModel):
    field: str
    message: str
    blocking: bool = True

class BulkApproveResult(BaseModel):
    requested: int
    modified_count: int
    partial: bool = False
