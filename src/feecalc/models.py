"""Pydantic data models for invoices and API payloads."""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

InvoiceStatus = Literal["draft", "sent", "paid", "overdue", "cancelled"]

DEFAULT_PAYMENT_TERMS = "Payment is due within 30 days of invoice date."
DEFAULT_PAYMENT_INSTRUCTIONS = (
    "Please make payment via PayPal to the email address provided."
)


def new_id() -> str:
    return str(uuid.uuid4())


class Address(BaseModel):
    """Postal address; every part is optional for customers."""

    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class CustomerInput(BaseModel):
    """Customer details as entered on the invoice form."""

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: Optional[str] = None
    address: Optional[Address] = None


class Customer(CustomerInput):
    """Customer attached to a stored invoice."""

    id: str = Field(default_factory=new_id)


class InvoiceItemInput(BaseModel):
    """Line item as entered; amount is derived from quantity and rate."""

    description: str = ""
    quantity: float = 1
    rate: float = 0
    tax_rate: Optional[float] = None


class InvoiceItem(BaseModel):
    """Invoice line item; amount is maintained by the caller."""

    id: str = Field(default_factory=new_id)
    description: str = ""
    quantity: float = 1
    rate: float = 0
    amount: float = 0
    tax_rate: Optional[float] = None
    tax_amount: Optional[float] = None


class InvoiceDraft(BaseModel):
    """Invoice form payload used to build a new invoice."""

    customer: CustomerInput
    items: List[InvoiceItemInput] = Field(..., min_length=1)
    currency: str = "USD"
    tax_rate: float = 0
    discount_rate: float = 0
    include_paypal_fee: bool = False
    paypal_transaction_type: str = "domestic"
    notes: Optional[str] = None
    terms: Optional[str] = DEFAULT_PAYMENT_TERMS
    payment_instructions: Optional[str] = DEFAULT_PAYMENT_INSTRUCTIONS
    due_date: Optional[datetime] = None


class Invoice(BaseModel):
    """Stored invoice with derived totals captured at creation time."""

    id: str = Field(default_factory=new_id)
    invoice_number: str
    status: InvoiceStatus = "draft"
    issue_date: datetime
    due_date: datetime
    customer: Customer
    items: List[InvoiceItem]
    currency: str = "USD"
    subtotal: float
    tax_rate: Optional[float] = None
    tax_amount: Optional[float] = None
    discount_rate: Optional[float] = None
    discount_amount: Optional[float] = None
    paypal_fee: Optional[float] = None
    include_paypal_fee: bool = False
    total: float
    notes: Optional[str] = None
    terms: Optional[str] = None
    payment_instructions: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    paid_at: Optional[datetime] = None


class InvoiceTotals(BaseModel):
    """Subtotal, discount, tax and grand total of an invoice."""

    subtotal: float
    tax_amount: float
    discount_amount: float
    total: float


class InvoiceStats(BaseModel):
    """Aggregate amounts across stored invoices."""

    total_invoices: int = 0
    total_amount: float = 0
    paid_amount: float = 0
    pending_amount: float = 0
    overdue_amount: float = 0
    average_invoice_amount: float = 0


class FeeRequest(BaseModel):
    """Request payload for single fee calculation."""

    amount: float
    transaction_type: str = "domestic"
    is_micropayment: bool = False


class FeeResponse(BaseModel):
    """Fee breakdown returned by the API."""

    original_amount: float
    paypal_fee: float
    fee_percentage: float
    fixed_fee: float
    net_amount: float
    should_request_amount: float


class ReverseFeeResponse(BaseModel):
    """Amount to request for a desired net amount."""

    desired_amount: float
    should_request_amount: float


class BatchFeeRequest(BaseModel):
    """Batch payload: explicit amounts or free text to parse."""

    amounts: Optional[List[float]] = None
    text: Optional[str] = None
    transaction_type: str = "domestic"


class BatchFeeResponse(BaseModel):
    """Aggregated batch result."""

    total_original: float
    total_fees: float
    total_net: float
    calculations: List[FeeResponse]


class InvoiceTotalsRequest(BaseModel):
    """Request payload for invoice totals preview."""

    items: List[InvoiceItem] = Field(default_factory=list)
    tax_rate: float = 0
    discount_rate: float = 0
    paypal_fee: float = 0
    include_paypal_fee: bool = False


class InvoiceStatusUpdate(BaseModel):
    """Status transition request."""

    status: InvoiceStatus
