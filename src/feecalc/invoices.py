"""Invoice totals composition and invoice lifecycle helpers."""

import logging
import random
import string
import time
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional, Sequence

from feecalc.calculations import compute_fee, round2
from feecalc.constants import DOMESTIC
from feecalc.models import (
    Customer,
    Invoice,
    InvoiceDraft,
    InvoiceItem,
    InvoiceStats,
    InvoiceTotals,
)

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase

DEFAULT_PAYMENT_TERMS_DAYS = 30


def _item_amount(item: Any) -> float:
    if isinstance(item, Mapping):
        return float(item["amount"])
    return float(item.amount)


def compute_item_amount(quantity: float, rate: float) -> float:
    """Line amount as stored on an item."""
    return round2(quantity * rate)


def compute_invoice_totals(
    items: Sequence[Any],
    tax_rate: float = 0,
    discount_rate: float = 0,
    paypal_fee: float = 0,
    include_paypal_fee: bool = False,
) -> InvoiceTotals:
    """
    Compose invoice totals in a fixed order.

    Discount applies to the subtotal, tax to the discounted subtotal, and the
    pre-computed fee is added last when requested. Each output field is
    rounded from its own unrounded value. Rates are not clamped.
    """
    subtotal = sum(_item_amount(item) for item in items)
    discount_amount = subtotal * discount_rate / 100
    discounted_subtotal = subtotal - discount_amount
    tax_amount = discounted_subtotal * tax_rate / 100
    total = discounted_subtotal + tax_amount

    if include_paypal_fee:
        total += paypal_fee

    return InvoiceTotals(
        subtotal=round2(subtotal),
        tax_amount=round2(tax_amount),
        discount_amount=round2(discount_amount),
        total=round2(total),
    )


def compute_invoice_fee(
    totals: InvoiceTotals, transaction_type: str = DOMESTIC
) -> float:
    """Fee charged on the discounted, taxed invoice amount."""
    chargeable = totals.subtotal - totals.discount_amount + totals.tax_amount
    return compute_fee(chargeable, transaction_type).paypal_fee


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_invoice_number(prefix: str = "INV") -> str:
    """Return an ad-hoc unique number: PREFIX-<time base36>-<random>."""
    timestamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(random.choices(_BASE36, k=3))
    return f"{prefix}-{timestamp}-{suffix}"


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def build_invoice(
    draft: InvoiceDraft,
    invoice_number: str,
    *,
    payment_terms_days: int = DEFAULT_PAYMENT_TERMS_DAYS,
    now: Optional[datetime] = None,
) -> Invoice:
    """Create a draft invoice from form input, computing all derived amounts."""
    now = now or datetime.now(timezone.utc)

    items = [
        InvoiceItem(
            description=item.description,
            quantity=item.quantity,
            rate=item.rate,
            amount=compute_item_amount(item.quantity, item.rate),
            tax_rate=item.tax_rate,
        )
        for item in draft.items
    ]

    base_totals = compute_invoice_totals(items, draft.tax_rate, draft.discount_rate)
    paypal_fee = 0.0
    if draft.include_paypal_fee:
        paypal_fee = compute_invoice_fee(base_totals, draft.paypal_transaction_type)

    totals = compute_invoice_totals(
        items,
        draft.tax_rate,
        draft.discount_rate,
        paypal_fee,
        draft.include_paypal_fee,
    )

    due_date = (
        as_utc(draft.due_date)
        if draft.due_date is not None
        else now + timedelta(days=payment_terms_days)
    )

    invoice = Invoice(
        invoice_number=invoice_number,
        status="draft",
        issue_date=now,
        due_date=due_date,
        customer=Customer(**draft.customer.model_dump()),
        items=items,
        currency=draft.currency.upper(),
        subtotal=totals.subtotal,
        tax_rate=draft.tax_rate,
        tax_amount=totals.tax_amount,
        discount_rate=draft.discount_rate,
        discount_amount=totals.discount_amount,
        paypal_fee=paypal_fee,
        include_paypal_fee=draft.include_paypal_fee,
        total=totals.total,
        notes=draft.notes,
        terms=draft.terms,
        payment_instructions=draft.payment_instructions,
        created_at=now,
        updated_at=now,
    )
    logger.debug("Built invoice %s total=%s", invoice_number, invoice.total)
    return invoice


def is_invoice_overdue(invoice: Invoice, now: Optional[datetime] = None) -> bool:
    """Paid and cancelled invoices are never overdue."""
    if invoice.status in ("paid", "cancelled"):
        return False
    now = now or datetime.now(timezone.utc)
    return as_utc(now) > as_utc(invoice.due_date)


def compute_invoice_stats(
    invoices: Iterable[Invoice], now: Optional[datetime] = None
) -> InvoiceStats:
    """Summarise paid, pending and overdue amounts."""
    invoices = list(invoices)
    if not invoices:
        return InvoiceStats()

    now = as_utc(now or datetime.now(timezone.utc))
    total_amount = 0.0
    paid_amount = 0.0
    pending_amount = 0.0
    overdue_amount = 0.0

    for invoice in invoices:
        total_amount += invoice.total
        if invoice.status == "paid":
            paid_amount += invoice.total
        elif invoice.status in ("sent", "draft"):
            if as_utc(invoice.due_date) < now:
                overdue_amount += invoice.total
            else:
                pending_amount += invoice.total

    return InvoiceStats(
        total_invoices=len(invoices),
        total_amount=round2(total_amount),
        paid_amount=round2(paid_amount),
        pending_amount=round2(pending_amount),
        overdue_amount=round2(overdue_amount),
        average_invoice_amount=round2(total_amount / len(invoices)),
    )
