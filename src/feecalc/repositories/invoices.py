"""Invoice persistence on top of a key-value store."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from pydantic import TypeAdapter, ValidationError

from feecalc.invoices import DEFAULT_PAYMENT_TERMS_DAYS, compute_invoice_stats
from feecalc.models import Invoice, InvoiceStats, InvoiceStatus, new_id
from feecalc.repositories.base import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "paypal-calculator-invoices"
INVOICE_COUNTER_KEY = "paypal-calculator-invoice-counter"

_invoice_list = TypeAdapter(list[Invoice])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvoiceRepository:
    """CRUD, search and statistics over invoices stored as one JSON list."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        payment_terms_days: int = DEFAULT_PAYMENT_TERMS_DAYS,
        prefix: str = "INV",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.payment_terms_days = payment_terms_days
        self.prefix = prefix
        self._clock = clock

    def _load(self) -> list[Invoice]:
        raw = self.store.get(STORAGE_KEY)
        if not raw:
            return []
        try:
            return _invoice_list.validate_json(raw)
        except ValidationError as exc:
            logger.error("Error parsing invoices from storage: %s", exc)
            return []

    def _save_all(self, invoices: list[Invoice]) -> None:
        self.store.set(STORAGE_KEY, _invoice_list.dump_json(invoices).decode("utf-8"))

    def next_invoice_number(self) -> str:
        """Advance the persisted counter and return <prefix>-<year>-<NNNN>."""
        current = self.store.get(INVOICE_COUNTER_KEY)
        try:
            next_number = int(current) + 1 if current else 1
        except ValueError:
            logger.warning("Invalid invoice counter %r; restarting at 1", current)
            next_number = 1
        self.store.set(INVOICE_COUNTER_KEY, str(next_number))
        return f"{self.prefix}-{self._clock().year}-{next_number:04d}"

    def list_all(self) -> list[Invoice]:
        return self._load()

    def get(self, invoice_id: str) -> Optional[Invoice]:
        return next((inv for inv in self._load() if inv.id == invoice_id), None)

    def list_by_status(self, status: InvoiceStatus) -> list[Invoice]:
        return [inv for inv in self._load() if inv.status == status]

    def list_by_customer(self, customer_id: str) -> list[Invoice]:
        return [inv for inv in self._load() if inv.customer.id == customer_id]

    def save(self, invoice: Invoice) -> Invoice:
        """Insert or replace an invoice by id, refreshing timestamps."""
        invoices = self._load()
        now = self._clock()

        for idx, existing in enumerate(invoices):
            if existing.id == invoice.id:
                stored = invoice.model_copy(update={"updated_at": now})
                invoices[idx] = stored
                break
        else:
            stored = invoice.model_copy(update={"created_at": now, "updated_at": now})
            invoices.append(stored)

        self._save_all(invoices)
        return stored

    def update_status(self, invoice_id: str, status: InvoiceStatus) -> bool:
        invoices = self._load()
        invoice = next((inv for inv in invoices if inv.id == invoice_id), None)
        if invoice is None:
            return False

        now = self._clock()
        invoice.status = status
        invoice.updated_at = now
        if status == "paid":
            invoice.paid_at = now

        self._save_all(invoices)
        return True

    def delete(self, invoice_id: str) -> bool:
        invoices = self._load()
        remaining = [inv for inv in invoices if inv.id != invoice_id]
        if len(remaining) == len(invoices):
            return False
        self._save_all(remaining)
        return True

    def duplicate(self, invoice_id: str) -> Optional[Invoice]:
        """Copy an invoice as a fresh draft with a new number and due date."""
        invoice = self.get(invoice_id)
        if invoice is None:
            return None

        now = self._clock()
        copy = invoice.model_copy(
            update={
                "id": new_id(),
                "invoice_number": self.next_invoice_number(),
                "status": "draft",
                "issue_date": now,
                "due_date": now + timedelta(days=self.payment_terms_days),
                "paid_at": None,
            }
        )
        return self.save(copy)

    def stats(self) -> InvoiceStats:
        return compute_invoice_stats(self._load(), now=self._clock())

    def search(self, query: str) -> list[Invoice]:
        """Case-insensitive match on number, customer and item descriptions."""
        needle = query.lower()
        return [
            inv
            for inv in self._load()
            if needle in inv.invoice_number.lower()
            or needle in inv.customer.name.lower()
            or needle in inv.customer.email.lower()
            or any(needle in item.description.lower() for item in inv.items)
        ]

    def recent(self, limit: int = 5) -> list[Invoice]:
        invoices = sorted(self._load(), key=lambda inv: inv.created_at, reverse=True)
        return invoices[:limit]

    def export_json(self) -> str:
        return json.dumps(
            [inv.model_dump(mode="json") for inv in self._load()], indent=2
        )

    def import_json(self, data: str) -> bool:
        """Replace all invoices with the given JSON list."""
        try:
            payload = json.loads(data)
            if not isinstance(payload, list):
                raise ValueError("Invalid invoice data format")
            invoices = _invoice_list.validate_python(payload)
        except (ValueError, ValidationError) as exc:
            logger.error("Error importing invoices: %s", exc)
            return False

        self._save_all(invoices)
        return True

    def clear(self) -> None:
        self.store.delete(STORAGE_KEY)
        self.store.delete(INVOICE_COUNTER_KEY)
