"""Company details printed on invoices."""

import json
import logging
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from feecalc.repositories.base import KeyValueStore

logger = logging.getLogger(__name__)

COMPANY_SETTINGS_KEY = "paypal-calculator-company-settings"


class CompanyAddress(BaseModel):
    """Company postal address."""

    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""


class CompanySettings(BaseModel):
    """Issuer details; optional members may be absent."""

    name: str
    email: str
    phone: str = ""
    website: Optional[str] = None
    address: CompanyAddress = Field(default_factory=CompanyAddress)
    logo: Optional[str] = None
    tax_id: Optional[str] = None
    registration_number: Optional[str] = None

    model_config = {"extra": "ignore"}


DEFAULT_COMPANY_SETTINGS = CompanySettings(
    name="Your Company Name",
    email="billing@yourcompany.com",
    phone="+1 (555) 123-4567",
    website="",
    address=CompanyAddress(
        street="123 Business St",
        city="City",
        state="State",
        zip_code="12345",
        country="Country",
    ),
    logo="",
    tax_id="",
    registration_number="",
)


def merge_with_defaults(partial: Mapping[str, Any]) -> CompanySettings:
    """Overlay top-level keys of ``partial`` on the default settings."""
    merged = DEFAULT_COMPANY_SETTINGS.model_dump()
    merged.update(partial)
    return CompanySettings.model_validate(merged)


def format_company_address(address: CompanyAddress) -> str:
    """Multi-line address, skipping empty parts."""
    locality = ", ".join(
        part for part in (address.city, address.state, address.zip_code) if part
    )
    parts = [address.street, locality, address.country]
    return "\n".join(part for part in parts if part)


class CompanySettingsRepository:
    """Load and save company settings through a key-value store."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def get(self) -> CompanySettings:
        raw = self.store.get(COMPANY_SETTINGS_KEY)
        if not raw:
            return DEFAULT_COMPANY_SETTINGS.model_copy(deep=True)
        try:
            return merge_with_defaults(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            logger.error("Error parsing company settings: %s", exc)
            return DEFAULT_COMPANY_SETTINGS.model_copy(deep=True)

    def save(self, settings: CompanySettings) -> None:
        self.store.set(COMPANY_SETTINGS_KEY, settings.model_dump_json())

    def reset_to_defaults(self) -> CompanySettings:
        self.store.delete(COMPANY_SETTINGS_KEY)
        return DEFAULT_COMPANY_SETTINGS.model_copy(deep=True)

    def export_json(self) -> str:
        return json.dumps(self.get().model_dump(mode="json"), indent=2)

    def import_json(self, data: str) -> bool:
        """Import settings; name and email are required."""
        try:
            payload = json.loads(data)
            if not isinstance(payload, dict):
                raise ValueError("Invalid settings: expected a JSON object")
            if not payload.get("name") or not payload.get("email"):
                raise ValueError("Invalid settings: name and email are required")
            settings = merge_with_defaults(payload)
        except ValueError as exc:
            logger.error("Error importing company settings: %s", exc)
            return False

        self.save(settings)
        return True
