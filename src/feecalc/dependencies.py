"""Shared FastAPI app resource container and provider dependencies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import cast

from fastapi import Depends, HTTPException, Request, status

from feecalc.company_settings import CompanySettingsRepository
from feecalc.config import FeeCalcConfig
from feecalc.repositories.base import KeyValueStore
from feecalc.repositories.history import CalculationHistory
from feecalc.repositories.invoices import InvoiceRepository


@dataclass
class AppResources:
    """App-scoped resources initialized during FastAPI lifespan."""

    config: FeeCalcConfig
    store: KeyValueStore


def get_app_resources(request: Request) -> AppResources:
    """Return initialized app resources from state."""
    resources = getattr(request.app.state, "feecalc_resources", None)
    if resources is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Application resources are not initialized",
        )
    return cast(AppResources, resources)


def get_app_config(resources: AppResources = Depends(get_app_resources)) -> FeeCalcConfig:
    """Get app-scoped config instance."""
    return resources.config


def get_store(resources: AppResources = Depends(get_app_resources)) -> KeyValueStore:
    """Get app-scoped key-value store."""
    return resources.store


def get_invoice_repository(
    store: KeyValueStore = Depends(get_store),
    config: FeeCalcConfig = Depends(get_app_config),
) -> InvoiceRepository:
    """Get invoice repository bound to the app store."""
    return InvoiceRepository(
        store,
        payment_terms_days=config.payment_terms_days,
        prefix=config.invoice_prefix,
    )


def get_settings_repository(
    store: KeyValueStore = Depends(get_store),
) -> CompanySettingsRepository:
    """Get company settings repository bound to the app store."""
    return CompanySettingsRepository(store)


def get_history(
    store: KeyValueStore = Depends(get_store),
    config: FeeCalcConfig = Depends(get_app_config),
) -> CalculationHistory:
    """Get calculation history bound to the app store."""
    return CalculationHistory(store, limit=config.history_limit)
