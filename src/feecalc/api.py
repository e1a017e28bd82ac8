"""FastAPI application for the fee calculator and invoicing service."""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from feecalc.calculations import (
    compute_batch,
    compute_fee,
    compute_reverse_amount,
    parse_amounts,
)
from feecalc.company_settings import CompanySettings, CompanySettingsRepository
from feecalc.config import FeeCalcConfig, get_config
from feecalc.dependencies import (
    AppResources,
    get_history,
    get_invoice_repository,
    get_settings_repository,
)
from feecalc.exceptions import (
    ContractError,
    InvalidPayloadError,
    InvoiceNotFoundError,
)
from feecalc.invoices import build_invoice, compute_invoice_totals
from feecalc.models import (
    BatchFeeRequest,
    BatchFeeResponse,
    FeeRequest,
    FeeResponse,
    Invoice,
    InvoiceDraft,
    InvoiceStats,
    InvoiceStatus,
    InvoiceStatusUpdate,
    InvoiceTotals,
    InvoiceTotalsRequest,
    ReverseFeeResponse,
)
from feecalc.repositories.history import CalculationHistory
from feecalc.repositories.invoices import InvoiceRepository
from feecalc.repositories.memory import InMemoryKeyValueStore

logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0.0"


def _configured_rate_limit() -> str:
    return get_config().rate_limit


def _configured_batch_rate_limit() -> str:
    return get_config().batch_rate_limit


limiter = Limiter(key_func=get_remote_address, swallow_errors=True)
router = APIRouter()


def get_allowed_origins() -> list[str]:
    """Get allowed CORS origins from environment."""
    origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000")
    return [origin.strip() for origin in origins.split(",") if origin.strip()]


def create_app(config: Optional[FeeCalcConfig] = None) -> FastAPI:
    """Build the FastAPI app with app-scoped config and in-memory store."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app_config = config or get_config()
        app.state.feecalc_resources = AppResources(
            config=app_config,
            store=InMemoryKeyValueStore(),
        )
        logger.info("Fee calculator API started")
        yield

    app = FastAPI(
        title="Fee Calculator Service",
        description="Payment fee calculation and simple invoicing",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(ContractError, contract_error_handler)
    app.include_router(router)
    return app


@router.get("/health")
@limiter.exempt
async def health_check() -> Dict[str, Any]:
    """Health check endpoint for container orchestration."""
    return {
        "status": "healthy",
        "service": "fee-calculator",
        "version": SERVICE_VERSION,
    }


@router.post("/fees", response_model=FeeResponse)
@limiter.limit(_configured_rate_limit)
def calculate_fee(
    request: Request,
    payload: FeeRequest,
    history: CalculationHistory = Depends(get_history),
) -> FeeResponse:
    """Compute fee breakdown for one amount and record it in history."""
    result = compute_fee(
        payload.amount, payload.transaction_type, payload.is_micropayment
    )
    if result.original_amount > 0:
        history.add(result)
    return FeeResponse(**result.to_dict())


@router.post("/fees/reverse", response_model=ReverseFeeResponse)
@limiter.limit(_configured_rate_limit)
def calculate_reverse(request: Request, payload: FeeRequest) -> ReverseFeeResponse:
    """Compute how much to request so the payee nets ``amount``."""
    return ReverseFeeResponse(
        desired_amount=payload.amount,
        should_request_amount=compute_reverse_amount(
            payload.amount, payload.transaction_type, payload.is_micropayment
        ),
    )


@router.post("/fees/batch", response_model=BatchFeeResponse)
@limiter.limit(_configured_batch_rate_limit)
def calculate_batch(request: Request, payload: BatchFeeRequest) -> BatchFeeResponse:
    """Compute fees for many amounts; free text is parsed and filtered."""
    if payload.amounts is None and payload.text is None:
        raise InvalidPayloadError("Either 'amounts' or 'text' is required")
    amounts = list(payload.amounts or [])
    if payload.text:
        amounts.extend(parse_amounts(payload.text))
    result = compute_batch(amounts, payload.transaction_type)
    return BatchFeeResponse(**result.to_dict())


@router.get("/fees/history", response_model=List[FeeResponse])
def fee_history(
    history: CalculationHistory = Depends(get_history),
) -> List[FeeResponse]:
    return [FeeResponse(**entry.to_dict()) for entry in history.list()]


@router.delete("/fees/history", status_code=status.HTTP_204_NO_CONTENT)
def clear_fee_history(history: CalculationHistory = Depends(get_history)) -> Response:
    history.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/invoices/totals", response_model=InvoiceTotals)
def invoice_totals(payload: InvoiceTotalsRequest) -> InvoiceTotals:
    """Preview totals for line items, rates and a pre-computed fee."""
    return compute_invoice_totals(
        payload.items,
        payload.tax_rate,
        payload.discount_rate,
        payload.paypal_fee,
        payload.include_paypal_fee,
    )


@router.get("/invoices", response_model=List[Invoice])
def list_invoices(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    q: Optional[str] = None,
    repository: InvoiceRepository = Depends(get_invoice_repository),
) -> List[Invoice]:
    if q:
        invoices = repository.search(q)
    else:
        invoices = repository.list_all()
    if status_filter:
        invoices = [inv for inv in invoices if inv.status == status_filter]
    return invoices


@router.get("/invoices/stats", response_model=InvoiceStats)
def invoice_stats(
    repository: InvoiceRepository = Depends(get_invoice_repository),
) -> InvoiceStats:
    return repository.stats()


@router.get("/invoices/recent", response_model=List[Invoice])
def recent_invoices(
    limit: int = 5,
    repository: InvoiceRepository = Depends(get_invoice_repository),
) -> List[Invoice]:
    return repository.recent(limit)


@router.post(
    "/invoices", response_model=Invoice, status_code=status.HTTP_201_CREATED
)
def create_invoice(
    draft: InvoiceDraft,
    repository: InvoiceRepository = Depends(get_invoice_repository),
) -> Invoice:
    """Build a draft invoice from form input and store it."""
    invoice = build_invoice(
        draft,
        repository.next_invoice_number(),
        payment_terms_days=repository.payment_terms_days,
    )
    stored = repository.save(invoice)
    logger.info("Created invoice %s", stored.invoice_number)
    return stored


@router.get("/invoices/{invoice_id}", response_model=Invoice)
def get_invoice(
    invoice_id: str,
    repository: InvoiceRepository = Depends(get_invoice_repository),
) -> Invoice:
    invoice = repository.get(invoice_id)
    if invoice is None:
        raise InvoiceNotFoundError(invoice_id)
    return invoice


@router.patch("/invoices/{invoice_id}/status", response_model=Invoice)
def update_invoice_status(
    invoice_id: str,
    payload: InvoiceStatusUpdate,
    repository: InvoiceRepository = Depends(get_invoice_repository),
) -> Invoice:
    if not repository.update_status(invoice_id, payload.status):
        raise InvoiceNotFoundError(invoice_id)
    return repository.get(invoice_id)


@router.post(
    "/invoices/{invoice_id}/duplicate",
    response_model=Invoice,
    status_code=status.HTTP_201_CREATED,
)
def duplicate_invoice(
    invoice_id: str,
    repository: InvoiceRepository = Depends(get_invoice_repository),
) -> Invoice:
    duplicated = repository.duplicate(invoice_id)
    if duplicated is None:
        raise InvoiceNotFoundError(invoice_id)
    return duplicated


@router.delete("/invoices/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(
    invoice_id: str,
    repository: InvoiceRepository = Depends(get_invoice_repository),
) -> Response:
    if not repository.delete(invoice_id):
        raise InvoiceNotFoundError(invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/settings/company", response_model=CompanySettings)
def get_company_settings(
    repository: CompanySettingsRepository = Depends(get_settings_repository),
) -> CompanySettings:
    return repository.get()


@router.put("/settings/company", response_model=CompanySettings)
def save_company_settings(
    settings: CompanySettings,
    repository: CompanySettingsRepository = Depends(get_settings_repository),
) -> CompanySettings:
    repository.save(settings)
    return repository.get()


@router.delete("/settings/company", response_model=CompanySettings)
def reset_company_settings(
    repository: CompanySettingsRepository = Depends(get_settings_repository),
) -> CompanySettings:
    return repository.reset_to_defaults()


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Rate limit exceeded handler."""
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Please try again later."},
    )


async def contract_error_handler(request: Request, exc: ContractError) -> JSONResponse:
    """Map domain contract errors to stable API error payload."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


app = create_app()


def main() -> None:
    """Run API server."""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "feecalc.api:app",
        host=config.api_host,
        port=config.api_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
