"""Domain errors surfaced through the HTTP API."""

from typing import Any, Dict, Optional


class ContractError(Exception):
    """Error carrying a stable code, HTTP status and detail payload."""

    status_code = 400

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_payload(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class InvalidPayloadError(ContractError):
    """Request body is well-formed JSON but cannot be used."""

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__("INVALID_PAYLOAD", message, details=details)


class InvoiceNotFoundError(ContractError):
    """Raised when an invoice id does not exist in storage."""

    status_code = 404

    def __init__(self, invoice_id: str) -> None:
        super().__init__(
            "INVOICE_NOT_FOUND",
            f"Invoice not found: {invoice_id}",
            details={"invoice_id": invoice_id},
        )
