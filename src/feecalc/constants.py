"""Fee schedule, transaction types and currency constants."""

from dataclasses import dataclass


@dataclass(frozen=True)
class FeeSchedule:
    """Percentage rate (fraction in [0, 1)) plus fixed fee per transaction."""

    percentage: float
    fixed: float


DOMESTIC = "domestic"
INTERNATIONAL = "international"
MICROPAYMENT = "micropayment"

TRANSACTION_TYPES = (DOMESTIC, INTERNATIONAL, MICROPAYMENT)

DOMESTIC_STANDARD = FeeSchedule(percentage=0.029, fixed=0.30)
INTERNATIONAL_STANDARD = FeeSchedule(percentage=0.044, fixed=0.30)
DOMESTIC_MICROPAYMENT = FeeSchedule(percentage=0.05, fixed=0.05)

# Keyed by schedule tag; every percentage must stay below 1 for the reverse formula.
FEE_SCHEDULES: dict[str, FeeSchedule] = {
    "domestic-standard": DOMESTIC_STANDARD,
    "international-standard": INTERNATIONAL_STANDARD,
    "micropayment": DOMESTIC_MICROPAYMENT,
}

MICROPAYMENT_THRESHOLD = 10.0

CURRENCIES: dict[str, dict[str, str]] = {
    "USD": {"symbol": "$", "name": "US Dollar", "code": "USD"},
    "EUR": {"symbol": "€", "name": "Euro", "code": "EUR"},
    "GBP": {"symbol": "£", "name": "British Pound", "code": "GBP"},
    "CAD": {"symbol": "C$", "name": "Canadian Dollar", "code": "CAD"},
    "AUD": {"symbol": "A$", "name": "Australian Dollar", "code": "AUD"},
    "JPY": {"symbol": "¥", "name": "Japanese Yen", "code": "JPY"},
}


def currency_symbol(code: str) -> str:
    """Return display symbol for a currency code, defaulting to '$'."""
    entry = CURRENCIES.get(code.upper())
    if entry is None:
        return "$"
    return entry["symbol"]


def format_currency(amount: float, symbol: str = "$") -> str:
    """Format amount with a currency symbol and two decimals."""
    return f"{symbol}{amount:.2f}"
