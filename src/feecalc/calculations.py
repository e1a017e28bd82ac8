"""Fee formulas: forward fee, reverse request amount and batch totals."""

import math
import re
from dataclasses import asdict, dataclass
from typing import Iterable

from feecalc.constants import (
    DOMESTIC,
    DOMESTIC_MICROPAYMENT,
    DOMESTIC_STANDARD,
    INTERNATIONAL,
    INTERNATIONAL_STANDARD,
    MICROPAYMENT,
    MICROPAYMENT_THRESHOLD,
    FeeSchedule,
)

_AMOUNT_SEPARATOR = re.compile(r"[,\n]+")


@dataclass(frozen=True)
class FeeCalculation:
    """Fee breakdown for a single amount."""

    original_amount: float
    paypal_fee: float
    fee_percentage: float
    fixed_fee: float
    net_amount: float
    should_request_amount: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class BatchResult:
    """Per-item fee breakdowns plus aggregate totals."""

    total_original: float
    total_fees: float
    total_net: float
    calculations: tuple[FeeCalculation, ...]

    def to_dict(self) -> dict:
        return {
            "total_original": self.total_original,
            "total_fees": self.total_fees,
            "total_net": self.total_net,
            "calculations": [c.to_dict() for c in self.calculations],
        }


ZERO_CALCULATION = FeeCalculation(
    original_amount=0.0,
    paypal_fee=0.0,
    fee_percentage=0.0,
    fixed_fee=0.0,
    net_amount=0.0,
    should_request_amount=0.0,
)


def round2(value: float) -> float:
    """Round to cents, ties away from zero."""
    scaled = abs(value) * 100
    # Values too large to scale carry no cent precision anyway.
    if not math.isfinite(scaled):
        return value
    rounded = math.floor(scaled + 0.5) / 100
    return math.copysign(rounded, value) if rounded else 0.0


def _is_chargeable(amount: float) -> bool:
    return math.isfinite(amount) and amount > 0


def resolve_fee_schedule(
    amount: float, transaction_type: str = DOMESTIC, is_micropayment: bool = False
) -> FeeSchedule:
    """Pick the schedule entry for a transaction; unknown types are domestic."""
    if transaction_type == MICROPAYMENT or (
        is_micropayment and amount < MICROPAYMENT_THRESHOLD
    ):
        return DOMESTIC_MICROPAYMENT
    if transaction_type == INTERNATIONAL:
        return INTERNATIONAL_STANDARD
    return DOMESTIC_STANDARD


def compute_fee(
    amount: float,
    transaction_type: str = DOMESTIC,
    is_micropayment: bool = False,
) -> FeeCalculation:
    """
    Compute fee, net and should-request amounts for one payment.

    Fee and net are rounded independently from the unrounded fee, so
    ``paypal_fee + net_amount`` can be one cent off ``original_amount``.
    """
    if not _is_chargeable(amount):
        return ZERO_CALCULATION

    schedule = resolve_fee_schedule(amount, transaction_type, is_micropayment)
    fee = amount * schedule.percentage + schedule.fixed
    net = amount - fee
    request = (amount + schedule.fixed) / (1 - schedule.percentage)

    return FeeCalculation(
        original_amount=amount,
        paypal_fee=round2(fee),
        fee_percentage=schedule.percentage * 100,
        fixed_fee=schedule.fixed,
        net_amount=round2(net),
        should_request_amount=round2(request),
    )


def compute_reverse_amount(
    desired_amount: float,
    transaction_type: str = DOMESTIC,
    is_micropayment: bool = False,
) -> float:
    """Amount to request so that ``desired_amount`` remains after fees."""
    if not _is_chargeable(desired_amount):
        return 0.0

    schedule = resolve_fee_schedule(desired_amount, transaction_type, is_micropayment)
    return round2((desired_amount + schedule.fixed) / (1 - schedule.percentage))


def compute_batch(
    amounts: Iterable[float], transaction_type: str = DOMESTIC
) -> BatchResult:
    """Apply compute_fee to every amount and sum the rounded per-item fields."""
    calculations = tuple(
        compute_fee(amount, transaction_type, amount < MICROPAYMENT_THRESHOLD)
        for amount in amounts
    )

    return BatchResult(
        total_original=round2(sum(c.original_amount for c in calculations)),
        total_fees=round2(sum(c.paypal_fee for c in calculations)),
        total_net=round2(sum(c.net_amount for c in calculations)),
        calculations=calculations,
    )


def parse_amounts(text: str) -> list[float]:
    """Parse comma/newline separated amounts, keeping finite positive numbers."""
    amounts: list[float] = []
    for token in _AMOUNT_SEPARATOR.split(text):
        token = token.strip()
        if not token:
            continue
        try:
            value = float(token)
        except ValueError:
            continue
        if _is_chargeable(value):
            amounts.append(value)
    return amounts
