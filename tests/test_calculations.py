"""Tests for fee, reverse amount and batch formulas."""

import math
import sys

import pytest

from feecalc.calculations import (
    ZERO_CALCULATION,
    compute_batch,
    compute_fee,
    compute_reverse_amount,
    parse_amounts,
    resolve_fee_schedule,
    round2,
)
from feecalc.constants import (
    DOMESTIC_MICROPAYMENT,
    DOMESTIC_STANDARD,
    FEE_SCHEDULES,
    INTERNATIONAL_STANDARD,
)
from feecalc.invoices import compute_invoice_totals


def test_domestic_fee_for_100() -> None:
    result = compute_fee(100, "domestic")

    assert result.original_amount == 100
    assert result.paypal_fee == 3.20
    assert result.net_amount == 96.80
    assert result.should_request_amount == 103.30
    assert result.fee_percentage == pytest.approx(2.9)
    assert result.fixed_fee == 0.30


def test_international_fee_for_100() -> None:
    result = compute_fee(100, "international")

    assert result.paypal_fee == 4.70
    assert result.net_amount == 95.30
    assert result.should_request_amount == 104.92
    assert result.fee_percentage == pytest.approx(4.4)


@pytest.mark.parametrize(
    ("transaction_type", "is_micropayment"),
    [("micropayment", False), ("domestic", True), ("international", True)],
)
def test_micropayment_fee_for_small_amount(transaction_type, is_micropayment) -> None:
    result = compute_fee(5, transaction_type, is_micropayment)

    assert result.paypal_fee == 0.30
    assert result.net_amount == 4.70
    assert result.fee_percentage == pytest.approx(5.0)
    assert result.fixed_fee == 0.05


def test_micropayment_flag_ignored_at_threshold() -> None:
    assert compute_fee(10, "domestic", True).fixed_fee == 0.30
    assert compute_fee(9.99, "domestic", True).fixed_fee == 0.05


def test_micropayment_tag_applies_to_any_amount() -> None:
    result = compute_fee(200, "micropayment")
    assert result.paypal_fee == 10.05


@pytest.mark.parametrize("amount", [0, -1, -0.01, -1e9, math.nan, math.inf, -math.inf])
@pytest.mark.parametrize("transaction_type", ["domestic", "international", "micropayment"])
def test_non_positive_or_non_finite_amount_returns_zero_record(amount, transaction_type) -> None:
    assert compute_fee(amount, transaction_type, True) == ZERO_CALCULATION


@pytest.mark.parametrize("tag", ["", "wire", "DOMESTIC", "International "])
def test_unrecognised_tag_behaves_like_domestic(tag) -> None:
    for amount in (0.5, 12.34, 100, 9999.99):
        assert compute_fee(amount, tag) == compute_fee(amount, "domestic")


def test_net_uses_unrounded_fee() -> None:
    # 57.25 * 0.029 + 0.30 = 1.96025
    result = compute_fee(57.25, "domestic")
    assert result.paypal_fee == 1.96
    assert result.net_amount == 55.29


@pytest.mark.parametrize("amount", [1, 9.99, 10, 57.25, 100, 1234.56, 98765.43])
@pytest.mark.parametrize("transaction_type", ["domestic", "international", "micropayment"])
def test_requesting_suggested_amount_nets_original(amount, transaction_type) -> None:
    request_amount = compute_fee(amount, transaction_type).should_request_amount
    net_back = compute_fee(request_amount, transaction_type).net_amount

    assert abs(net_back - amount) <= 0.01 + 1e-9


def test_reverse_amount_matches_fee_result() -> None:
    assert compute_reverse_amount(100) == 103.30
    assert compute_reverse_amount(100, "international") == 104.92
    assert compute_reverse_amount(5, "domestic", True) == 5.32
    assert compute_reverse_amount(0) == 0.0
    assert compute_reverse_amount(math.nan) == 0.0


def test_resolve_fee_schedule_priority() -> None:
    assert resolve_fee_schedule(5, "international", True) is DOMESTIC_MICROPAYMENT
    assert resolve_fee_schedule(50, "international", True) is INTERNATIONAL_STANDARD
    assert resolve_fee_schedule(50, "other") is DOMESTIC_STANDARD


def test_schedule_percentages_stay_below_one() -> None:
    for schedule in FEE_SCHEDULES.values():
        assert 0 <= schedule.percentage < 1
        assert schedule.fixed >= 0


def test_round2_ties_away_from_zero() -> None:
    assert round2(0.125) == 0.13
    assert round2(2.675 + 1e-9) == 2.68
    assert round2(-0.125) == -0.13
    assert round2(0.0) == 0.0
    assert math.isnan(round2(math.nan))


def test_batch_totals_sum_rounded_items() -> None:
    result = compute_batch([5, 20, 100], "domestic")

    assert [c.paypal_fee for c in result.calculations] == [0.30, 0.88, 3.20]
    assert [c.net_amount for c in result.calculations] == [4.70, 19.12, 96.80]
    assert result.total_original == 125
    assert result.total_fees == 4.38
    assert result.total_net == 120.62


def test_batch_items_match_individual_calls() -> None:
    amounts = [0.99, 3.33, 9.99, 10, 12.345, 77.77]
    result = compute_batch(amounts, "international")

    expected = [compute_fee(a, "international", a < 10) for a in amounts]
    assert list(result.calculations) == expected
    assert result.total_fees == round2(sum(c.paypal_fee for c in expected))
    assert result.total_net == round2(sum(c.net_amount for c in expected))
    assert result.total_original == round2(sum(c.original_amount for c in expected))


def test_batch_empty() -> None:
    result = compute_batch([])

    assert result.total_original == 0
    assert result.total_fees == 0
    assert result.total_net == 0
    assert result.calculations == ()


def test_batch_keeps_non_positive_entries_as_zero_records() -> None:
    result = compute_batch([-5, 0, 20])

    assert len(result.calculations) == 3
    assert result.calculations[0] == ZERO_CALCULATION
    assert result.calculations[1] == ZERO_CALCULATION
    assert result.total_original == 20


def test_batch_to_dict_shape() -> None:
    payload = compute_batch([100]).to_dict()
    assert payload["total_fees"] == 3.20
    assert payload["calculations"][0]["should_request_amount"] == 103.30


def test_parse_amounts_filters_invalid_entries() -> None:
    text = "10, 25.50\n abc,, -3\n0\n100\nnan\ninf"
    assert parse_amounts(text) == [10.0, 25.5, 100.0]


def test_parse_amounts_empty_text() -> None:
    assert parse_amounts("") == []
    assert parse_amounts(" , \n ") == []


@pytest.mark.parametrize("amount", [1e307, sys.float_info.max])
def test_extremely_large_amounts_do_not_raise(amount) -> None:
    assert round2(amount) == amount
    assert round2(-amount) == -amount

    result = compute_fee(amount, "domestic")
    assert result.original_amount == amount
    assert result.paypal_fee == amount * 0.029 + 0.30
    compute_reverse_amount(amount, "international")
    assert compute_batch([amount]).total_original == amount

    totals = compute_invoice_totals([{"amount": amount}])
    assert totals.subtotal == amount
    assert totals.total == amount
