"""Tests for the cancellation fee policy (app/services/cancellation.py)."""

import random
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

import pytest

from app.config import settings
from app.services.cancellation import (
    POLICY_FREE,
    POLICY_LATE_NOTICE,
    POLICY_SHORT_NOTICE,
    POLICY_UNSCHEDULED,
    calculate_cancellation_fee,
    get_cancellation_policy,
)


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def test_unscheduled_job_is_free_and_not_reschedulable() -> None:
    result = calculate_cancellation_fee(None, Decimal("200.00"), now=NOW)
    assert result.fee == Decimal("0.00")
    assert result.reschedulable is False
    assert result.policy == POLICY_UNSCHEDULED
    assert result.hours_until_job is None


def test_late_notice_charges_quarter_of_price() -> None:
    result = calculate_cancellation_fee(NOW + timedelta(hours=72), Decimal("200.00"), now=NOW)
    assert result.fee == Decimal("50.00")
    assert result.reschedulable is False
    assert result.policy == POLICY_LATE_NOTICE
    assert result.hours_until_job == 72


def test_within_48h_still_reports_late_notice() -> None:
    result = calculate_cancellation_fee(NOW + timedelta(hours=24), Decimal("200.00"), now=NOW)
    assert result.fee == Decimal("50.00")
    assert result.policy == POLICY_LATE_NOTICE


def test_past_schedule_is_charged() -> None:
    result = calculate_cancellation_fee(NOW - timedelta(hours=3), Decimal("80.00"), now=NOW)
    assert result.fee == Decimal("20.00")
    assert result.hours_until_job < 0


def test_exactly_96h_is_free() -> None:
    result = calculate_cancellation_fee(NOW + timedelta(hours=96), Decimal("200.00"), now=NOW)
    assert result.fee == Decimal("0.00")
    assert result.reschedulable is True
    assert result.policy == POLICY_FREE


def test_five_days_out_is_free() -> None:
    result = calculate_cancellation_fee(NOW + timedelta(days=5), Decimal("999.99"), now=NOW)
    assert result.fee == Decimal("0.00")
    assert result.reschedulable is True


def test_fee_rounds_half_up_to_cents() -> None:
    # 25% of 0.10 = 0.025
    result = calculate_cancellation_fee(NOW + timedelta(hours=1), Decimal("0.10"), now=NOW)
    assert result.fee == Decimal("0.03")


def test_zero_price_has_zero_fee() -> None:
    result = calculate_cancellation_fee(NOW + timedelta(hours=1), Decimal("0.00"), now=NOW)
    assert result.fee == Decimal("0.00")
    assert result.policy == POLICY_LATE_NOTICE


def test_naive_schedule_treated_as_utc() -> None:
    naive = (NOW + timedelta(hours=10)).replace(tzinfo=None)
    result = calculate_cancellation_fee(naive, Decimal("100.00"), now=NOW)
    assert result.fee == Decimal("25.00")
    assert result.hours_until_job == 10


def test_short_notice_branch_reachable_only_when_window_widened() -> None:
    object.__setattr__(settings, "cancellation_notice_hours", 24)
    object.__setattr__(settings, "cancellation_short_notice_hours", 48)
    result = calculate_cancellation_fee(NOW + timedelta(hours=30), Decimal("100.00"), now=NOW)
    assert result.policy == POLICY_SHORT_NOTICE
    assert result.fee == Decimal("25.00")


def test_fee_percent_is_configurable() -> None:
    object.__setattr__(settings, "cancellation_fee_percent", Decimal("10"))
    result = calculate_cancellation_fee(NOW + timedelta(hours=1), Decimal("200.00"), now=NOW)
    assert result.fee == Decimal("20.00")


def test_to_dict_serializes_fee_as_string() -> None:
    result = calculate_cancellation_fee(NOW + timedelta(hours=1), Decimal("200.00"), now=NOW)
    assert result.to_dict()["fee"] == "50.00"


def test_policy_description() -> None:
    policy = get_cancellation_policy()
    assert policy["fee_percent"] == "25"
    assert policy["notice_hours"] == 96
    assert "$50.00" in policy["example"]


# Randomised sweeps over price and notice (property-based without hypothesis)


def _random_cases(seed: int, count: int = 200) -> list[tuple[Decimal, float]]:
    rng = random.Random(seed)
    return [
        (Decimal(rng.randint(0, 10_000_000)) / 100, rng.uniform(-1000, 10_000))
        for _ in range(count)
    ]


@pytest.mark.parametrize("seed", [42, 123, 456, 789, 1024])
def test_fee_is_zero_or_a_quarter(seed: int) -> None:
    for price, hours in _random_cases(seed):
        result = calculate_cancellation_fee(NOW + timedelta(hours=hours), price, now=NOW)
        quarter = (price * Decimal("0.25")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        assert result.fee in (Decimal("0.00"), quarter)
        assert result.policy != POLICY_SHORT_NOTICE
        # Reschedulable exactly when free
        assert result.reschedulable == (result.policy == POLICY_FREE)


@pytest.mark.parametrize("seed", [42, 123, 456])
def test_calculation_is_deterministic(seed: int) -> None:
    for price, hours in _random_cases(seed, count=50):
        scheduled = NOW + timedelta(hours=hours)
        assert calculate_cancellation_fee(scheduled, price, now=NOW) == calculate_cancellation_fee(
            scheduled, price, now=NOW,
        )
