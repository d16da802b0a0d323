"""
Tests for the deal-valuation layer.

Tests cover:
- Deal value formula and its validation
- Profitability summaries (margin, status and date filtering, empty ranges)
- Pipeline statistics
- Payment and expense status transitions
"""

from datetime import date
from decimal import Decimal

import pytest

from crm_backend.valuation import (
    calculate_deal_value,
    deal_value_for_client,
    pipeline_stats,
    summarize_profitability,
    validate_expense_transition,
    validate_payment_transition,
)

CLIENT_ID = "5a1c9e2f-3b4d-4c6e-9f0a-1b2c3d4e5f60"
JAN_1 = date(2025, 1, 1)
JAN_31 = date(2025, 1, 31)


def _payment(amount, day="2025-01-15", status="completed"):
    return {"amount": amount, "status": status, "payment_date": day}


def _expense(amount, day="2025-01-20", status="approved"):
    return {"amount": amount, "status": status, "expense_date": day}


class TestDealValue:
    def test_three_cars_twelve_months(self):
        assert calculate_deal_value(3, 12, 335, 96) == Decimal("13212.00")

    def test_defaults(self):
        # (335 * 1 + 96) * 12
        assert calculate_deal_value() == Decimal("5172.00")

    def test_zero_cars_is_setup_fee_only(self):
        assert calculate_deal_value(0, 24, "335.00", "96.00") == Decimal("2304.00")

    @pytest.mark.parametrize("months", [0, 6, 18, 48])
    def test_unsupported_commitment_length_raises(self, months):
        with pytest.raises(ValueError, match="commitment_length"):
            calculate_deal_value(1, months)

    def test_negative_cars_raises(self):
        with pytest.raises(ValueError):
            calculate_deal_value(-1, 12)

    def test_client_row_with_string_numerics(self):
        client = {
            "number_of_cars": 2,
            "commitment_length": 36,
            "per_car_value": "300.00",
            "setup_fee": "50.00",
        }

        assert deal_value_for_client(client) == Decimal("23400.00")

    def test_client_row_with_nulls_uses_column_defaults(self):
        client = {"number_of_cars": None, "commitment_length": None,
                  "per_car_value": None, "setup_fee": None}

        assert deal_value_for_client(client) == Decimal("5172.00")


class TestProfitability:
    def test_margin_over_payments_and_expenses(self):
        summary = summarize_profitability(
            CLIENT_ID, [_payment(100), _payment(200)], [_expense(50)], JAN_1, JAN_31
        )

        assert summary.total_revenue == Decimal("300.00")
        assert summary.total_expenses == Decimal("50.00")
        assert summary.net_profit == Decimal("250.00")
        assert summary.profit_margin == Decimal("83.33")
        assert summary.total_payments == 2
        assert summary.total_expenses_count == 1
        assert summary.average_payment_amount == Decimal("150.00")
        assert summary.last_payment_date == date(2025, 1, 15)
        assert summary.last_expense_date == date(2025, 1, 20)

    def test_no_revenue_means_zero_margin(self):
        summary = summarize_profitability(CLIENT_ID, [], [_expense(40)], JAN_1, JAN_31)

        assert summary.profit_margin == Decimal("0.00")
        assert summary.net_profit == Decimal("-40.00")
        assert summary.last_payment_date is None

    def test_reversed_range_is_empty(self):
        summary = summarize_profitability(
            CLIENT_ID, [_payment(100)], [_expense(10)], JAN_31, JAN_1
        )

        assert summary.total_revenue == Decimal("0.00")
        assert summary.total_payments == 0
        assert summary.last_expense_date is None

    def test_only_completed_payments_and_approved_expenses_count(self):
        summary = summarize_profitability(
            CLIENT_ID,
            [_payment(100), _payment(999, status="pending"), _payment(5, status="failed")],
            [_expense(10), _expense(500, status="rejected")],
            JAN_1,
            JAN_31,
        )

        assert summary.total_revenue == Decimal("100.00")
        assert summary.total_expenses == Decimal("10.00")

    def test_sent_payments_are_not_revenue(self):
        sent = dict(_payment(700), payment_type="sent")
        received = dict(_payment(100), payment_type="received")

        summary = summarize_profitability(CLIENT_ID, [received, sent], [], JAN_1, JAN_31)

        assert summary.total_revenue == Decimal("100.00")
        assert summary.total_payments == 1

    def test_range_bounds_are_inclusive(self):
        payments = [
            _payment(1, "2025-01-01"),
            _payment(2, "2025-01-31"),
            _payment(4, "2024-12-31"),
            _payment(8, "2025-02-01T00:00:00+00:00"),
        ]

        summary = summarize_profitability(CLIENT_ID, payments, [], JAN_1, JAN_31)

        assert summary.total_revenue == Decimal("3.00")
        assert summary.last_payment_date == JAN_31

    def test_to_dict(self):
        summary = summarize_profitability(CLIENT_ID, [], [], JAN_1, JAN_31)

        assert summary.to_dict()["client_id"] == CLIENT_ID


class TestPipelineStats:
    def test_counts_and_values_by_stage(self):
        clients = [
            {"stage": "prospect", "number_of_cars": 1, "commitment_length": 12},
            {"stage": "closed", "number_of_cars": 3, "commitment_length": 12},
            {"stage": "lost", "number_of_cars": 10, "commitment_length": 36},
            {"stage": None},
        ]

        stats = pipeline_stats(clients)

        assert stats["total_clients"] == 4
        assert stats["by_stage"]["prospect"] == 2
        assert stats["by_stage"]["closed"] == 1
        assert stats["by_stage"]["lost"] == 1
        assert stats["by_stage"]["meeting"] == 0
        assert stats["closed_value"] == Decimal("13212.00")
        assert stats["pipeline_value"] == Decimal("5172.00") * 2 + Decimal("13212.00")

    def test_empty_pipeline(self):
        stats = pipeline_stats([])

        assert stats["total_clients"] == 0
        assert stats["pipeline_value"] == Decimal("0.00")


class TestStatusTransitions:
    @pytest.mark.parametrize("new", ["completed", "failed", "cancelled"])
    def test_pending_payment_moves_on(self, new):
        assert validate_payment_transition("pending", new) == new

    def test_failed_payment_may_be_retried(self):
        assert validate_payment_transition("failed", "pending") == "pending"

    @pytest.mark.parametrize("current", ["completed", "cancelled"])
    def test_final_payment_status_is_kept(self, current):
        with pytest.raises(ValueError, match="cannot change"):
            validate_payment_transition(current, "pending")

    def test_same_status_is_allowed(self):
        assert validate_payment_transition("completed", "completed") == "completed"

    def test_unknown_status_raises(self):
        with pytest.raises(ValueError, match="Unknown payment status"):
            validate_payment_transition("pending", "refunded")

    def test_expense_approval_is_final(self):
        assert validate_expense_transition("pending", "approved") == "approved"
        assert validate_expense_transition("rejected", "pending") == "pending"
        with pytest.raises(ValueError):
            validate_expense_transition("approved", "rejected")
