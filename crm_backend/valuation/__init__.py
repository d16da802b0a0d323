"""
Deal-valuation layer.

Pure functions over rows the services fetch under RLS: the deal price formula,
profitability and pipeline summaries, and the payment and expense status
rules.
"""

from .deal import calculate_deal_value, deal_value_for_client, validate_commitment_length
from .pipeline import pipeline_stats
from .profitability import ProfitabilitySummary, summarize_profitability
from .status import (
    is_incoming,
    validate_expense_transition,
    validate_payment_transition,
    validate_status_transition,
)

__all__ = [
    "calculate_deal_value",
    "deal_value_for_client",
    "validate_commitment_length",
    "pipeline_stats",
    "ProfitabilitySummary",
    "summarize_profitability",
    "is_incoming",
    "validate_expense_transition",
    "validate_payment_transition",
    "validate_status_transition",
]
