"""
Client profitability summary.

Aggregates a client's completed incoming payments and approved expenses over
an inclusive date range. Outgoing (payment_type "sent") payments are not
revenue. Payments and expenses are summed independently, so a
client with several payments and several expenses is not double counted.
"""

from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from crm_backend.utils.constants import EXPENSE_STATUS_APPROVED, PAYMENT_STATUS_COMPLETED
from crm_backend.valuation.deal import CENTS, to_money
from crm_backend.valuation.status import is_incoming

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class ProfitabilitySummary:
    client_id: str
    total_revenue: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_profit: Decimal = ZERO
    profit_margin: Decimal = ZERO
    total_payments: int = 0
    total_expenses_count: int = 0
    average_payment_amount: Decimal = ZERO
    average_expense_amount: Decimal = ZERO
    last_payment_date: Optional[date] = None
    last_expense_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _as_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _round2(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _in_range(
    rows: Iterable[Mapping[str, Any]],
    status: str,
    date_field: str,
    start_date: date,
    end_date: date,
) -> List[Mapping[str, Any]]:
    selected = []
    for row in rows:
        if row.get("status") != status:
            continue
        row_date = _as_date(row.get(date_field))
        if row_date is None or not (start_date <= row_date <= end_date):
            continue
        selected.append(row)
    return selected


def summarize_profitability(
    client_id: str,
    payments: Iterable[Mapping[str, Any]],
    expenses: Iterable[Mapping[str, Any]],
    start_date: date,
    end_date: date,
) -> ProfitabilitySummary:
    """
    Compute the profitability summary for one client.

    Args:
        client_id: Client the rows belong to
        payments: Payment rows (amount, status, payment_date, payment_type)
        expenses: Expense rows (amount, status, expense_date)
        start_date: First day of the range (inclusive)
        end_date: Last day of the range (inclusive)

    Returns:
        ProfitabilitySummary. A reversed range (start > end) or no matching
        rows yields zero sums, zero margin and no dates.

    Example:
        payments [100, 200] and expenses [50] give
        profit_margin = (300 - 50) / 300 * 100 = 83.33
    """
    if start_date > end_date:
        return ProfitabilitySummary(client_id=client_id)

    paid = [
        p for p in _in_range(payments, PAYMENT_STATUS_COMPLETED, "payment_date", start_date, end_date)
        if is_incoming(p)
    ]
    spent = _in_range(expenses, EXPENSE_STATUS_APPROVED, "expense_date", start_date, end_date)

    revenue = sum((to_money(p.get("amount")) for p in paid), ZERO)
    cost = sum((to_money(e.get("amount")) for e in spent), ZERO)
    net = revenue - cost

    margin = _round2(net / revenue * 100) if revenue > 0 else ZERO
    avg_payment = _round2(revenue / len(paid)) if paid else ZERO
    avg_expense = _round2(cost / len(spent)) if spent else ZERO

    return ProfitabilitySummary(
        client_id=client_id,
        total_revenue=revenue,
        total_expenses=cost,
        net_profit=net,
        profit_margin=margin,
        total_payments=len(paid),
        total_expenses_count=len(spent),
        average_payment_amount=avg_payment,
        average_expense_amount=avg_expense,
        last_payment_date=max((_as_date(p.get("payment_date")) for p in paid), default=None),
        last_expense_date=max((_as_date(e.get("expense_date")) for e in spent), default=None),
    )
