# fleetledger/analytics.py
"""
In-memory reductions behind the two analytics endpoints.

Both functions take already-loaded, owner-scoped records and a reference
``now`` so results are deterministic for a given clock. Money is summed as
Decimal and only converted to JSON numbers on the way out.
"""

from collections import defaultdict
from datetime import timedelta, timezone
from decimal import Decimal

from .helpers import money
from .models import is_overdue

PERIODS = ("week", "month", "year")
DEFAULT_PERIOD = "month"
ZERO = Decimal("0")


def resolve_window(now, period=None, start=None, end=None):
    """Return ``(start, end, label)`` for an analytics request.

    An explicit range wins when both bounds are given. Otherwise the named
    period is resolved relative to ``now``; unknown or missing periods fall
    back to the current month.
    """
    if start is not None and end is not None:
        return start, end, "custom"

    if period not in PERIODS:
        period = DEFAULT_PERIOD

    if period == "week":
        window_start = now - timedelta(days=7)
    elif period == "year":
        window_start = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    else:
        window_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return window_start, now, period


def summarize_transactions(transactions):
    """Totals, expense breakdown by category, and a per-day series."""
    total_income = ZERO
    total_expenses = ZERO
    breakdown = defaultdict(lambda: ZERO)
    daily = defaultdict(lambda: {"income": ZERO, "expenses": ZERO})

    for tx in transactions:
        day = tx.transaction_date.astimezone(timezone.utc).date().isoformat()
        if tx.is_income:
            total_income += tx.amount
            daily[day]["income"] += tx.amount
        else:
            total_expenses += tx.amount
            breakdown[tx.category] += tx.amount
            daily[day]["expenses"] += tx.amount

    daily_data = []
    for day in sorted(daily):
        bucket = daily[day]
        daily_data.append({
            "date": day,
            "income": money(bucket["income"]),
            "expenses": money(bucket["expenses"]),
            "profit": money(bucket["income"] - bucket["expenses"]),
        })

    return {
        "summary": {
            "totalIncome": money(total_income),
            "totalExpenses": money(total_expenses),
            "netProfit": money(total_income - total_expenses),
        },
        "expenseBreakdown": {category: money(amount) for category, amount in breakdown.items()},
        "dailyData": daily_data,
    }


def summarize_debtors(debtors, now, preview_limit=5):
    total_debt = ZERO
    total_paid = ZERO
    overdue_debt = ZERO
    status_breakdown = {"unpaid": 0, "paid": 0}
    overdue = []

    for debtor in debtors:
        status_breakdown[debtor.status] += 1
        if debtor.status == "paid":
            total_paid += debtor.amount
            continue
        total_debt += debtor.amount
        if is_overdue(debtor, now):
            overdue_debt += debtor.amount
            overdue.append(debtor)

    overdue.sort(key=lambda d: d.due_date)

    return {
        "summary": {
            "totalDebt": money(total_debt),
            "totalPaid": money(total_paid),
            "overdueDebt": money(overdue_debt),
            "overdueCount": len(overdue),
        },
        "statusBreakdown": status_breakdown,
        "overdueDebtors": [d.to_dict(now) for d in overdue[:preview_limit]],
    }
