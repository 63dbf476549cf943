"""Period summary with a month-over-month comparison.

The comparison window is always the full calendar month before the start
of the requested period, however long that period is.
"""
from dataclasses import dataclass, field
from datetime import date

import storage
from errors import ValidationError
from insights.aggregation import (
    Period,
    aggregate_by_category,
    current_month_range,
    month_end,
    month_start,
    percentage,
    previous_month,
    round_whole,
    total_amount,
)


@dataclass
class Comparison:
    period: Period
    previous_total_expenses: float
    expense_change: float
    income_change: float
    savings_change: float

    def to_dict(self):
        return {
            'period': {'start': self.period.start.isoformat(), 'end': self.period.end.isoformat()},
            'previousTotalExpenses': round_whole(self.previous_total_expenses),
            'expenseChange': round_whole(self.expense_change),
            'incomeChange': round_whole(self.income_change),
            'savingsChange': round_whole(self.savings_change),
        }


@dataclass
class Summary:
    period: Period
    income: float
    total_expenses: float
    remaining_balance: float
    savings_rate: float
    category_breakdown: dict = field(default_factory=dict)
    expense_count: int = 0
    comparison: Comparison = None

    def to_dict(self):
        remaining = round_whole(self.remaining_balance)
        return {
            'monthlyIncome': self.income,
            'totalExpenses': round_whole(self.total_expenses),
            'remainingBalance': remaining,
            'balance': remaining,
            'savingsRate': self.savings_rate,
            'categoryBreakdown': {c.value: v for c, v in self.category_breakdown.items()},
            'expenseCount': self.expense_count,
            'period': {'start': self.period.start.isoformat(), 'end': self.period.end.isoformat()},
            'comparison': self.comparison.to_dict() if self.comparison else None,
        }


def resolve_period(start=None, end=None, today=None):
    """Turn optional bounds into a closed period, defaulting to the current month."""
    if start is None and end is None:
        return current_month_range(today)
    if start is None:
        start = month_start(end)
    if end is None:
        end = month_end(start)
    if start > end:
        raise ValidationError('startDate must not be after endDate')
    return Period(start, end)


def effective_income(user, period):
    """Sum of the income records for the months the period touches, else the baseline."""
    records = storage.find_income(user.id, month_start(period.start), month_start(period.end))
    if not records:
        return user.monthly_income
    return total_amount(records)


def build_summary(user_id, start=None, end=None, today=None):
    user = storage.find_user(user_id)
    period = resolve_period(start, end, today or date.today())
    prev_period = previous_month(period.start)

    expenses = storage.find_expenses(user.id, period.start, period.end)
    income = effective_income(user, period)
    total = total_amount(expenses)
    remaining = income - total

    prev_expenses = storage.find_expenses(user.id, prev_period.start, prev_period.end)
    prev_income = effective_income(user, prev_period)
    prev_total = total_amount(prev_expenses)

    comparison = Comparison(
        period=prev_period,
        previous_total_expenses=prev_total,
        expense_change=total - prev_total,
        income_change=income - prev_income,
        savings_change=(income - total) - (prev_income - prev_total),
    )
    return Summary(
        period=period,
        income=income,
        total_expenses=total,
        remaining_balance=remaining,
        savings_rate=percentage(remaining, income),
        category_breakdown=aggregate_by_category(expenses),
        expense_count=len(expenses),
        comparison=comparison,
    )
