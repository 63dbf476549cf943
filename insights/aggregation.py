"""Pure helpers for bucketing and summing finance records.

Nothing in here touches the database; callers hand in already loaded
records (anything with ``amount`` and ``category`` attributes).
"""
import calendar
import math
from collections import namedtuple
from datetime import date, timedelta

Period = namedtuple('Period', ['start', 'end'])


def aggregate_by_category(expenses):
    """Sum expense amounts per category. Categories without expenses are left out."""
    totals = {}
    for expense in expenses:
        totals[expense.category] = totals.get(expense.category, 0) + expense.amount
    return totals


def total_amount(records):
    return sum(r.amount for r in records)


def percentage(part, whole):
    if whole == 0:
        return 0
    return round((part / whole) * 100, 2)


def round_whole(value):
    # halves go up, e.g. -2.5 -> -2 and 2.5 -> 3
    return int(math.floor(value + 0.5))


def month_start(d):
    return d.replace(day=1)


def month_end(d):
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def previous_month(d):
    """Closed range covering the calendar month before ``d``'s month."""
    last = month_start(d) - timedelta(days=1)
    return Period(month_start(last), last)


def current_month_range(today=None):
    today = today or date.today()
    return Period(month_start(today), month_end(today))


def previous_month_range(today=None):
    return previous_month(today or date.today())
