import csv
from datetime import date

import pandas as pd

import storage
from errors import ValidationError

COLUMNS = ['Type', 'Date', 'Category/Source', 'Amount', 'Description']
EXPORT_KINDS = ('all', 'expenses', 'income')
# Income is stored as one accumulated record per month
INCOME_SOURCE_LABEL = 'All Sources (Monthly Total)'


def _records_df(user_id, start, end, kind):
    rows = []
    if kind in ('all', 'expenses'):
        for e in storage.find_expenses(user_id, start, end):
            rows.append({'Type': 'Expense', 'Date': e.date, 'Category/Source': e.category.value,
                         'Amount': e.amount, 'Description': e.description or ''})
    if kind in ('all', 'income'):
        for i in storage.find_income(user_id, start, end):
            rows.append({'Type': 'Income', 'Date': i.month, 'Category/Source': INCOME_SOURCE_LABEL,
                         'Amount': i.amount, 'Description': ''})
    df = pd.DataFrame(rows, columns=COLUMNS)
    if df.empty:
        return df
    df = df.sort_values('Date', ascending=False, kind='stable')
    df['Date'] = df['Date'].map(lambda d: d.isoformat())
    df['Amount'] = df['Amount'].map(lambda a: f'{a:.2f}')
    return df


def export_csv(user_id, start=None, end=None, kind='all'):
    """Render the user's expenses and/or income as an Excel friendly CSV string."""
    if kind not in EXPORT_KINDS:
        raise ValidationError(f'type must be one of: {", ".join(EXPORT_KINDS)}')
    user = storage.find_user(user_id)
    df = _records_df(user.id, start, end, kind)
    body = df.to_csv(index=False, lineterminator='\r\n', quoting=csv.QUOTE_MINIMAL)
    return '\ufeff' + body  # BOM so Excel detects UTF-8


def export_filename(today=None):
    return f'finance-export-{(today or date.today()).isoformat()}.csv'
