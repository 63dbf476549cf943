"""Read/write boundary between the services and the database.

Everything here runs inside an app context and goes through ``db.session``.
SQLAlchemy failures are rolled back and surfaced as ``StorageError`` so the
HTTP layer can answer with a generic 500; nothing is retried.
"""
from datetime import date
from functools import wraps

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from constants import Category, DEFAULT_INCOME_SOURCE
from errors import NotFoundError, StorageError, ValidationError
from insights.aggregation import month_start
from models import db, User, Expense, Income, Recommendation


def _storage_guard(func):
    @wraps(func)
    def wrapped(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except StorageError:
            # raised from a flush hook, e.g. an edited recommendation snapshot
            db.session.rollback()
            current_app.logger.exception('%s failed', func.__name__)
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception('%s failed', func.__name__)
            raise StorageError() from exc
    return wrapped


# ---------------------- Users ----------------------
@_storage_guard
def find_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError('User not found')
    return user


@_storage_guard
def find_user_by_email(email):
    if not isinstance(email, str):
        return None
    email = email.lower().strip()
    return User.query.filter_by(email=email).first()


@_storage_guard
def create_user(name, email, monthly_income=0):
    if find_user_by_email(email):
        raise ValidationError('Email already registered')
    user = User(name=name, email=email, monthly_income=monthly_income)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info('Created user %s', user.id)
    return user


@_storage_guard
def set_baseline_income(user, amount):
    user.monthly_income = amount
    db.session.commit()
    current_app.logger.info('Baseline income for user %s set to %s', user.id, user.monthly_income)
    return user


@_storage_guard
def delete_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        return False
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info('Deleted user %s and its records', user_id)
    return True


# ---------------------- Expenses ----------------------
@_storage_guard
def find_expenses(user_id, start=None, end=None, category=None):
    q = Expense.query.filter_by(user_id=user_id)
    if start:
        q = q.filter(Expense.date >= start)
    if end:
        q = q.filter(Expense.date <= end)
    if category:
        q = q.filter(Expense.category == Category.parse(category))
    return q.order_by(Expense.date.desc(), Expense.id.desc()).all()


@_storage_guard
def create_expense(user_id, amount, category, date_value=None, description=None):
    expense = Expense(
        user_id=user_id,
        amount=amount,
        category=category,
        date=date_value or date.today(),
        description=description,
    )
    db.session.add(expense)
    db.session.commit()
    current_app.logger.info('Added %s expense of %s for user %s',
                            expense.category.value, expense.amount, user_id)
    return expense


@_storage_guard
def delete_expense(expense_id):
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        return False
    db.session.delete(expense)
    db.session.commit()
    return True


# ---------------------- Income ----------------------
@_storage_guard
def find_income(user_id, month_from=None, month_to=None):
    q = Income.query.filter_by(user_id=user_id)
    if month_from:
        q = q.filter(Income.month >= month_start(month_from))
    if month_to:
        q = q.filter(Income.month <= month_start(month_to))
    return q.order_by(Income.month.desc()).all()


@_storage_guard
def find_income_for_month(user_id, month):
    return Income.query.filter_by(user_id=user_id, month=month_start(month)).first()


@_storage_guard
def upsert_income(user_id, month, increment, source=None):
    """Add ``increment`` to the user's income record for ``month``.

    The amount is bumped by a single UPDATE so concurrent submissions for the
    same month all end up in the total. The first submission inserts the row;
    if another request inserted it in the meantime the UPDATE is replayed.
    """
    try:
        increment = float(increment)
    except (TypeError, ValueError):
        raise ValidationError('Amount must be a number') from None
    if increment < 0:
        raise ValidationError('Amount cannot be negative')
    if source is not None and not isinstance(source, str):
        raise ValidationError('Source must be a string')
    month = month_start(month)
    source = (source or '').strip() or DEFAULT_INCOME_SOURCE

    bump = (
        update(Income)
        .where(Income.user_id == user_id, Income.month == month)
        .values(amount=Income.amount + increment, source=source)
        .execution_options(synchronize_session=False)
    )
    if db.session.execute(bump).rowcount == 0:
        db.session.add(Income(user_id=user_id, month=month, amount=increment, source=source))
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            db.session.execute(bump)
            db.session.commit()
    else:
        db.session.commit()

    income = find_income_for_month(user_id, month)
    current_app.logger.info('Income for user %s in %s is now %s (%s)',
                            user_id, month.strftime('%Y-%m'), income.amount, income.source)
    return income


# ---------------------- Recommendations ----------------------
@_storage_guard
def save_recommendation_snapshot(user_id, recommended_savings, total_expenses,
                                 expense_to_income_ratio, category_suggestions, generated_at):
    snapshot = Recommendation(
        user_id=user_id,
        recommended_savings=recommended_savings,
        total_expenses=total_expenses,
        expense_to_income_ratio=expense_to_income_ratio,
        category_suggestions=category_suggestions,
        generated_at=generated_at,
    )
    db.session.add(snapshot)
    db.session.commit()
    current_app.logger.info('Saved recommendation snapshot %s for user %s', snapshot.id, user_id)
    return snapshot


@_storage_guard
def latest_recommendation(user_id):
    return (Recommendation.query.filter_by(user_id=user_id)
            .order_by(Recommendation.generated_at.desc(), Recommendation.id.desc())
            .first())
