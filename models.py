import re
from datetime import date, datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.orm import validates

from constants import Category, DEFAULT_INCOME_SOURCE, DESCRIPTION_MAX_LENGTH
from errors import StorageError, ValidationError

db = SQLAlchemy()

EMAIL_RE = re.compile(r'^\S+@\S+\.\S+$')


def _check_amount(field, value):
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a number') from None
    if value < 0:
        raise ValidationError(f'{field} cannot be negative')
    return value


def _check_text(field, value):
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be a string')
    return value.strip()


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    monthly_income = db.Column(db.Float, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    # Deleting a user removes everything it owns
    expenses = db.relationship('Expense', backref='user', lazy=True, cascade="all, delete-orphan")
    incomes = db.relationship('Income', backref='user', lazy=True, cascade="all, delete-orphan")
    recommendations = db.relationship('Recommendation', backref='user', lazy=True, cascade="all, delete-orphan")

    @validates('name')
    def _validate_name(self, key, value):
        value = _check_text('Name', value or '')
        if not value:
            raise ValidationError('Name is required')
        return value

    @validates('email')
    def _validate_email(self, key, value):
        value = _check_text('Email', value or '').lower()
        if not EMAIL_RE.match(value):
            raise ValidationError('Please provide a valid email')
        return value

    @validates('monthly_income')
    def _validate_income(self, key, value):
        return _check_amount('Monthly income', value or 0)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'monthlyIncome': self.monthly_income,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class Expense(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    amount = db.Column(db.Float, nullable=False)
    category = db.Column(
        db.Enum(Category, values_callable=lambda enum: [c.value for c in enum],
                native_enum=False, length=50, validate_strings=True),
        nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, default=date.today, index=True)
    description = db.Column(db.String(DESCRIPTION_MAX_LENGTH), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    @validates('amount')
    def _validate_amount(self, key, value):
        return _check_amount('Amount', value)

    @validates('category')
    def _validate_category(self, key, value):
        return Category.parse(value)

    @validates('description')
    def _validate_description(self, key, value):
        if value is None:
            return None
        value = _check_text('Description', value)
        if len(value) > DESCRIPTION_MAX_LENGTH:
            raise ValidationError(f'Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters')
        return value

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'amount': self.amount,
            'category': self.category.value,
            'date': self.date.isoformat(),
            'description': self.description or '',
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class Income(db.Model):
    __table_args__ = (db.UniqueConstraint('user_id', 'month', name='uq_income_user_month'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    amount = db.Column(db.Float, nullable=False)
    month = db.Column(db.Date, nullable=False)  # always the 1st of the month
    source = db.Column(db.String(120), nullable=False, default=DEFAULT_INCOME_SOURCE)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    @validates('amount')
    def _validate_amount(self, key, value):
        return _check_amount('Amount', value)

    @validates('month')
    def _validate_month(self, key, value):
        return value.replace(day=1)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'amount': self.amount,
            'month': self.month.isoformat(),
            'source': self.source,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class Recommendation(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    recommended_savings = db.Column(db.Float, nullable=False)
    total_expenses = db.Column(db.Float, nullable=False)
    expense_to_income_ratio = db.Column(db.Float, nullable=False)
    category_suggestions = db.Column(db.JSON, nullable=False, default=dict)
    generated_at = db.Column(db.DateTime, nullable=False, default=datetime.now, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'recommendedSavings': self.recommended_savings,
            'totalExpenses': self.total_expenses,
            'expenseToIncomeRatio': self.expense_to_income_ratio,
            'categorySuggestions': self.category_suggestions,
            'generatedAt': self.generated_at.isoformat(),
        }


@event.listens_for(Recommendation, 'before_update')
def _reject_snapshot_update(mapper, connection, target):
    raise StorageError('Recommendation snapshots cannot be modified')
