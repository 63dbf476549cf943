import os
from datetime import date, datetime

from dotenv import load_dotenv
from flask import Blueprint, Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

import storage
from constants import MONTH_NAMES
from errors import FinanceError, NotFoundError, ValidationError
from insights.export import export_csv, export_filename
from insights.news import fetch_financial_news, filter_news_by_category
from insights.recommender import generate_recommendations, latest_recommendation
from insights.summary import build_summary
from models import db

api = Blueprint('api', __name__)


def create_app(test_config=None):
    load_dotenv()
    app = Flask(__name__)
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///finance.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-me')
    app.config['NEWS_API_KEY'] = os.environ.get('NEWS_API_KEY', '').strip()
    if test_config:
        app.config.update(test_config)
    db.init_app(app)
    with app.app_context():
        db.create_all()
    app.register_blueprint(api)
    app.register_error_handler(FinanceError, _handle_finance_error)
    app.register_error_handler(HTTPException, _handle_http_error)
    app.register_error_handler(Exception, _handle_unexpected_error)
    return app


# ---------------------- Error Handlers ----------------------
def _handle_finance_error(exc):
    return jsonify({'success': False, 'message': exc.message}), exc.status_code


def _handle_http_error(exc):
    message = 'Route not found' if exc.code == 404 else exc.description
    return jsonify({'success': False, 'message': message}), exc.code


def _handle_unexpected_error(exc):
    current_app.logger.exception('Unhandled error on %s %s', request.method, request.path)
    return jsonify({'success': False, 'message': 'Internal server error'}), 500


# ---------------------- Request Helpers ----------------------
def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return {}
    return {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}


def _require(data, fields):
    missing = [f for f in fields if data.get(f) is None or data.get(f) == '']
    if missing:
        raise ValidationError(f'Missing required fields: {", ".join(missing)}')


def _parse_int(value, field):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {field} format') from None


def _parse_date(value, field):
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f'{field} must be YYYY-MM-DD') from None


def _parse_month(month, year):
    """Month may be 1-12 or a month name like the income form sends; returns the 1st of it."""
    if month is None or month == '' or year is None or year == '':
        return None
    if isinstance(month, str) and not month.isdigit():
        names = [m.lower() for m in MONTH_NAMES]
        if month.lower() not in names:
            raise ValidationError(f'Invalid month: {month}')
        month_number = names.index(month.lower()) + 1
    else:
        month_number = _parse_int(month, 'month')
    if not 1 <= month_number <= 12:
        raise ValidationError('month must be between 1 and 12')
    return date(_parse_int(year, 'year'), month_number, 1)


# ---------------------- Routes: Health ----------------------
@api.route('/health')
def health():
    return jsonify({
        'success': True,
        'message': 'Finance tracker API is running',
        'timestamp': datetime.now().isoformat(),
    })


# ---------------------- Routes: Users ----------------------
@api.route('/api/users', methods=['POST'])
def create_user():
    data = _json_body()
    _require(data, ['name', 'email'])
    user = storage.create_user(data['name'], data['email'], data.get('monthlyIncome') or 0)
    return jsonify({'success': True, 'message': 'User created', 'data': user.to_dict()}), 201


@api.route('/api/users/<int:user_id>')
def get_user(user_id):
    return jsonify({'success': True, 'data': storage.find_user(user_id).to_dict()})


@api.route('/api/users/<int:user_id>', methods=['DELETE'])
def delete_user(user_id):
    if not storage.delete_user(user_id):
        raise NotFoundError('User not found')
    return jsonify({'success': True, 'message': 'User deleted'})


# ---------------------- Routes: Income ----------------------
@api.route('/api/income', methods=['POST'])
def save_income():
    data = _json_body()
    _require(data, ['monthlyIncome'])
    amount = data['monthlyIncome']
    month = _parse_month(data.get('month'), data.get('year'))

    if data.get('userId'):
        user = storage.find_user(_parse_int(data['userId'], 'userId'))
    else:
        # first-run setup from the income form: identify the user by email
        _require(data, ['name', 'email'])
        user = storage.find_user_by_email(data['email'])
        if user is None:
            user = storage.create_user(data['name'], data['email'])

    payload = user.to_dict()
    if month is None:
        storage.set_baseline_income(user, amount)
        payload['monthlyIncome'] = user.monthly_income
    else:
        income = storage.upsert_income(user.id, month, amount, data.get('source'))
        payload['monthlyIncome'] = income.amount
        payload['income'] = income.to_dict()
    return jsonify({'success': True, 'message': 'Income updated successfully', 'data': payload})


@api.route('/api/income/<int:user_id>')
def get_income(user_id):
    user = storage.find_user(user_id)
    payload = user.to_dict()
    month = _parse_month(request.args.get('month'), request.args.get('year'))
    if month is not None:
        income = storage.find_income_for_month(user.id, month)
        if income is not None:
            payload['monthlyIncome'] = income.amount
            payload['source'] = income.source
    return jsonify({'success': True, 'data': payload})


# ---------------------- Routes: Expenses ----------------------
@api.route('/api/expenses', methods=['POST'])
def add_expense():
    data = _json_body()
    _require(data, ['userId', 'amount', 'category'])
    user = storage.find_user(_parse_int(data['userId'], 'userId'))
    expense = storage.create_expense(
        user.id,
        data['amount'],
        data['category'],
        _parse_date(data.get('date'), 'date'),
        data.get('description') or None,
    )
    return jsonify({'success': True, 'message': 'Expense added successfully', 'data': expense.to_dict()}), 201


@api.route('/api/expenses/<int:user_id>')
def list_expenses(user_id):
    user = storage.find_user(user_id)
    expenses = storage.find_expenses(
        user.id,
        _parse_date(request.args.get('startDate'), 'startDate'),
        _parse_date(request.args.get('endDate'), 'endDate'),
        request.args.get('category'),
    )
    return jsonify({'success': True, 'count': len(expenses), 'data': [e.to_dict() for e in expenses]})


@api.route('/api/expenses/<int:expense_id>', methods=['DELETE'])
def delete_expense(expense_id):
    if not storage.delete_expense(expense_id):
        raise NotFoundError('Expense not found')
    return jsonify({'success': True, 'message': 'Expense deleted successfully'})


# ---------------------- Routes: Insights ----------------------
@api.route('/api/summary/<int:user_id>')
def summary(user_id):
    result = build_summary(
        user_id,
        _parse_date(request.args.get('startDate'), 'startDate'),
        _parse_date(request.args.get('endDate'), 'endDate'),
    )
    return jsonify({'success': True, 'data': result.to_dict()})


@api.route('/api/recommendations/<int:user_id>')
def recommendations(user_id):
    result = generate_recommendations(user_id)
    return jsonify({'success': True, 'data': result.to_dict()})


@api.route('/api/recommendations/<int:user_id>/latest')
def latest_recommendations(user_id):
    snapshot = latest_recommendation(user_id)
    if snapshot is None:
        raise NotFoundError('No recommendations generated yet')
    return jsonify({'success': True, 'data': snapshot.to_dict()})


@api.route('/api/news')
def news():
    result = fetch_financial_news(current_app.config.get('NEWS_API_KEY'))
    category = request.args.get('category')
    if category:
        result['articles'] = filter_news_by_category(result['articles'], category)
        result['totalResults'] = len(result['articles'])
    return jsonify({'success': True, **result})


# ---------------------- Export CSV ----------------------
@api.route('/api/export/<int:user_id>')
def export(user_id):
    output = export_csv(
        user_id,
        _parse_date(request.args.get('startDate'), 'startDate'),
        _parse_date(request.args.get('endDate'), 'endDate'),
        request.args.get('type', 'all'),
    )
    headers = {
        'Content-Type': 'text/csv; charset=utf-8',
        'Content-Disposition': f'attachment; filename="{export_filename()}"',
    }
    return output.encode('utf-8'), 200, headers


# ---------------------- Run App ----------------------
if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), debug=True)
