"""End-to-end checks of the JSON API through the Flask test client."""
from datetime import date

from insights.aggregation import current_month_range


def _create_user(client, monthly_income=0, email='demo@example.com'):
    resp = client.post('/api/users', json={'name': 'Demo', 'email': email, 'monthlyIncome': monthly_income})
    assert resp.status_code == 201
    return resp.get_json()['data']['id']


def test_health(client):
    resp = client.get('/health')
    assert resp.status_code == 200
    assert resp.get_json()['success'] is True


def test_unknown_route_is_json_404(client):
    resp = client.get('/api/nope')
    assert resp.status_code == 404
    assert resp.get_json() == {'success': False, 'message': 'Route not found'}


def test_user_lifecycle(client):
    user_id = _create_user(client, 2500)
    assert client.get(f'/api/users/{user_id}').get_json()['data']['monthlyIncome'] == 2500

    dup = client.post('/api/users', json={'name': 'Again', 'email': 'DEMO@example.com'})
    assert dup.status_code == 400

    assert client.delete(f'/api/users/{user_id}').status_code == 200
    assert client.get(f'/api/users/{user_id}').status_code == 404


def test_expense_routes(client):
    user_id = _create_user(client)
    resp = client.post('/api/expenses', json={
        'userId': user_id, 'amount': 42, 'category': 'Travel', 'date': '2026-03-04', 'description': '  Bus pass '})
    assert resp.status_code == 201
    expense = resp.get_json()['data']
    assert expense['category'] == 'Transportation'
    assert expense['description'] == 'Bus pass'

    listed = client.get(f'/api/expenses/{user_id}?startDate=2026-03-01&endDate=2026-03-31&category=Travel').get_json()
    assert listed['count'] == 1

    assert client.delete(f'/api/expenses/{expense["id"]}').status_code == 200
    missing = client.delete(f'/api/expenses/{expense["id"]}')
    assert missing.status_code == 404
    assert missing.get_json()['message'] == 'Expense not found'


def test_expense_validation_errors(client):
    user_id = _create_user(client)
    resp = client.post('/api/expenses', json={'userId': user_id})
    assert resp.status_code == 400
    assert resp.get_json()['message'] == 'Missing required fields: amount, category'

    bad_category = client.post('/api/expenses', json={'userId': user_id, 'amount': 5, 'category': 'Pets'})
    assert bad_category.status_code == 400

    negative = client.post('/api/expenses', json={'userId': user_id, 'amount': -5, 'category': 'Other'})
    assert negative.status_code == 400

    bad_date = client.get(f'/api/expenses/{user_id}?startDate=yesterday')
    assert bad_date.status_code == 400

    unknown_user = client.post('/api/expenses', json={'userId': 999, 'amount': 5, 'category': 'Other'})
    assert unknown_user.status_code == 404


def test_non_string_fields_are_rejected(client):
    user_id = _create_user(client)
    for body in (
        {'userId': user_id, 'amount': 5, 'category': 5},
        {'userId': user_id, 'amount': 5, 'category': 'Other', 'description': 7},
    ):
        resp = client.post('/api/expenses', json=body)
        assert resp.status_code == 400
        assert resp.get_json()['success'] is False

    assert client.post('/api/users', json={'name': 5, 'email': 'five@example.com'}).status_code == 400
    assert client.post('/api/users', json={'name': 'Five', 'email': 5}).status_code == 400
    assert client.get(f'/api/expenses/{user_id}').get_json()['count'] == 0

    income = client.post('/api/income', json={
        'userId': user_id, 'monthlyIncome': 10, 'month': 3, 'year': 2026, 'source': ['Salary']})
    assert income.status_code == 400


def test_income_accumulates_through_api(client):
    user_id = _create_user(client, 1000)
    client.post('/api/income', json={'userId': user_id, 'monthlyIncome': 3000, 'month': 3, 'year': 2026})
    resp = client.post('/api/income', json={
        'userId': user_id, 'monthlyIncome': 2000, 'month': 'March', 'year': 2026, 'source': 'Freelance'})

    data = resp.get_json()['data']
    assert data['monthlyIncome'] == 5000
    assert data['income']['source'] == 'Freelance'

    march = client.get(f'/api/income/{user_id}?month=3&year=2026').get_json()['data']
    assert march['monthlyIncome'] == 5000
    april = client.get(f'/api/income/{user_id}?month=4&year=2026').get_json()['data']
    assert april['monthlyIncome'] == 1000


def test_income_without_month_sets_baseline(client):
    resp = client.post('/api/income', json={'name': 'New', 'email': 'new@example.com', 'monthlyIncome': 4200})
    data = resp.get_json()['data']
    assert data['monthlyIncome'] == 4200

    again = client.post('/api/income', json={'userId': data['id'], 'monthlyIncome': 4800}).get_json()['data']
    assert again['monthlyIncome'] == 4800
    assert again['email'] == 'new@example.com'


def test_income_rejects_bad_month(client):
    user_id = _create_user(client)
    resp = client.post('/api/income', json={'userId': user_id, 'monthlyIncome': 10, 'month': 13, 'year': 2026})
    assert resp.status_code == 400


def test_summary_route(client):
    user_id = _create_user(client, 50000)
    client.post('/api/income', json={
        'userId': user_id, 'monthlyIncome': 20000, 'month': 3, 'year': 2026, 'source': 'Freelance'})
    client.post('/api/expenses', json={'userId': user_id, 'amount': 15000, 'category': 'Housing', 'date': '2026-03-05'})
    client.post('/api/expenses', json={'userId': user_id, 'amount': 5000, 'category': 'Food', 'date': '2026-03-09'})

    data = client.get(f'/api/summary/{user_id}?startDate=2026-03-01&endDate=2026-03-31').get_json()['data']

    assert data['monthlyIncome'] == 20000
    assert data['totalExpenses'] == 20000
    assert data['remainingBalance'] == 0
    assert data['savingsRate'] == 0
    assert data['categoryBreakdown'] == {'Housing': 15000, 'Food & Dining': 5000}
    assert data['period'] == {'start': '2026-03-01', 'end': '2026-03-31'}
    assert data['comparison']['period'] == {'start': '2026-02-01', 'end': '2026-02-28'}


def test_summary_defaults_to_current_month(client):
    user_id = _create_user(client, 100)
    period = current_month_range(date.today())
    data = client.get(f'/api/summary/{user_id}').get_json()['data']
    assert data['period'] == {'start': period.start.isoformat(), 'end': period.end.isoformat()}


def test_summary_unknown_user(client):
    resp = client.get('/api/summary/77')
    assert resp.status_code == 404
    assert resp.get_json() == {'success': False, 'message': 'User not found'}


def test_recommendation_routes(client):
    user_id = _create_user(client, 0)
    sentinel = client.get(f'/api/recommendations/{user_id}').get_json()['data']
    assert sentinel['recommendedSavings'] == 0
    assert sentinel['categorySuggestions'] == {}
    assert client.get(f'/api/recommendations/{user_id}/latest').status_code == 404

    client.post('/api/income', json={'userId': user_id, 'monthlyIncome': 1000})
    client.post('/api/expenses', json={'userId': user_id, 'amount': 900, 'category': 'Shopping'})
    fresh = client.get(f'/api/recommendations/{user_id}').get_json()['data']
    assert fresh['totalExpenses'] == 900
    assert fresh['expenseToIncomeRatio'] == 90
    assert fresh['categorySuggestions']['Shopping']['status'] == 'overspending'

    latest = client.get(f'/api/recommendations/{user_id}/latest').get_json()['data']
    assert latest['recommendedSavings'] == fresh['recommendedSavings']


def test_export_route(client):
    user_id = _create_user(client)
    client.post('/api/expenses', json={'userId': user_id, 'amount': 10, 'category': 'Other', 'date': '2026-03-04'})

    resp = client.get(f'/api/export/{user_id}?type=expenses')
    assert resp.status_code == 200
    assert resp.headers['Content-Type'].startswith('text/csv')
    assert 'attachment; filename="finance-export-' in resp.headers['Content-Disposition']
    assert b'Expense,2026-03-04,Other,10.00,' in resp.data

    assert client.get(f'/api/export/{user_id}?type=bogus').status_code == 400


def test_news_route_falls_back_without_key(client):
    data = client.get('/api/news').get_json()
    assert data['success'] is True
    assert data['totalResults'] == 5

    markets = client.get('/api/news?category=markets').get_json()
    assert markets['totalResults'] == 1
