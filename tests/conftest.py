import itertools

import pytest

import storage
from app import create_app
from models import db


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'NEWS_API_KEY': '',
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = itertools.count(1)

    def _make(monthly_income=0, name='Demo User'):
        return storage.create_user(name, f'demo{next(counter)}@example.com', monthly_income)

    return _make
