"""
Pytest configuration and fixtures
"""
import logging
import threading

import pytest

from services.supabase_client import SupabaseError
from valentine_app import create_app


class FakeStore:
    """Stands in for SupabaseClient; records every insert"""

    is_configured = True

    def __init__(self):
        self.calls = []
        self.error = None
        self.gate = None
        self.entered = threading.Event()

    def insert(self, table, rows):
        self.calls.append((table, rows))
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def failing_store(store):
    store.error = SupabaseError("Insert into valentine_profiles rejected with status 401", status_code=401)
    return store


@pytest.fixture
def app(store):
    app = create_app({
        'TESTING': True,
        'WTF_CSRF_ENABLED': False,
        'RATELIMIT_ENABLED': False,
        'SECRET_KEY': 'test-secret',
    }, store=store)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_context(app):
    with app.test_request_context():
        yield


@pytest.fixture
def logger():
    return logging.getLogger('valentine_form.tests')


@pytest.fixture
def valid_profile():
    return {
        'submission_id': 'a1b2c3',
        'name': 'Ada Lovelace',
        'age': '36',
        'gender': 'female',
        'email': 'ada@example.com',
        'interests': 'Mathematics, poetry',
        'looking_for': 'Someone who likes engines',
        'ideal_date': '',
        'deal_breakers': 'Rudeness',
    }
