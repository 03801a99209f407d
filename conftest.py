"""
Pytest configuration.

Django's own runner (``python manage.py test``) reads the same variables
from .env; here they get test defaults so the suite runs anywhere.
"""

import os

import django
from django.test.utils import setup_test_environment

TEST_ENVIRONMENT = {
    "DJANGO_SECRET_KEY": "test-secret-key",
    "SQUARE_ACCESS_TOKEN": "EAAAtest-access-token",
    "SQUARE_APPLICATION_ID": "sandbox-sq0idb-test-app",
    "SQUARE_LOCATION_ID": "LOC123",
    "SQUARE_ENVIRONMENT": "sandbox",
}


def pytest_configure():
    """Configure Django settings for pytest"""
    for name, value in TEST_ENVIRONMENT.items():
        os.environ.setdefault(name, value)
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "orders_payments.settings")

    django.setup()
    # Template rendering signals, used by assertTemplateUsed and response.context
    setup_test_environment()
