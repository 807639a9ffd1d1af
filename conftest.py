"""
Shared pytest fixtures for contact tests.
"""
import copy

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

User = get_user_model()


@pytest.fixture(autouse=True)
def clear_cache():
    """Clear cache before and after each test so rate limit counters never leak."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """API client for making requests."""
    return APIClient()


@pytest.fixture
def contact_us(settings):
    """
    Override parts of CONTACT_US for one test.

    Nested sections are merged, everything else is replaced:
        contact_us(storage='both', mailer={'enable_auto_reply': True})
    """
    def configure(**overrides):
        config = copy.deepcopy(settings.CONTACT_US)
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(config.get(key), dict):
                config[key] = {**config[key], **value}
            else:
                config[key] = value
        settings.CONTACT_US = config
        return config
    return configure


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(
        username='staff',
        email='staff@example.com',
        password='testpass123',
        is_staff=True
    )


@pytest.fixture
def super_admin(db):
    return User.objects.create_superuser(
        username='admin',
        email='admin@example.com',
        password='testpass123'
    )


@pytest.fixture
def regular_user(db):
    return User.objects.create_user(
        username='visitor',
        email='visitor@example.com',
        password='testpass123'
    )


@pytest.fixture
def valid_submission():
    return {
        'name': 'John Doe',
        'email': 'john@example.com',
        'subject': 'Question about pricing',
        'message': 'Hello, I would like to know more about your plans.',
    }
