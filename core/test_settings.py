"""
Settings used by the test suite.

In-memory database, cache and mail outbox; Celery tasks run inline.
"""
import os

os.environ.setdefault('SECRET_KEY', 'test-secret-key-not-for-production')

from core.settings import *  # noqa: E402,F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'contact-tests',
    }
}

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
DEFAULT_FROM_EMAIL = 'webmaster@example.com'
MANAGERS = []

SECURE_SSL_REDIRECT = False

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

CONTACT_US = {
    'recipients': ['support@example.com'],
    'storage': 'email',
    'site_url': 'http://testserver',
    'min_submit_time': 3,
    'rate_limit': {'limit': 3, 'interval': '15 minutes'},
    'email_verification': {'enabled': False, 'token_ttl': '24 hours'},
    'mailer': {'from_email': 'noreply@example.com'},
}
