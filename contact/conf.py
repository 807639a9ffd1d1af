"""
Contact App Configuration

Reads ``settings.CONTACT_US`` and merges it over the defaults below.

Example::

    CONTACT_US = {
        'recipients': ['support@example.com'],
        'storage': 'both',
        'rate_limit': {'limit': 3, 'interval': '15 minutes'},
        'email_verification': {'enabled': True, 'token_ttl': '24 hours'},
        'mailer': {'from_email': 'noreply@example.com'},
    }
"""
import copy
import re
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


class StorageMode(str, Enum):
    """Where submitted messages end up."""

    EMAIL = 'email'
    DATABASE = 'database'
    BOTH = 'both'

    @property
    def persists(self) -> bool:
        return self in (StorageMode.DATABASE, StorageMode.BOTH)

    @property
    def emails(self) -> bool:
        return self in (StorageMode.EMAIL, StorageMode.BOTH)


DEFAULT_FIELDS = {
    'name': {
        'type': 'text',
        'required': True,
        'label': 'Name',
        'constraints': [{'NotBlank': {}}, {'Length': {'max': 100}}],
    },
    'email': {
        'type': 'email',
        'required': True,
        'label': 'Email',
        'constraints': [{'NotBlank': {}}, {'Email': {}}],
    },
    'subject': {
        'type': 'text',
        'required': True,
        'label': 'Subject',
        'constraints': [{'NotBlank': {}}, {'Length': {'max': 200}}],
    },
    'message': {
        'type': 'textarea',
        'required': True,
        'label': 'Message',
        'constraints': [{'NotBlank': {}}, {'Length': {'min': 10, 'max': 5000}}],
    },
}

DEFAULTS = {
    'recipients': [],
    'storage': StorageMode.EMAIL.value,
    'storage_class': None,
    'site_url': 'http://localhost:8000',
    'honeypot_field': 'email_confirm',
    'timing_field': '_form_token_time',
    'min_submit_time': 3,
    # only enable behind a proxy that overwrites X-Forwarded-For
    'trust_forwarded_for': False,
    'rate_limit': {
        'limit': 3,
        'interval': '15 minutes',
        'cache_alias': 'default',
    },
    'email_verification': {
        'enabled': False,
        'token_ttl': '24 hours',
    },
    'mailer': {
        'from_email': None,
        'from_name': 'Contact Form',
        'subject_prefix': '[Contact Form]',
        'send_copy_to_sender': False,
        'enable_auto_reply': False,
    },
    'captcha': {
        'validator': 'contact.services.captcha.NullCaptchaValidator',
        'options': {},
        'response_field': 'captcha_response',
    },
    'fields': DEFAULT_FIELDS,
    'pre_submission_hooks': [],
}

# CSRF token names that may arrive with a submission
CSRF_FIELDS = ('_token', 'csrfmiddlewaretoken')

DEFAULT_TOKEN_TTL = 24 * 3600
DEFAULT_RATE_LIMIT_INTERVAL = 15 * 60

_INTERVAL_RE = re.compile(
    r'^\s*(\d+)\s*(minute|minutes|hour|hours|day|days)\s*$', re.IGNORECASE
)
_UNIT_SECONDS = {'minute': 60, 'hour': 3600, 'day': 86400}


def parse_interval(value, default: int = DEFAULT_TOKEN_TTL) -> int:
    """
    Convert a duration such as "24 hours" or "30 minutes" to seconds.

    Integers are taken as seconds and timedeltas are converted. Anything
    unparseable falls back to ``default``.
    """
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    if isinstance(value, int) and not isinstance(value, bool):
        return value

    match = _INTERVAL_RE.match(str(value or ''))
    if not match:
        return default

    amount, unit = match.groups()
    return int(amount) * _UNIT_SECONDS[unit.lower().rstrip('s')]


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        # the field schema is replaced wholesale, never merged
        if key != 'fields' and isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@dataclass(frozen=True)
class RateLimitSettings:
    limit: int
    interval: int
    cache_alias: str


@dataclass(frozen=True)
class EmailVerificationSettings:
    enabled: bool
    token_ttl: int


@dataclass(frozen=True)
class MailerSettings:
    from_email: Optional[str]
    from_name: str
    subject_prefix: str
    send_copy_to_sender: bool
    enable_auto_reply: bool


@dataclass(frozen=True)
class CaptchaSettings:
    validator: str
    options: Dict[str, Any]
    response_field: str


@dataclass(frozen=True)
class ContactSettings:
    recipients: Tuple[str, ...]
    storage: StorageMode
    storage_class: Optional[str]
    site_url: str
    honeypot_field: str
    timing_field: str
    min_submit_time: int
    trust_forwarded_for: bool
    rate_limit: RateLimitSettings
    email_verification: EmailVerificationSettings
    mailer: MailerSettings
    captcha: CaptchaSettings
    fields: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    pre_submission_hooks: Tuple[str, ...] = ()

    @property
    def infrastructure_fields(self) -> Tuple[str, ...]:
        """Submitted fields that never become part of a message."""
        return (
            self.honeypot_field,
            self.timing_field,
            self.captcha.response_field,
        ) + CSRF_FIELDS

    @property
    def email_verification_active(self) -> bool:
        # pending messages need the database and a way to reach the sender
        return self.email_verification.enabled and self.storage == StorageMode.BOTH


def contact_settings() -> ContactSettings:
    """Build the effective contact settings from ``settings.CONTACT_US``."""
    raw = _merge(DEFAULTS, getattr(settings, 'CONTACT_US', None) or {})

    try:
        storage = StorageMode(raw['storage'])
    except ValueError:
        raise ImproperlyConfigured(
            f"CONTACT_US['storage'] must be one of "
            f"{[mode.value for mode in StorageMode]}, got {raw['storage']!r}"
        )

    recipients = raw['recipients']
    if isinstance(recipients, str):
        recipients = [address.strip() for address in recipients.split(',') if address.strip()]

    rate_limit = raw['rate_limit']
    verification = raw['email_verification']
    mailer = raw['mailer']
    captcha = raw['captcha']

    return ContactSettings(
        recipients=tuple(recipients),
        storage=storage,
        storage_class=raw['storage_class'],
        site_url=raw['site_url'].rstrip('/'),
        honeypot_field=raw['honeypot_field'],
        timing_field=raw['timing_field'],
        min_submit_time=int(raw['min_submit_time']),
        trust_forwarded_for=bool(raw['trust_forwarded_for']),
        rate_limit=RateLimitSettings(
            limit=int(rate_limit['limit']),
            interval=parse_interval(rate_limit['interval'], DEFAULT_RATE_LIMIT_INTERVAL),
            cache_alias=rate_limit['cache_alias'],
        ),
        email_verification=EmailVerificationSettings(
            enabled=bool(verification['enabled']),
            token_ttl=parse_interval(verification['token_ttl'], DEFAULT_TOKEN_TTL),
        ),
        mailer=MailerSettings(
            from_email=mailer['from_email'] or None,
            from_name=mailer['from_name'],
            subject_prefix=mailer['subject_prefix'],
            send_copy_to_sender=bool(mailer['send_copy_to_sender']),
            enable_auto_reply=bool(mailer['enable_auto_reply']),
        ),
        captcha=CaptchaSettings(
            validator=captcha['validator'],
            options=dict(captcha.get('options') or {}),
            response_field=captcha['response_field'],
        ),
        fields=raw['fields'] or DEFAULT_FIELDS,
        pre_submission_hooks=tuple(raw['pre_submission_hooks'] or ()),
    )
