"""
Integration Tests: Contact Settings
"""
from datetime import timedelta

import pytest
from django.core.exceptions import ImproperlyConfigured

from contact.conf import DEFAULT_FIELDS, StorageMode, contact_settings, parse_interval


class TestParseInterval:

    @pytest.mark.parametrize('value, expected', [
        ('24 hours', 86400),
        ('1 hour', 3600),
        ('30 minutes', 1800),
        ('1 minute', 60),
        ('2 days', 172800),
        (' 15 Minutes ', 900),
        (600, 600),
        (timedelta(minutes=5), 300),
    ])
    def test_valid_values(self, value, expected):
        assert parse_interval(value) == expected

    @pytest.mark.parametrize('value', ['forever', '', None, '10 weeks', 'hours'])
    def test_invalid_values_use_default(self, value):
        assert parse_interval(value) == 86400
        assert parse_interval(value, default=900) == 900


class TestStorageMode:

    def test_branch_properties(self):
        assert StorageMode.EMAIL.emails and not StorageMode.EMAIL.persists
        assert StorageMode.DATABASE.persists and not StorageMode.DATABASE.emails
        assert StorageMode.BOTH.persists and StorageMode.BOTH.emails


class TestContactSettings:

    def test_defaults_fill_missing_keys(self, settings):
        settings.CONTACT_US = {}

        config = contact_settings()

        assert config.storage is StorageMode.EMAIL
        assert config.honeypot_field == 'email_confirm'
        assert config.timing_field == '_form_token_time'
        assert config.min_submit_time == 3
        assert config.rate_limit.limit == 3
        assert config.rate_limit.interval == 900
        assert config.email_verification.token_ttl == 86400
        assert config.captcha.validator == 'contact.services.captcha.NullCaptchaValidator'
        assert config.fields == DEFAULT_FIELDS

    def test_invalid_storage_mode(self, contact_us):
        contact_us(storage='filesystem')

        with pytest.raises(ImproperlyConfigured):
            contact_settings()

    def test_nested_sections_are_merged(self, contact_us):
        contact_us(mailer={'send_copy_to_sender': True})

        config = contact_settings()

        assert config.mailer.send_copy_to_sender is True
        assert config.mailer.subject_prefix == '[Contact Form]'
        assert config.mailer.from_email == 'noreply@example.com'

    def test_fields_are_replaced(self, contact_us):
        contact_us(fields={'email': {'type': 'email', 'required': True}})

        assert list(contact_settings().fields) == ['email']

    def test_recipients_from_comma_separated_string(self, contact_us):
        contact_us(recipients='a@example.com, ,b@example.com')

        assert contact_settings().recipients == ('a@example.com', 'b@example.com')

    def test_infrastructure_fields(self, contact_us):
        contact_us(honeypot_field='website', captcha={'response_field': 'cf-turnstile-response'})

        assert contact_settings().infrastructure_fields == (
            'website', '_form_token_time', 'cf-turnstile-response', '_token', 'csrfmiddlewaretoken'
        )

    @pytest.mark.parametrize('storage, enabled, active', [
        ('both', True, True),
        ('database', True, False),
        ('email', True, False),
        ('both', False, False),
    ])
    def test_verification_needs_both_mode(self, contact_us, storage, enabled, active):
        contact_us(storage=storage, email_verification={'enabled': enabled})

        assert contact_settings().email_verification_active is active
