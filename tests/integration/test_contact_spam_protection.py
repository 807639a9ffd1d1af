"""
Integration Tests: Contact Spam Protection

Honeypot and timing validators, the cache-backed rate limiter and the
captcha validator selection.
"""
from datetime import datetime, timezone as dt_timezone
from unittest.mock import MagicMock, PropertyMock, patch

import pytest
from django.test import RequestFactory

from contact.conf import contact_settings
from contact.rate_limiting import ContactRateLimiter, get_client_ip
from contact.services.captcha import (
    BaseCaptchaValidator,
    NullCaptchaValidator,
    get_captcha_validator,
)
from contact.services.spam_protection import HoneypotValidator, TimingValidator

NOW = 1_714_564_800  # 2024-05-01 12:00:00 UTC


class ConfiguredCaptcha(BaseCaptchaValidator):
    def validate(self, response_token, remote_ip=None):
        return response_token == self.options.get('expected')

    def is_enabled(self):
        return True

    def provider_name(self):
        return 'configured'


class TestHoneypotValidator:

    def test_absent_field_passes(self):
        assert HoneypotValidator().validate({'name': 'John'}) is True

    @pytest.mark.parametrize('value', ['', '   ', '\t\n', None])
    def test_empty_values_pass(self, value):
        assert HoneypotValidator().validate({'email_confirm': value}) is True

    def test_filled_field_fails(self):
        assert HoneypotValidator().validate({'email_confirm': 'bot@example.com'}) is False

    def test_custom_field_name(self):
        validator = HoneypotValidator('website')

        assert validator.validate({'email_confirm': 'ignored', 'website': ''}) is True
        assert validator.validate({'website': 'http://spam.example'}) is False


class TestTimingValidator:

    def test_absent_field_passes(self):
        assert TimingValidator().validate({}, now=NOW) is True

    @pytest.mark.parametrize('value', ['', '  ', 'abc', 'nan', 'inf', '-inf', '1e400', None])
    def test_unusable_values_fail(self, value):
        assert TimingValidator().validate({'_form_token_time': value}, now=NOW) is False

    def test_boundary_is_inclusive(self):
        validator = TimingValidator(min_submit_time=3)

        assert validator.validate({'_form_token_time': str(NOW - 3)}, now=NOW) is True
        assert validator.validate({'_form_token_time': str(NOW - 2)}, now=NOW) is False

    def test_fractional_timestamp_is_truncated(self):
        validator = TimingValidator(min_submit_time=3)

        assert validator.validate({'_form_token_time': f'{NOW - 3}.9'}, now=NOW) is True

    def test_issue_token(self):
        validator = TimingValidator()

        assert validator.issue_token(NOW + 0.75) == str(NOW)
        assert validator.validate({'_form_token_time': validator.issue_token(NOW - 5)}, now=NOW) is True


class TestContactRateLimiter:

    @pytest.fixture
    def clock(self):
        return {'now': NOW}

    @pytest.fixture
    def limiter(self, clock):
        return ContactRateLimiter(limit=3, interval='15 minutes', clock=lambda: clock['now'])

    def test_identifier_is_hashed(self, limiter):
        identity = limiter.get_identifier('203.0.113.7', 'session-key')

        assert identity.startswith('contact_form_')
        assert '203.0.113.7' not in identity
        assert 'session-key' not in identity
        assert identity == limiter.get_identifier('203.0.113.7', 'session-key')
        assert identity != limiter.get_identifier('203.0.113.7', 'other-session')

    def test_quota_within_window(self, limiter):
        identity = limiter.get_identifier('203.0.113.7')

        assert [limiter.is_allowed(identity) for _ in range(4)] == [True, True, True, False]

    def test_remaining_attempts(self, limiter):
        identity = limiter.get_identifier('203.0.113.7')
        assert limiter.remaining_attempts(identity) == 3

        limiter.is_allowed(identity)

        assert limiter.remaining_attempts(identity) == 2

    def test_retry_after_is_next_window_start(self, limiter):
        identity = limiter.get_identifier('203.0.113.7')
        assert limiter.retry_after(identity) is None

        for _ in range(3):
            limiter.is_allowed(identity)

        expected = (NOW // 900 + 1) * 900
        assert limiter.retry_after(identity) == datetime.fromtimestamp(expected, tz=dt_timezone.utc)

    def test_quota_resets_next_window(self, limiter, clock):
        identity = limiter.get_identifier('203.0.113.7')
        for _ in range(3):
            limiter.is_allowed(identity)
        assert limiter.is_allowed(identity) is False

        clock['now'] = NOW + 900

        assert limiter.is_allowed(identity) is True
        assert limiter.remaining_attempts(identity) == 2

    def test_zero_limit_disables_limiting(self, clock):
        limiter = ContactRateLimiter(limit=0, clock=lambda: clock['now'])
        identity = limiter.get_identifier('203.0.113.7')

        assert all(limiter.is_allowed(identity) for _ in range(10))
        assert limiter.retry_after(identity) is None
        assert limiter.remaining_attempts(identity) is None

    def test_fails_open_when_cache_is_down(self, limiter):
        broken_cache = MagicMock()
        broken_cache.add.side_effect = ConnectionError('redis unavailable')
        broken_cache.get.side_effect = ConnectionError('redis unavailable')

        with patch.object(ContactRateLimiter, 'cache', new_callable=PropertyMock, return_value=broken_cache):
            identity = limiter.get_identifier('203.0.113.7')
            assert all(limiter.is_allowed(identity) for _ in range(5))
            assert limiter.retry_after(identity) is None

    def test_numeric_interval(self, clock):
        limiter = ContactRateLimiter(limit=1, interval=60, clock=lambda: clock['now'])
        identity = limiter.get_identifier('203.0.113.7')
        limiter.is_allowed(identity)

        assert limiter.retry_after(identity) == datetime.fromtimestamp((NOW // 60 + 1) * 60, tz=dt_timezone.utc)


class TestGetClientIp:

    def test_forwarded_for_ignored_by_default(self):
        request = RequestFactory().post(
            '/api/contact/', HTTP_X_FORWARDED_FOR='198.51.100.1, 10.0.0.1', REMOTE_ADDR='10.0.0.1'
        )
        assert get_client_ip(request) == '10.0.0.1'

    def test_forwarded_for_behind_trusted_proxy(self):
        request = RequestFactory().post(
            '/api/contact/', HTTP_X_FORWARDED_FOR='198.51.100.1, 10.0.0.1', REMOTE_ADDR='10.0.0.1'
        )
        assert get_client_ip(request, trust_forwarded_for=True) == '198.51.100.1'

    def test_remote_addr(self):
        request = RequestFactory().post('/api/contact/', REMOTE_ADDR='192.0.2.10')
        assert get_client_ip(request) == '192.0.2.10'

    def test_ipv6_address(self):
        request = RequestFactory().post('/api/contact/', REMOTE_ADDR='2001:db8::1')
        assert get_client_ip(request) == '2001:db8::1'

    @pytest.mark.parametrize('forwarded', ['not-an-ip', '', '999.1.1.1'])
    def test_invalid_forwarded_value(self, forwarded):
        request = RequestFactory().post(
            '/api/contact/', HTTP_X_FORWARDED_FOR=forwarded, REMOTE_ADDR='10.0.0.1'
        )
        expected = '10.0.0.1' if forwarded == '' else None
        assert get_client_ip(request, trust_forwarded_for=True) == expected


class TestCaptchaValidators:

    def test_null_validator(self):
        validator = NullCaptchaValidator()

        assert validator.is_enabled() is False
        assert validator.validate(None) is True
        assert validator.provider_name() == 'none'

    def test_default_configuration_uses_null_validator(self):
        assert isinstance(get_captcha_validator(contact_settings()), NullCaptchaValidator)

    def test_configured_validator_receives_options(self, contact_us):
        contact_us(captcha={
            'validator': 'tests.integration.test_contact_spam_protection.ConfiguredCaptcha',
            'options': {'expected': 'token-123'},
        })

        validator = get_captcha_validator(contact_settings())

        assert validator.provider_name() == 'configured'
        assert validator.validate('token-123') is True
        assert validator.validate('wrong') is False
