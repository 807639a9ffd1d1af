"""
Comprehensive Tests for Contact Management API
"""
import time
from datetime import timedelta
from smtplib import SMTPException
from unittest.mock import patch

import pytest
from django.contrib.auth.models import Permission
from django.core import mail
from django.utils import timezone
from rest_framework import status

from contact.models import ContactMessage
from contact.services.hooks import HookDecision
from contact.signals import message_deleted

pytestmark = pytest.mark.django_db

SUBMIT_URL = '/api/contact/'
LIST_URL = '/api/admin/contact-messages/'
TOKEN = 'a' * 64


def reject_submission(message):
    """Pre-submission hook used by the tests below."""
    return HookDecision.ABORT


def detail_url(message):
    return f'{LIST_URL}{message.id}/'


def verify_url(token):
    return f'/api/contact/verify/{token}'


@pytest.fixture
def pending_message(db):
    return ContactMessage.objects.create(
        data={
            'name': 'Jane Roe',
            'email': 'jane@example.com',
            'subject': 'Partnership',
            'message': 'We would like to discuss a partnership.',
        },
        verified=False,
        verification_token=TOKEN,
    )


@pytest.fixture
def stored_message(db):
    return ContactMessage.objects.create(
        data={
            'name': 'John Doe',
            'email': 'john@example.com',
            'subject': 'Question',
            'message': 'This is a stored test message.',
        },
        ip_address='192.168.1.1'
    )


class TestContactFormSchema:
    """Test the form description endpoint."""

    def test_get_returns_field_schema(self, api_client):
        response = api_client.get(SUBMIT_URL)

        assert response.status_code == status.HTTP_200_OK
        names = [field['name'] for field in response.data['fields']]
        assert names == ['name', 'email', 'subject', 'message']
        assert response.data['honeypot_field'] == 'email_confirm'
        assert response.data['timing_field'] == '_form_token_time'

    def test_get_issues_current_timing_token(self, api_client):
        before = int(time.time())
        response = api_client.get(SUBMIT_URL)

        assert before <= int(response.data['timing_token']) <= int(time.time())

    def test_get_reports_captcha_disabled_by_default(self, api_client):
        response = api_client.get(SUBMIT_URL)

        assert response.data['captcha']['enabled'] is False
        assert response.data['captcha']['provider'] == 'none'
        assert response.data['email_verification'] is False


class TestContactFormSubmission:
    """Test public contact form submission."""

    def test_submit_valid_contact_form(self, api_client, valid_submission):
        """Email mode sends the admin notification and stores nothing."""
        response = api_client.post(SUBMIT_URL, valid_submission)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['success'] is True
        assert response.data['verification_required'] is False
        assert ContactMessage.objects.count() == 0

        assert len(mail.outbox) == 1
        assert mail.outbox[0].to == ['support@example.com']
        assert mail.outbox[0].subject == '[Contact Form] Question about pricing'

    def test_database_mode_stores_without_email(self, api_client, contact_us, valid_submission):
        contact_us(storage='database')

        response = api_client.post(SUBMIT_URL, valid_submission)

        assert response.status_code == status.HTTP_201_CREATED
        assert ContactMessage.objects.count() == 1
        assert len(mail.outbox) == 0

        message = ContactMessage.objects.get()
        assert response.data['id'] == message.id
        assert message.verified is True
        assert message.ip_address == '127.0.0.1'

    def test_both_mode_stores_and_emails(self, api_client, contact_us, valid_submission):
        contact_us(storage='both')

        response = api_client.post(SUBMIT_URL, valid_submission)

        assert response.status_code == status.HTTP_201_CREATED
        assert ContactMessage.objects.count() == 1
        assert len(mail.outbox) == 1

    def test_infrastructure_fields_are_not_stored(self, api_client, contact_us, valid_submission):
        contact_us(storage='database')
        valid_submission.update({
            'email_confirm': '',
            '_form_token_time': str(int(time.time()) - 60),
            'csrfmiddlewaretoken': 'token-value',
            '_token': 'token-value',
        })

        api_client.post(SUBMIT_URL, valid_submission)

        message = ContactMessage.objects.get()
        assert list(message.data.keys()) == ['name', 'email', 'subject', 'message']

    def test_submit_missing_required_fields(self, api_client):
        response = api_client.post(SUBMIT_URL, {'name': 'Test User'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['success'] is False
        assert 'email' in response.data['fields']
        assert 'message' in response.data['fields']

    def test_submit_invalid_email(self, api_client, valid_submission):
        valid_submission['email'] = 'invalid-email'

        response = api_client.post(SUBMIT_URL, valid_submission)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'email' in response.data['fields']

    def test_submit_message_too_short(self, api_client, valid_submission):
        valid_submission['message'] = 'Short'  # Less than 10 characters

        response = api_client.post(SUBMIT_URL, valid_submission)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'message' in response.data['fields']

    def test_honeypot_spam_detection(self, api_client, contact_us, valid_submission):
        """Filled honeypot gets a generic rejection and nothing happens."""
        contact_us(storage='both')
        valid_submission['email_confirm'] = 'bot@spam.com'

        response = api_client.post(SUBMIT_URL, valid_submission)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'honeypot' not in str(response.data['error']).lower()
        assert ContactMessage.objects.count() == 0
        assert len(mail.outbox) == 0

    def test_submitted_too_fast(self, api_client, valid_submission):
        valid_submission['_form_token_time'] = str(int(time.time()))

        response = api_client.post(SUBMIT_URL, valid_submission)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert len(mail.outbox) == 0

    def test_hook_can_prevent_processing(self, api_client, contact_us, valid_submission):
        contact_us(storage='both', pre_submission_hooks=['contact.tests.reject_submission'])

        response = api_client.post(SUBMIT_URL, valid_submission)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert ContactMessage.objects.count() == 0
        assert len(mail.outbox) == 0

    def test_mail_failure_returns_generic_error(self, api_client, contact_us, valid_submission):
        """In both mode the message is kept even though the notification failed."""
        contact_us(storage='both')

        with patch('django.core.mail.EmailMultiAlternatives.send', side_effect=SMTPException('down')):
            response = api_client.post(SUBMIT_URL, valid_submission)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data['success'] is False
        assert 'down' not in str(response.data['error'])
        assert ContactMessage.objects.count() == 1

    def test_line_breaks_in_subject_do_not_break_mail(self, api_client, contact_us, valid_submission):
        contact_us(storage='both')
        valid_submission['subject'] = 'Hi\nBcc: x@evil.com'

        response = api_client.post(SUBMIT_URL, valid_submission, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert mail.outbox[0].subject == '[Contact Form] Hi Bcc: x@evil.com'
        assert mail.outbox[0].bcc == []
        assert ContactMessage.objects.get().subject == 'Hi\nBcc: x@evil.com'

    def test_auto_reply_is_sent(self, api_client, contact_us, valid_submission):
        contact_us(mailer={'enable_auto_reply': True})

        response = api_client.post(SUBMIT_URL, valid_submission)

        assert response.status_code == status.HTTP_201_CREATED
        assert [email.to for email in mail.outbox] == [['support@example.com'], ['john@example.com']]


class TestRateLimiting:
    """Test rate limiting for contact form."""

    def test_rate_limit_per_window(self, api_client, valid_submission):
        for i in range(3):
            valid_submission['message'] = f'Test message number {i}'
            response = api_client.post(SUBMIT_URL, valid_submission)
            assert response.status_code == status.HTTP_201_CREATED

        response = api_client.post(SUBMIT_URL, valid_submission)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert 0 <= int(response['Retry-After']) <= 15 * 60
        assert len(mail.outbox) == 3

    def test_different_clients_have_separate_quotas(self, api_client, contact_us, valid_submission):
        contact_us(rate_limit={'limit': 1})

        first = api_client.post(SUBMIT_URL, valid_submission, REMOTE_ADDR='10.0.0.1')
        second = api_client.post(SUBMIT_URL, valid_submission, REMOTE_ADDR='10.0.0.2')

        assert first.status_code == status.HTTP_201_CREATED
        assert second.status_code == status.HTTP_201_CREATED

    def test_forwarded_for_header_cannot_reset_quota(self, api_client, contact_us, valid_submission):
        contact_us(rate_limit={'limit': 3})

        codes = [
            api_client.post(SUBMIT_URL, valid_submission, HTTP_X_FORWARDED_FOR=f'10.0.0.{i}').status_code
            for i in range(5)
        ]

        assert codes == [status.HTTP_201_CREATED] * 3 + [status.HTTP_429_TOO_MANY_REQUESTS] * 2

    def test_forwarded_for_used_behind_trusted_proxy(self, api_client, contact_us, valid_submission):
        contact_us(storage='database', trust_forwarded_for=True)

        api_client.post(SUBMIT_URL, valid_submission, HTTP_X_FORWARDED_FOR='198.51.100.7, 10.0.0.1')

        assert ContactMessage.objects.get().ip_address == '198.51.100.7'

    def test_invalid_forwarded_address_is_not_stored(self, api_client, contact_us, valid_submission):
        contact_us(storage='database', trust_forwarded_for=True)

        response = api_client.post(SUBMIT_URL, valid_submission, HTTP_X_FORWARDED_FOR='not-an-ip')

        assert response.status_code == status.HTTP_201_CREATED
        assert ContactMessage.objects.get().ip_address is None


class TestEmailVerification:
    """Test the email verification flow."""

    def test_submission_waits_for_verification(self, api_client, contact_us, valid_submission):
        contact_us(storage='both', email_verification={'enabled': True})

        response = api_client.post(SUBMIT_URL, valid_submission)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['verification_required'] is True

        message = ContactMessage.objects.get()
        assert message.verified is False
        assert len(message.verification_token) == 64

        assert len(mail.outbox) == 1
        assert mail.outbox[0].to == ['john@example.com']
        assert f'http://testserver/api/contact/verify/{message.verification_token}' in mail.outbox[0].body

    def test_verification_is_ignored_in_database_mode(self, api_client, contact_us, valid_submission):
        contact_us(storage='database', email_verification={'enabled': True})

        response = api_client.post(SUBMIT_URL, valid_submission)

        assert response.data['verification_required'] is False
        assert ContactMessage.objects.get().verified is True

    def test_verify_sends_notification(self, api_client, contact_us, pending_message):
        contact_us(storage='both', email_verification={'enabled': True})

        response = api_client.get(verify_url(TOKEN))

        assert response.status_code == status.HTTP_200_OK
        pending_message.refresh_from_db()
        assert pending_message.verified is True
        assert pending_message.verified_at is not None
        assert len(mail.outbox) == 1
        assert mail.outbox[0].to == ['support@example.com']

    def test_second_verification_conflicts(self, api_client, contact_us, pending_message):
        contact_us(storage='both', email_verification={'enabled': True})

        api_client.get(verify_url(TOKEN))
        response = api_client.get(verify_url(TOKEN))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert len(mail.outbox) == 1

    def test_unknown_token(self, api_client, contact_us):
        contact_us(storage='both', email_verification={'enabled': True})

        response = api_client.get(verify_url('b' * 64))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_malformed_token_does_not_route(self, api_client):
        response = api_client.get(verify_url('not-a-token'))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_expired_token(self, api_client, contact_us, pending_message):
        contact_us(storage='both', email_verification={'enabled': True, 'token_ttl': '24 hours'})
        pending_message.created_at = timezone.now() - timedelta(hours=25)
        pending_message.save()

        response = api_client.get(verify_url(TOKEN))

        assert response.status_code == status.HTTP_410_GONE
        pending_message.refresh_from_db()
        assert pending_message.verified is False
        assert len(mail.outbox) == 0


class TestContactMessageListView:
    """Test admin contact message list view."""

    @pytest.fixture(autouse=True)
    def database_storage(self, contact_us):
        contact_us(storage='database')

    def test_unauthorized_access(self, api_client):
        response = api_client.get(LIST_URL)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_regular_user_access_denied(self, api_client, regular_user):
        api_client.force_authenticate(user=regular_user)
        response = api_client.get(LIST_URL)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_view_permission_grants_access(self, api_client, regular_user, stored_message):
        regular_user.user_permissions.add(Permission.objects.get(codename='view_contactmessage'))
        api_client.force_authenticate(user=regular_user)

        response = api_client.get(LIST_URL)

        assert response.status_code == status.HTTP_200_OK

    def test_staff_can_list_messages(self, api_client, staff_user, stored_message):
        api_client.force_authenticate(user=staff_user)
        response = api_client.get(LIST_URL)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['results']) == 1
        assert response.data['results'][0]['sender_email'] == 'john@example.com'
        assert response.data['results'][0]['subject'] == 'Question'

    def test_filter_by_verified(self, api_client, staff_user, stored_message, pending_message):
        api_client.force_authenticate(user=staff_user)

        response = api_client.get(LIST_URL, {'verified': 'false'})

        assert response.status_code == status.HTTP_200_OK
        assert [item['id'] for item in response.data['results']] == [pending_message.id]

    def test_not_found_without_database_storage(self, api_client, contact_us, staff_user):
        contact_us(storage='email')
        api_client.force_authenticate(user=staff_user)

        response = api_client.get(LIST_URL)

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestContactMessageDetailView:
    """Test admin contact message detail view."""

    @pytest.fixture(autouse=True)
    def database_storage(self, contact_us):
        contact_us(storage='database')

    def test_staff_can_view_message(self, api_client, staff_user, stored_message):
        api_client.force_authenticate(user=staff_user)
        response = api_client.get(detail_url(stored_message))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data']['message'] == 'This is a stored test message.'
        assert 'verification_token' not in response.data

    def test_missing_message(self, api_client, staff_user):
        api_client.force_authenticate(user=staff_user)
        response = api_client.get(f'{LIST_URL}999/')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_staff_cannot_delete_without_permission(self, api_client, staff_user, stored_message):
        api_client.force_authenticate(user=staff_user)
        response = api_client.delete(detail_url(stored_message))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert ContactMessage.objects.filter(id=stored_message.id).exists()

    def test_super_admin_can_delete(self, api_client, super_admin, stored_message):
        deleted = []

        def receiver(sender, message, **kwargs):
            deleted.append((message.id, kwargs.get('user')))

        message_deleted.connect(receiver)
        try:
            api_client.force_authenticate(user=super_admin)
            response = api_client.delete(detail_url(stored_message))
        finally:
            message_deleted.disconnect(receiver)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not ContactMessage.objects.filter(id=stored_message.id).exists()
        assert deleted == [(stored_message.id, super_admin)]
