"""
Integration Tests: Contact Message Storage
"""
from unittest.mock import patch

import pytest
from django.db import DatabaseError

from contact.conf import contact_settings
from contact.exceptions import StorageError
from contact.models import ContactMessage
from contact.services.storage import DatabaseStorage, NullStorage, get_storage


class InMemoryStorage(NullStorage):
    """Custom backend selected through CONTACT_US['storage_class']."""


def make_message(**extra):
    return ContactMessage(
        data={'name': 'John Doe', 'email': 'john@example.com', 'subject': 'Hi', 'message': 'Round trip test'},
        ip_address='192.0.2.1',
        user_agent='pytest',
        **extra
    )


@pytest.mark.django_db
class TestDatabaseStorage:

    def test_insert_assigns_id(self):
        message = make_message()
        assert message.pk is None

        DatabaseStorage().save(message)

        assert message.pk is not None
        assert ContactMessage.objects.count() == 1

    def test_round_trip(self):
        storage = DatabaseStorage()
        message = make_message(verified=False, verification_token='d' * 64)
        storage.save(message)

        loaded = storage.find_by_id(message.pk)

        assert loaded.data == message.data
        assert list(loaded.data) == ['name', 'email', 'subject', 'message']
        assert loaded.ip_address == '192.0.2.1'
        assert loaded.user_agent == 'pytest'
        assert loaded.verified is False
        assert loaded.verification_token == 'd' * 64
        assert loaded.created_at == message.created_at
        assert loaded.verified_at is None

    def test_save_updates_existing(self):
        storage = DatabaseStorage()
        message = make_message(verified=False, verification_token='e' * 64)
        storage.save(message)
        first_id = message.pk

        message.mark_verified()
        storage.save(message)

        assert message.pk == first_id
        assert ContactMessage.objects.count() == 1
        assert storage.find_by_id(first_id).verified is True

    def test_find_by_verification_token(self):
        storage = DatabaseStorage()
        message = make_message(verified=False, verification_token='f' * 64)
        storage.save(message)

        assert storage.find_by_verification_token('f' * 64).pk == message.pk
        assert storage.find_by_verification_token('0' * 64) is None
        assert storage.find_by_verification_token(None) is None
        assert storage.find_by_verification_token('') is None

    def test_find_missing_or_malformed_id(self):
        storage = DatabaseStorage()

        assert storage.find_by_id(12345) is None
        assert storage.find_by_id('not-an-id') is None

    def test_database_errors_are_wrapped(self):
        with patch.object(ContactMessage, 'save', side_effect=DatabaseError('connection lost')):
            with pytest.raises(StorageError):
                DatabaseStorage().save(make_message())

    def test_is_available(self):
        assert DatabaseStorage().is_available() is True


class TestNullStorage:

    def test_keeps_nothing(self):
        storage = NullStorage()
        message = make_message()

        storage.save(message)

        assert message.pk is None
        assert storage.find_by_id(1) is None
        assert storage.find_by_verification_token('a' * 64) is None
        assert storage.is_available() is False


class TestGetStorage:

    @pytest.mark.parametrize('mode, expected', [
        ('email', NullStorage),
        ('database', DatabaseStorage),
        ('both', DatabaseStorage),
    ])
    def test_selected_by_mode(self, contact_us, mode, expected):
        contact_us(storage=mode)

        assert type(get_storage(contact_settings())) is expected

    def test_custom_storage_class(self, contact_us):
        contact_us(storage='both', storage_class='tests.integration.test_contact_storage.InMemoryStorage')

        assert isinstance(get_storage(contact_settings()), InMemoryStorage)


@pytest.mark.django_db
class TestPayload:
    """Messages cross the Celery boundary as JSON-safe payloads."""

    def test_payload_round_trip(self):
        message = make_message()
        DatabaseStorage().save(message)

        rebuilt = ContactMessage.from_payload(message.to_payload())

        assert rebuilt.pk == message.pk
        assert rebuilt.data == message.data
        assert rebuilt.created_at == message.created_at
        assert rebuilt.sender_email == 'john@example.com'
