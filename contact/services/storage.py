"""
Contact Message Storage

Backends that persist contact messages. ``get_storage()`` picks one from
the configured storage mode, or from ``CONTACT_US['storage_class']``.
"""
import logging

from django.db import DatabaseError
from django.utils.module_loading import import_string

from contact.conf import contact_settings
from contact.exceptions import StorageError
from contact.models import ContactMessage

logger = logging.getLogger(__name__)


class BaseStorage:
    """Interface every storage backend implements."""

    def save(self, message):
        """Insert the message, or update it when it already has an id."""
        raise NotImplementedError

    def find_by_id(self, message_id):
        raise NotImplementedError

    def find_by_verification_token(self, token):
        raise NotImplementedError

    def is_available(self) -> bool:
        raise NotImplementedError


class NullStorage(BaseStorage):
    """Storage for email-only mode: nothing is kept."""

    def save(self, message):
        return None

    def find_by_id(self, message_id):
        return None

    def find_by_verification_token(self, token):
        return None

    def is_available(self) -> bool:
        return False


class DatabaseStorage(BaseStorage):
    """Stores messages in the ``contact_messages`` table."""

    def save(self, message):
        try:
            message.save()
        except DatabaseError as exc:
            logger.error(f"Failed to save contact message {message.pk}: {exc}")
            raise StorageError(f"Failed to save contact message: {exc}") from exc
        return message

    def find_by_id(self, message_id):
        try:
            return ContactMessage.objects.filter(pk=message_id).first()
        except (ValueError, TypeError):
            return None
        except DatabaseError as exc:
            raise StorageError(f"Failed to load contact message {message_id}: {exc}") from exc

    def find_by_verification_token(self, token):
        if not token:
            return None
        try:
            return ContactMessage.objects.filter(verification_token=token).first()
        except DatabaseError as exc:
            raise StorageError(f"Failed to look up verification token: {exc}") from exc

    def is_available(self) -> bool:
        return True


def get_storage(config=None) -> BaseStorage:
    """Return the storage backend for the configured mode."""
    config = config or contact_settings()

    if config.storage_class:
        return import_string(config.storage_class)()
    if config.storage.persists:
        return DatabaseStorage()
    return NullStorage()
