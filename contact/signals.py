"""
Contact Management Signals

Django signals for contact-related events. Receivers run synchronously in
the request that triggered them.

- message_submitted: a message passed spam checks and hooks
- message_persisted: a message was saved to storage
- email_sent: the admin notification went out (``recipients=``)
- message_verified: a sender confirmed their message
- message_deleted: staff deleted a stored message
"""
import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

message_submitted = Signal()
message_persisted = Signal()
email_sent = Signal()
message_verified = Signal()
message_deleted = Signal()


@receiver(message_persisted)
def log_message_persisted(sender, message, **kwargs):
    """Log stored contact messages."""
    state = 'pending verification' if message.is_pending else 'verified'
    logger.info(f"Contact message {message.pk} stored ({state})")


@receiver(message_verified)
def log_message_verified(sender, message, **kwargs):
    logger.info(f"Contact message {message.pk} verified by sender")


@receiver(message_deleted)
def log_message_deleted(sender, message, user=None, **kwargs):
    logger.info(f"Contact message {message.pk} deleted by {user or 'system'}")
