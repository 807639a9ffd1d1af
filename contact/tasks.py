"""
Contact Management Email Tasks

Celery tasks for sending contact-related emails.
"""
import logging

from celery import shared_task

from .exceptions import MailTransportError
from .models import ContactMessage
from .services.mailer import get_mailer

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def send_contact_auto_reply(self, payload):
    """
    Send auto-reply email to contact form submitter.

    Args:
        payload: ContactMessage.to_payload() output
    """
    message = ContactMessage.from_payload(payload)

    try:
        sent = get_mailer().send_auto_reply(message)
    except MailTransportError as exc:
        logger.warning(f"Auto-reply for contact message {message.pk} failed, retrying: {exc}")
        raise self.retry(exc=exc, countdown=60)

    if not sent:
        return f"Auto-reply skipped for contact message {message.pk}"
    return f"Auto-reply sent to {message.sender_email}"
