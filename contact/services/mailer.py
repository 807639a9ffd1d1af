"""
Contact Mailer

Sends the emails of the contact flow through ``django.core.mail``:
- admin notification for every accepted message
- verification link to the sender when email verification is on
- optional auto-reply to the sender

Bodies are rendered from ``contact/emails/<name>.txt`` and ``.html``.
"""
import logging
import re
from email.utils import formataddr
from smtplib import SMTPException

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.mail import BadHeaderError, EmailMultiAlternatives
from django.template.loader import render_to_string
from django.urls import reverse
from django.utils.translation import gettext as _

from contact.conf import contact_settings
from contact.exceptions import MailTransportError, MissingSenderEmail

logger = logging.getLogger(__name__)

FALLBACK_FROM_EMAIL = 'noreply@example.com'

_LINE_BREAKS = re.compile(r'[\r\n]+')


def header_safe(value):
    """Collapse line breaks so user input can be used in a mail header."""
    return _LINE_BREAKS.sub(' ', value or '').strip()


class ContactMailer:
    """
    Renders and sends contact emails.

    Usage:
        mailer = get_mailer()
        recipients = mailer.send(message)
    """

    def __init__(self, recipients=(), subject_prefix='[Contact Form]', from_email=None,
                 from_name='Contact Form', send_copy_to_sender=False,
                 enable_auto_reply=False, site_url='http://localhost:8000'):
        self.recipients = list(recipients or [])
        self.subject_prefix = subject_prefix or ''
        self.from_email = from_email
        self.from_name = from_name
        self.send_copy_to_sender = send_copy_to_sender
        self.enable_auto_reply = enable_auto_reply
        self.site_url = (site_url or '').rstrip('/')

    # -- addressing ---------------------------------------------------------

    def get_recipients(self):
        """Configured recipients, falling back to ``settings.MANAGERS``."""
        if self.recipients:
            return list(self.recipients)

        managers = [
            manager[1] if isinstance(manager, (list, tuple)) else manager
            for manager in getattr(settings, 'MANAGERS', [])
        ]
        managers = [address for address in managers if address]
        if not managers:
            raise ImproperlyConfigured(
                "No contact recipients configured. Set CONTACT_US['recipients'] or MANAGERS."
            )
        return managers

    def get_from_email(self, message=None):
        """
        Resolve the From address.

        Order: configured ``from_email``, the sender's address (admin
        notification only, pass ``message``), ``DEFAULT_FROM_EMAIL``, then a
        placeholder.
        """
        address = self.from_email
        if not address and message is not None:
            address = message.sender_email
        if not address:
            address = getattr(settings, 'DEFAULT_FROM_EMAIL', None) or FALLBACK_FROM_EMAIL

        if self.from_name and '<' not in address:
            return formataddr((self.from_name, address))
        return address

    def _sender_address(self, message):
        name = header_safe(message.sender_name)
        if name:
            return formataddr((name, message.sender_email))
        return message.sender_email

    def build_subject(self, message):
        subject = header_safe(message.subject)
        if not subject:
            name = header_safe(message.sender_name)
            subject = _('from %(name)s') % {'name': name} if name else _('New message')
        return f"{self.subject_prefix} {subject}".strip()

    def verification_url(self, token):
        return f"{self.site_url}{reverse('contact:verify', args=[token])}"

    # -- sending ------------------------------------------------------------

    def _context(self, message, **extra):
        context = {
            'message': message,
            'fields': message.data,
            'sender_name': message.sender_name,
            'sender_email': message.sender_email,
            'subject': message.subject,
            'site_url': self.site_url,
            'from_name': self.from_name,
        }
        context.update(extra)
        return context

    def _deliver(self, template, subject, to, context, from_email, reply_to=None, cc=None):
        text_content = render_to_string(f'contact/emails/{template}.txt', context)
        html_content = render_to_string(f'contact/emails/{template}.html', context)

        email = EmailMultiAlternatives(
            subject=subject,
            body=text_content,
            from_email=from_email,
            to=to,
            cc=cc or None,
            reply_to=reply_to or None,
        )
        email.attach_alternative(html_content, "text/html")

        try:
            email.send(fail_silently=False)
        except (SMTPException, OSError, BadHeaderError) as exc:
            logger.error(f"Failed to send {template} email to {to}: {exc}")
            raise MailTransportError(f"Failed to send {template} email: {exc}") from exc

    def send(self, message):
        """
        Send the admin notification for a message.

        Returns:
            list: the addresses the notification was sent to
        """
        recipients = self.get_recipients()

        reply_to = [self._sender_address(message)] if message.sender_email else None
        cc = None
        if self.send_copy_to_sender and message.sender_email and message.verification_token is None:
            cc = [message.sender_email]

        self._deliver(
            'notification',
            self.build_subject(message),
            recipients,
            self._context(message),
            from_email=self.get_from_email(message),
            reply_to=reply_to,
            cc=cc,
        )
        logger.info(f"Contact notification sent to {', '.join(recipients)}")
        return recipients

    def send_verification_email(self, message, token):
        """Send the confirmation link to the sender."""
        if not message.sender_email:
            raise MissingSenderEmail('Cannot send verification email without a sender email address')

        self._deliver(
            'verification',
            f"{self.subject_prefix} {_('Please confirm your message')}".strip(),
            [message.sender_email],
            self._context(message, verification_url=self.verification_url(token)),
            from_email=self.get_from_email(),
        )
        logger.info(f"Verification email sent for contact message {message.pk}")

    def send_auto_reply(self, message) -> bool:
        """Send the auto-reply when enabled; returns True when an email went out."""
        if not self.enable_auto_reply or not message.sender_email:
            return False

        self._deliver(
            'auto_reply',
            f"{self.subject_prefix} {_('We have received your message')}".strip(),
            [message.sender_email],
            self._context(message),
            from_email=self.get_from_email(),
        )
        logger.info(f"Auto-reply sent for contact message {message.pk}")
        return True


def get_mailer(config=None) -> ContactMailer:
    """Build the mailer from ``CONTACT_US``."""
    config = config or contact_settings()
    return ContactMailer(
        recipients=config.recipients,
        subject_prefix=config.mailer.subject_prefix,
        from_email=config.mailer.from_email,
        from_name=config.mailer.from_name,
        send_copy_to_sender=config.mailer.send_copy_to_sender,
        enable_auto_reply=config.mailer.enable_auto_reply,
        site_url=config.site_url,
    )
