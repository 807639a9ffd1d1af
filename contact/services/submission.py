"""
Contact Submission Service

The submission pipeline. Checks run in a fixed order and stop at the first
failure:

1. honeypot
2. timing
3. rate limit
4. captcha (only when the configured validator is enabled)
5. pre-submission hooks

Accepted messages then follow one of two branches:
- verification: stored as pending and a confirmation link is emailed to
  the sender; the admin notification waits for :meth:`verify`
- standard: stored and/or emailed to the admins depending on the
  storage mode
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.utils import timezone

from contact import signals
from contact.conf import contact_settings
from contact.exceptions import (
    AlreadyVerified,
    InvalidToken,
    MailTransportError,
    MissingSenderEmail,
    RateLimited,
    SpamDetected,
    TokenExpired,
)
from contact.fields import build_field_schema, extract_message_data
from contact.models import ContactMessage
from contact.rate_limiting import get_rate_limiter
from contact.services.captcha import get_captcha_validator
from contact.services.hooks import load_hooks, run_pre_submission_hooks
from contact.services.mailer import get_mailer
from contact.services.spam_protection import HoneypotValidator, TimingValidator
from contact.services.storage import get_storage
from contact.tasks import send_contact_auto_reply

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


@dataclass
class RequestMetadata:
    """Client details captured from the request."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    session_key: Optional[str] = None


class ContactSubmissionService:
    """
    Runs contact submissions and email verification.

    Collaborators default to the ones configured in ``CONTACT_US`` and can
    be passed in explicitly (tests do).
    """

    def __init__(self, config=None, storage=None, mailer=None, rate_limiter=None,
                 captcha=None, hooks=None, clock=timezone.now):
        self.config = config or contact_settings()
        self.clock = clock
        self.storage = storage if storage is not None else get_storage(self.config)
        self.mailer = mailer if mailer is not None else get_mailer(self.config)
        self.rate_limiter = rate_limiter if rate_limiter is not None else get_rate_limiter(
            self.config, clock=lambda: self.clock().timestamp()
        )
        self.captcha = captcha if captcha is not None else get_captcha_validator(self.config)
        self.hooks = load_hooks(self.config.pre_submission_hooks) if hooks is None else list(hooks)
        self.honeypot = HoneypotValidator(self.config.honeypot_field)
        self.timing = TimingValidator(self.config.min_submit_time, self.config.timing_field)
        self.schema = build_field_schema(self.config.fields)

    def is_email_verification_enabled(self) -> bool:
        return self.config.email_verification_active

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    def process(self, fields, metadata=None) -> ContactMessage:
        """
        Run a submission through the pipeline.

        Args:
            fields: Submitted form fields, infrastructure fields included
            metadata: RequestMetadata for the submitting client

        Returns:
            ContactMessage: the accepted message (unsaved in email-only mode)

        Raises:
            SpamDetected, RateLimited, ProcessingPrevented, StorageError,
            MailTransportError
        """
        metadata = metadata or RequestMetadata()
        now = self.clock()

        self._check_spam(fields, metadata, now)

        message = self.build_message(fields, metadata, now)
        run_pre_submission_hooks(self.hooks, message)
        signals.message_submitted.send(sender=self.__class__, message=message)

        if self.is_email_verification_enabled():
            return self._process_with_verification(message)
        return self._process_standard(message)

    def _check_spam(self, fields, metadata, now):
        if not self.honeypot.validate(fields):
            logger.info(f"Contact submission rejected by honeypot from {metadata.ip_address}")
            raise SpamDetected('honeypot')

        if not self.timing.validate(fields, now=now.timestamp()):
            logger.info(f"Contact submission rejected by timing check from {metadata.ip_address}")
            raise SpamDetected('timing')

        identity = self.rate_limiter.get_identifier(metadata.ip_address, metadata.session_key)
        if not self.rate_limiter.is_allowed(identity):
            logger.info(f"Contact submission rate limited for {metadata.ip_address}")
            raise RateLimited(retry_after=self.rate_limiter.retry_after(identity))

        if self.captcha.is_enabled():
            response_token = fields.get(self.config.captcha.response_field)
            if not self.captcha.validate(response_token, remote_ip=metadata.ip_address):
                logger.info(
                    f"Contact submission rejected by {self.captcha.provider_name()} captcha "
                    f"from {metadata.ip_address}"
                )
                raise SpamDetected('captcha')

    def build_message(self, fields, metadata, now) -> ContactMessage:
        """Build an unsaved message from the non-infrastructure fields."""
        return ContactMessage(
            created_at=now,
            data=extract_message_data(self.schema, fields, exclude=self.config.infrastructure_fields),
            ip_address=metadata.ip_address,
            user_agent=metadata.user_agent,
            verified=True,
        )

    def _process_with_verification(self, message):
        # a pending message nobody can confirm is never stored
        if not message.sender_email:
            raise MissingSenderEmail('Email verification needs a sender email address')

        token = secrets.token_hex(TOKEN_BYTES)
        message.verification_token = token
        message.verified = False

        self.storage.save(message)
        signals.message_persisted.send(sender=self.__class__, message=message)

        self.mailer.send_verification_email(message, token)
        logger.info(f"Contact message {message.pk} awaiting email verification")
        return message

    def _process_standard(self, message):
        message.verified = True

        if self.config.storage.persists:
            self.storage.save(message)
            signals.message_persisted.send(sender=self.__class__, message=message)

        if self.config.storage.emails:
            self._notify(message)
            self._enqueue_auto_reply(message)

        return message

    def _notify(self, message):
        recipients = self.mailer.send(message)
        signals.email_sent.send(sender=self.__class__, message=message, recipients=recipients)

    def _enqueue_auto_reply(self, message):
        if not self.config.mailer.enable_auto_reply or not message.sender_email:
            return

        try:
            send_contact_auto_reply.delay(message.to_payload())
        except Exception:
            logger.exception(f"Could not queue auto-reply for contact message {message.pk}")

    # =========================================================================
    # VERIFICATION
    # =========================================================================

    def verify(self, token) -> ContactMessage:
        """
        Confirm a pending message and send its admin notification.

        Raises:
            InvalidToken: no message carries this token
            AlreadyVerified: the message was confirmed before
            TokenExpired: the token outlived its TTL
        """
        message = self.storage.find_by_verification_token(token)
        if message is None:
            raise InvalidToken('Invalid verification token')

        if message.verified:
            raise AlreadyVerified('This message has already been verified')

        now = self.clock()
        expires_at = message.created_at + timedelta(seconds=self.config.email_verification.token_ttl)
        if now > expires_at:
            logger.info(f"Verification token for contact message {message.pk} expired at {expires_at}")
            raise TokenExpired(expired_at=expires_at)

        message.mark_verified(now)
        self.storage.save(message)

        try:
            self._notify(message)
        except MailTransportError:
            logger.error(
                f"Contact message {message.pk} was verified but its admin notification "
                f"was not sent; it has to be forwarded manually"
            )
            raise

        self._enqueue_auto_reply(message)
        signals.message_verified.send(sender=self.__class__, message=message)
        return message


def get_submission_service(**kwargs) -> ContactSubmissionService:
    """Service wired from ``CONTACT_US``."""
    return ContactSubmissionService(**kwargs)
