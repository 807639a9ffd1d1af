"""
Contact Management Models

Database schema for contact form submissions.
"""
from django.db import models
from django.utils import timezone
from django.utils.dateparse import parse_datetime


class ContactMessage(models.Model):
    """
    A contact form submission.

    The form fields live in ``data`` so the stored shape follows the
    configured field schema. Instances are also used unsaved when the app
    runs in email-only mode.
    """

    created_at = models.DateTimeField(
        default=timezone.now,
        editable=False,
        db_index=True,
        help_text="When the message was submitted"
    )

    data = models.JSONField(
        default=dict,
        help_text="Submitted form fields (name, email, subject, message, custom fields)"
    )

    # Security and Tracking
    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="IP address of the submitter (for spam prevention)"
    )

    user_agent = models.TextField(
        null=True,
        blank=True,
        help_text="Browser user agent (for spam prevention)"
    )

    # Email verification
    verified = models.BooleanField(
        default=True,
        help_text="False while the sender has not confirmed their email address"
    )

    verification_token = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        unique=True,
        help_text="Single-use token sent to the sender for confirmation"
    )

    verified_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the sender confirmed their email address"
    )

    class Meta:
        db_table = 'contact_messages'
        ordering = ['-created_at']
        verbose_name = 'Contact Message'
        verbose_name_plural = 'Contact Messages'
        indexes = [
            models.Index(fields=['verified', 'created_at'], name='contact_verified_created_idx'),
        ]

    def __str__(self):
        sender = self.sender_name or self.sender_email or 'anonymous'
        return f"{sender} - {self.subject or 'no subject'} ({self.created_at:%Y-%m-%d %H:%M})"

    def get(self, name, default=None):
        """Return a submitted field value."""
        return (self.data or {}).get(name, default)

    @property
    def sender_email(self):
        return self.get('email') or None

    @property
    def sender_name(self):
        return self.get('name') or None

    @property
    def subject(self):
        return self.get('subject') or None

    @property
    def is_pending(self):
        return not self.verified

    def mark_verified(self, when=None):
        """Flag the message as confirmed by its sender."""
        self.verified = True
        self.verified_at = when or timezone.now()

    def to_payload(self):
        """JSON-safe representation for handing a message to a Celery task."""
        return {
            'id': self.pk,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'data': dict(self.data or {}),
            'ip_address': self.ip_address,
            'user_agent': self.user_agent,
            'verified': self.verified,
            'verification_token': self.verification_token,
            'verified_at': self.verified_at.isoformat() if self.verified_at else None,
        }

    @classmethod
    def from_payload(cls, payload):
        """Rebuild an (unsaved) message from :meth:`to_payload` output."""
        created_at = payload.get('created_at')
        verified_at = payload.get('verified_at')
        return cls(
            id=payload.get('id'),
            created_at=parse_datetime(created_at) if created_at else timezone.now(),
            data=payload.get('data') or {},
            ip_address=payload.get('ip_address'),
            user_agent=payload.get('user_agent'),
            verified=payload.get('verified', True),
            verification_token=payload.get('verification_token'),
            verified_at=parse_datetime(verified_at) if verified_at else None,
        )
