"""
Contact Submission Errors

Every failure the submission pipeline and the verification flow can raise.
Views translate these into responses; none of them carry details that are
safe to show to the submitter verbatim.
"""


class ContactError(Exception):
    """Base class for contact form failures."""
    pass


class SpamDetected(ContactError):
    """Raised when the honeypot, timing or captcha check fails."""

    def __init__(self, check, message='Spam detected'):
        super().__init__(f"{message}: {check} check failed")
        self.check = check


class RateLimited(ContactError):
    """Raised when the submitter exhausted their quota for the current window."""

    def __init__(self, retry_after=None):
        when = retry_after.isoformat() if retry_after else 'a while'
        super().__init__(f"Rate limit exceeded. Please try again after {when}")
        self.retry_after = retry_after


class ProcessingPrevented(ContactError):
    """Raised when a pre-submission hook aborted processing."""

    def __init__(self, hook=None):
        super().__init__(f"Message processing was prevented by {hook or 'a hook'}")
        self.hook = hook


class StorageError(ContactError):
    """Raised when the storage backend fails to persist or load a message."""
    pass


class MailTransportError(ContactError):
    """Raised when an email could not be handed to the mail transport."""
    pass


class MissingSenderEmail(MailTransportError):
    """Raised when a message has no sender address to send to."""
    pass


class VerificationError(ContactError):
    """Base class for email verification failures."""
    pass


class InvalidToken(VerificationError):
    """Raised when no pending message matches a verification token."""
    pass


class AlreadyVerified(InvalidToken):
    """Raised when a verification link is used a second time."""
    pass


class TokenExpired(VerificationError):
    """Raised when a verification link is used after its TTL."""

    def __init__(self, expired_at=None):
        super().__init__('Verification token has expired')
        self.expired_at = expired_at
