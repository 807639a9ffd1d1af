"""
Spam Protection Validators

Stateless checks run before anything is stored or sent:
- honeypot: a hidden field humans leave empty
- timing: forms submitted faster than a human could fill them
"""
import math
import time


class HoneypotValidator:
    """
    Rejects submissions whose hidden honeypot field has been filled in.

    Usage:
        validator = HoneypotValidator('email_confirm')
        if not validator.validate(request.data):
            ...
    """

    def __init__(self, field_name='email_confirm'):
        self.field_name = field_name

    def validate(self, fields) -> bool:
        """Return True when the honeypot is absent, empty or whitespace only."""
        if self.field_name not in fields:
            return True

        value = fields.get(self.field_name)
        if value is None:
            return True
        return str(value).strip() == ''


class TimingValidator:
    """
    Rejects submissions sent too soon after the form was loaded.

    The form carries the load time (Unix seconds) in a hidden field, issued
    by :meth:`issue_token`.
    """

    def __init__(self, min_submit_time=3, field_name='_form_token_time'):
        self.min_submit_time = min_submit_time
        self.field_name = field_name

    def issue_token(self, now=None) -> str:
        """Value to render into the hidden timing field."""
        return str(int(time.time() if now is None else now))

    def validate(self, fields, now=None) -> bool:
        if self.field_name not in fields:
            return True

        value = fields.get(self.field_name)
        if value is None or str(value).strip() == '':
            return False

        try:
            loaded_at = float(value)
            if not math.isfinite(loaded_at):
                return False
            loaded_at = int(loaded_at)
        except (TypeError, ValueError, OverflowError):
            return False

        now = time.time() if now is None else now
        return now - loaded_at >= self.min_submit_time
