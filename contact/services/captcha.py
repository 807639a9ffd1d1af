"""
Captcha Validators

Captcha providers plug in by subclassing ``BaseCaptchaValidator`` and
naming the class in ``CONTACT_US['captcha']['validator']``. Options from
``CONTACT_US['captcha']['options']`` are passed as keyword arguments.
"""
import logging

from django.utils.module_loading import import_string

from contact.conf import contact_settings

logger = logging.getLogger(__name__)


class BaseCaptchaValidator:
    """Interface every captcha validator implements."""

    def __init__(self, **options):
        self.options = options

    def validate(self, response_token, remote_ip=None) -> bool:
        """
        Verify the response token produced by the captcha widget.

        Args:
            response_token: Token submitted with the form
            remote_ip: Optional client IP address for provider checks

        Returns:
            True if the token is valid, False otherwise
        """
        raise NotImplementedError('Captcha validators must implement validate()')

    def is_enabled(self) -> bool:
        raise NotImplementedError('Captcha validators must implement is_enabled()')

    def provider_name(self) -> str:
        raise NotImplementedError('Captcha validators must implement provider_name()')


class NullCaptchaValidator(BaseCaptchaValidator):
    """Default validator: captcha disabled, every token accepted."""

    def validate(self, response_token, remote_ip=None) -> bool:
        return True

    def is_enabled(self) -> bool:
        return False

    def provider_name(self) -> str:
        return 'none'


def get_captcha_validator(config=None) -> BaseCaptchaValidator:
    """Instantiate the configured captcha validator."""
    config = config or contact_settings()
    validator_class = import_string(config.captcha.validator)
    validator = validator_class(**config.captcha.options)
    logger.debug(f"Using captcha validator {validator.provider_name()}")
    return validator
