"""
Pre-submission Hooks

Callables run on a built message before it is stored or sent. A hook
returns ``HookDecision.ABORT`` (or ``False``) to stop processing; any
other result lets the submission continue.

Hooks are registered by dotted path in ``CONTACT_US['pre_submission_hooks']``
or passed to the submission service directly.
"""
import logging
from enum import Enum

from django.utils.module_loading import import_string

from contact.exceptions import ProcessingPrevented

logger = logging.getLogger(__name__)


class HookDecision(str, Enum):
    CONTINUE = 'continue'
    ABORT = 'abort'


def load_hooks(paths):
    """Resolve dotted paths (or callables) to hook callables."""
    return [import_string(path) if isinstance(path, str) else path for path in paths or ()]


def hook_name(hook):
    return getattr(hook, '__qualname__', None) or getattr(hook, '__name__', None) or repr(hook)


def run_pre_submission_hooks(hooks, message):
    """
    Run hooks in order.

    Raises:
        ProcessingPrevented: when a hook aborts; later hooks do not run
    """
    for hook in hooks:
        decision = hook(message)
        if decision is False or decision == HookDecision.ABORT:
            name = hook_name(hook)
            logger.info(f"Contact submission prevented by hook {name}")
            raise ProcessingPrevented(hook=name)
