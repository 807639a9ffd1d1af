"""
Rate Limiting Utilities for Contact Form

Prevents spam and abuse of the contact form.

Counters live in the Django cache (LocMem in development, Redis in
production) using fixed windows: every ``interval`` seconds a fresh
counter key is used per client.
"""
import hashlib
import ipaddress
import logging
import math
import time
from datetime import datetime, timezone as dt_timezone

from django.core.cache import caches

from contact.conf import DEFAULT_RATE_LIMIT_INTERVAL, contact_settings, parse_interval

logger = logging.getLogger(__name__)


def get_client_ip(request, trust_forwarded_for=False):
    """
    Get client IP address from request.

    ``X-Forwarded-For`` is only read with ``trust_forwarded_for``. Values
    that are not an IP address give None.
    """
    ip = request.META.get('REMOTE_ADDR')
    if trust_forwarded_for:
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            ip = x_forwarded_for.split(',')[0].strip()

    try:
        return str(ipaddress.ip_address((ip or '').strip()))
    except ValueError:
        return None


class ContactRateLimiter:
    """
    Fixed-window limiter keyed by a hashed client identity.

    Usage:
        limiter = ContactRateLimiter(limit=3, interval='15 minutes')
        identity = limiter.get_identifier(ip, session_key)
        if not limiter.is_allowed(identity):
            retry_at = limiter.retry_after(identity)
    """

    KEY_PREFIX = 'contact_form'

    def __init__(self, limit=3, interval='15 minutes', cache_alias='default', clock=time.time):
        self.limit = int(limit)
        self.interval = max(1, parse_interval(interval, DEFAULT_RATE_LIMIT_INTERVAL))
        self.cache_alias = cache_alias
        self.clock = clock

    @property
    def enabled(self):
        return self.limit > 0

    @property
    def cache(self):
        return caches[self.cache_alias]

    def get_identifier(self, ip_address, session_key=None) -> str:
        """Combine IP and session into an opaque identity."""
        ip_hash = hashlib.sha256((ip_address or '').encode()).hexdigest()
        session_hash = hashlib.sha256((session_key or '').encode()).hexdigest()
        return f"{self.KEY_PREFIX}_{ip_hash}_{session_hash}"

    def _window(self):
        return math.floor(self.clock() / self.interval)

    def _key(self, identity, window):
        return f"{identity}:{window}"

    def _count(self, identity):
        return self.cache.get(self._key(identity, self._window()), 0)

    def is_allowed(self, identity) -> bool:
        """Consume one attempt and report whether it is within the quota."""
        if not self.enabled:
            return True

        key = self._key(identity, self._window())
        try:
            self.cache.add(key, 0, timeout=self.interval)
            try:
                count = self.cache.incr(key)
            except ValueError:
                # key expired between add and incr
                self.cache.set(key, 1, timeout=self.interval)
                count = 1
        except Exception as e:
            logger.warning(f"Rate limiter cache unavailable, allowing request: {e}")
            return True

        return count <= self.limit

    def retry_after(self, identity):
        """Start of the next window when the current one is used up, else None."""
        if not self.enabled:
            return None

        try:
            count = self._count(identity)
        except Exception as e:
            logger.warning(f"Rate limiter cache unavailable: {e}")
            return None

        if count < self.limit:
            return None

        next_window = (self._window() + 1) * self.interval
        return datetime.fromtimestamp(next_window, tz=dt_timezone.utc)

    def remaining_attempts(self, identity):
        """Attempts left in the current window; None when limiting is disabled."""
        if not self.enabled:
            return None

        try:
            count = self._count(identity)
        except Exception as e:
            logger.warning(f"Rate limiter cache unavailable: {e}")
            return self.limit

        return max(0, self.limit - count)


def get_rate_limiter(config=None, clock=time.time) -> ContactRateLimiter:
    """Build the limiter from ``CONTACT_US['rate_limit']``."""
    config = config or contact_settings()
    return ContactRateLimiter(
        limit=config.rate_limit.limit,
        interval=config.rate_limit.interval,
        cache_alias=config.rate_limit.cache_alias,
        clock=clock,
    )
