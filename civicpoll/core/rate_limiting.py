"""Rate limiting for API endpoints to prevent abuse."""

from collections import defaultdict
from datetime import UTC, datetime, timedelta
import threading

from civicpoll.core.config import settings


class RateLimiter:
    """
    Simple in-memory sliding-window rate limiter.

    State is per process; several workers each keep their own counters.
    """

    def __init__(self, max_attempts: int, window_seconds: int) -> None:
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._attempts: dict[str, list[datetime]] = defaultdict(list)
        self._lock = threading.Lock()

    def is_rate_limited(self, identifier: str) -> tuple[bool, int | None]:
        """
        Check if an identifier is rate limited.

        Returns:
            Tuple of (is_limited, retry_after_seconds)
        """
        with self._lock:
            return self._check(identifier, datetime.now(UTC))

    def _check(self, identifier: str, now: datetime) -> tuple[bool, int | None]:
        # Caller holds self._lock
        cutoff = now - timedelta(seconds=self.window_seconds)

        self._attempts[identifier] = [
            timestamp for timestamp in self._attempts[identifier] if timestamp > cutoff
        ]

        if len(self._attempts[identifier]) >= self.max_attempts:
            oldest_attempt = min(self._attempts[identifier])
            retry_after = (
                oldest_attempt + timedelta(seconds=self.window_seconds) - now
            ).total_seconds()
            return True, int(max(1, retry_after))

        return False, None

    def record_attempt(self, identifier: str) -> None:
        """Record an attempt for the given identifier."""
        with self._lock:
            self._attempts[identifier].append(datetime.now(UTC))

    def hit(self, identifier: str) -> tuple[bool, int | None]:
        """Check and, when allowed, record under a single lock acquisition."""
        with self._lock:
            now = datetime.now(UTC)
            limited, retry_after = self._check(identifier, now)
            if not limited:
                self._attempts[identifier].append(now)
            return limited, retry_after

    def reset(self, identifier: str) -> None:
        """Reset rate limiting for an identifier (e.g., after successful login)."""
        with self._lock:
            self._attempts.pop(identifier, None)

    def clear(self) -> None:
        """Forget every identifier."""
        with self._lock:
            self._attempts.clear()

    def cleanup_old_entries(self) -> None:
        """Drop identifiers whose attempts have all left the window."""
        with self._lock:
            cutoff = datetime.now(UTC) - timedelta(seconds=self.window_seconds)
            for identifier in list(self._attempts):
                self._attempts[identifier] = [
                    timestamp for timestamp in self._attempts[identifier] if timestamp > cutoff
                ]
                if not self._attempts[identifier]:
                    del self._attempts[identifier]


class LoginRateLimiter:
    """Failed-login limiter keyed by login identifier and by client IP."""

    def __init__(self, max_attempts: int, window_seconds: int) -> None:
        self.identifier_limiter = RateLimiter(max_attempts, window_seconds)
        self.ip_limiter = RateLimiter(max_attempts * 2, window_seconds)

    def check_login_allowed(
        self, login: str, ip_address: str | None = None
    ) -> tuple[bool, str | None]:
        """
        Check if a login attempt is allowed.

        Returns:
            Tuple of (is_allowed, error_message)
        """
        limited, retry_after = self.identifier_limiter.is_rate_limited(login)
        if limited:
            return (
                False,
                f"Too many authentication attempts. Try again in {retry_after} seconds",
            )

        if ip_address:
            limited, retry_after = self.ip_limiter.is_rate_limited(ip_address)
            if limited:
                return (
                    False,
                    f"Too many requests from your IP. Try again in {retry_after} seconds",
                )

        return True, None

    def record_failed_attempt(self, login: str, ip_address: str | None = None) -> None:
        """Record a failed login attempt."""
        self.identifier_limiter.record_attempt(login)
        if ip_address:
            self.ip_limiter.record_attempt(ip_address)

    def record_successful_login(self, login: str, ip_address: str | None = None) -> None:
        """Reset rate limiting after successful login."""
        self.identifier_limiter.reset(login)
        if ip_address:
            self.ip_limiter.reset(ip_address)

    def clear(self) -> None:
        self.identifier_limiter.clear()
        self.ip_limiter.clear()


# Global rate limiter instances
api_rate_limiter = RateLimiter(
    settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS
)
login_rate_limiter = LoginRateLimiter(
    settings.AUTH_RATE_LIMIT_MAX_ATTEMPTS, settings.RATE_LIMIT_WINDOW_SECONDS
)
vote_rate_limiter = RateLimiter(1, settings.VOTE_RATE_LIMIT_SECONDS)
poll_creation_rate_limiter = RateLimiter(settings.POLL_CREATION_LIMIT_PER_HOUR, 3600)


def reset_all_limiters() -> None:
    """Clear every global limiter."""
    api_rate_limiter.clear()
    login_rate_limiter.clear()
    vote_rate_limiter.clear()
    poll_creation_rate_limiter.clear()


def prune_all_limiters() -> None:
    """Drop expired attempts from every global limiter."""
    for limiter in (
        api_rate_limiter,
        login_rate_limiter.identifier_limiter,
        login_rate_limiter.ip_limiter,
        vote_rate_limiter,
        poll_creation_rate_limiter,
    ):
        limiter.cleanup_old_entries()
