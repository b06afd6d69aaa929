"""Structured logging configuration for the application."""

from datetime import UTC, datetime
import json
import logging
import sys

from civicpoll.core.config import settings


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_data = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging() -> None:
    """Configure application logging based on environment."""
    log_level = logging.INFO
    if settings.ENVIRONMENT == "development":
        log_level = logging.DEBUG
    elif settings.ENVIRONMENT == "production":
        log_level = logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if settings.ENVIRONMENT == "production":
        formatter = JSONFormatter()
    else:
        formatter = StandardFormatter()

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Set specific log levels for noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)


class SecurityLogger:
    """Specialized logger for security events."""

    def __init__(self) -> None:
        self.logger = get_logger("security")

    def log_login_attempt(
        self,
        phone_or_email: str,
        success: bool,
        ip_address: str | None = None,
        user_agent: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Log a login attempt."""
        extra_fields = {
            "event_type": "login_attempt",
            "login": phone_or_email,
            "success": success,
            "ip_address": ip_address,
            "user_agent": user_agent,
        }

        if not success and reason:
            extra_fields["failure_reason"] = reason

        message = f"Login {'succeeded' if success else 'failed'} for: {phone_or_email}"

        if success:
            self.logger.info(message, extra={"extra_fields": extra_fields})
        else:
            self.logger.warning(message, extra={"extra_fields": extra_fields})

    def log_token_creation(self, user_id: str, role: str) -> None:
        """Log token creation."""
        self.logger.info(
            f"Token created for user: {user_id}",
            extra={
                "extra_fields": {
                    "event_type": "token_created",
                    "user_id": user_id,
                    "role": role,
                }
            },
        )

    def log_user_registration(
        self, phone_number: str, role: str, ip_address: str | None = None
    ) -> None:
        """Log new user registration."""
        self.logger.info(
            f"New user registered: {phone_number}",
            extra={
                "extra_fields": {
                    "event_type": "user_registration",
                    "phone_number": phone_number,
                    "role": role,
                    "ip_address": ip_address,
                }
            },
        )

    def log_unauthorized_access(
        self,
        resource: str,
        user_id: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Log unauthorized access attempt."""
        self.logger.warning(
            f"Unauthorized access attempt to: {resource}",
            extra={
                "extra_fields": {
                    "event_type": "unauthorized_access",
                    "resource": resource,
                    "user_id": user_id,
                    "reason": reason,
                }
            },
        )

    def log_rate_limited(self, limiter: str, identifier: str) -> None:
        """Log a request rejected by a rate limiter."""
        self.logger.warning(
            f"Rate limit hit on {limiter}: {identifier}",
            extra={
                "extra_fields": {
                    "event_type": "rate_limited",
                    "limiter": limiter,
                    "identifier": identifier,
                }
            },
        )

    def log_vote_rejected(self, user_id: str, poll_id: str, reason: str) -> None:
        """Log a rejected vote attempt."""
        self.logger.warning(
            f"Vote rejected for user {user_id} on poll {poll_id}: {reason}",
            extra={
                "extra_fields": {
                    "event_type": "vote_rejected",
                    "user_id": user_id,
                    "poll_id": poll_id,
                    "reason": reason,
                }
            },
        )

    def log_logout(self, user_id: str) -> None:
        """Log user logout."""
        self.logger.info(
            f"User logged out: {user_id}",
            extra={"extra_fields": {"event_type": "logout", "user_id": user_id}},
        )


# Global security logger instance
security_logger = SecurityLogger()
