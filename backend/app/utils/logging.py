"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- user_id
- ledger
- content_id
- duration_ms

Usage:
    from app.utils.logging import configure_logging, log_credits_consumed

    configure_logging('tipote-api', 'INFO')
    log_credits_consumed(logger, ledger='ai', user_id='123', amount=Decimal('0.5'), remaining=Decimal('3'))
"""
import logging
import sys
from decimal import Decimal
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (tipote-api)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Console handler (for docker logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _credits(value: Optional[Decimal]) -> Optional[float]:
    # JSON formatter cannot serialize Decimal
    return float(value) if value is not None else None


def _build_log_extra(
    event: str,
    user_id: Optional[str] = None,
    ledger: Optional[str] = None,
    content_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        user_id: Optional user ID
        ledger: Optional ledger name ("ai" or "automation")
        content_id: Optional content item ID
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **{k: v for k, v in kwargs.items() if v is not None}
    }

    if user_id:
        extra["user_id"] = user_id
    if ledger:
        extra["ledger"] = ledger
    if content_id:
        extra["content_id"] = content_id
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Ledger event functions

def log_credits_consumed(
    logger: logging.Logger,
    ledger: str,
    user_id: str,
    amount: Decimal,
    remaining: Decimal,
    feature: Optional[str] = None,
    **kwargs
):
    """Log a successful credit consumption."""
    extra = _build_log_extra(
        event="credits_consumed",
        user_id=user_id,
        ledger=ledger,
        amount=_credits(amount),
        credits_remaining=_credits(remaining),
        feature=feature,
        **kwargs
    )
    logger.info(f"Consumed {amount} {ledger} credits for user {user_id}", extra=extra)


def log_insufficient_credits(
    logger: logging.Logger,
    ledger: str,
    user_id: str,
    required: Decimal,
    available: Decimal,
    feature: Optional[str] = None,
    **kwargs
):
    """Log a consumption rejected for lack of credits."""
    extra = _build_log_extra(
        event="credits_insufficient",
        user_id=user_id,
        ledger=ledger,
        required=_credits(required),
        available=_credits(available),
        feature=feature,
        **kwargs
    )
    logger.info(f"Insufficient {ledger} credits for user {user_id}", extra=extra)


def log_credits_granted(
    logger: logging.Logger,
    ledger: str,
    user_id: str,
    amount: Decimal,
    actor_id: Optional[str] = None,
    total: Optional[Decimal] = None,
    **kwargs
):
    """Log an administrative grant."""
    extra = _build_log_extra(
        event="credits_granted",
        user_id=user_id,
        ledger=ledger,
        amount=_credits(amount),
        credits_total=_credits(total),
        actor_id=actor_id,
        **kwargs
    )
    logger.info(f"Granted {amount} {ledger} credits to user {user_id}", extra=extra)


def log_audit_write_failed(
    logger: logging.Logger,
    ledger: str,
    action: str,
    user_id: str,
    error: str,
    **kwargs
):
    """Log a dropped change-log write. Never includes a traceback."""
    extra = _build_log_extra(
        event="audit_write_failed",
        user_id=user_id,
        ledger=ledger,
        action=action,
        error=error,
        **kwargs
    )
    logger.warning(f"Audit write dropped: {ledger}.{action} for user {user_id} - {error}", extra=extra)


# Automation event functions

def log_automation_activated(
    logger: logging.Logger,
    user_id: str,
    content_id: str,
    nb_before: int,
    nb_after: int,
    credits_consumed: Decimal,
    status: str,
    **kwargs
):
    """Log an auto-comment activation."""
    extra = _build_log_extra(
        event="automation_activated",
        user_id=user_id,
        ledger="automation",
        content_id=content_id,
        nb_before=nb_before,
        nb_after=nb_after,
        credits_consumed=_credits(credits_consumed),
        status=status,
        **kwargs
    )
    logger.info(f"Auto-comments activated: {content_id}", extra=extra)


def log_automation_transition(
    logger: logging.Logger,
    content_id: str,
    previous: Optional[str],
    status: str,
    **kwargs
):
    """Log an auto-comment status change."""
    extra = _build_log_extra(
        event="automation_transition",
        content_id=content_id,
        previous_status=previous,
        status=status,
        **kwargs
    )
    logger.info(f"Auto-comments {content_id}: {previous} -> {status}", extra=extra)


# Provider event functions

def log_provider_failure(
    logger: logging.Logger,
    provider: str,
    operation: str,
    error: str,
    duration_ms: Optional[float] = None,
    user_id: Optional[str] = None,
    include_traceback: bool = False,
    **kwargs
):
    """
    Log AI provider failure event.

    Args:
        logger: Logger instance
        provider: Provider name (required)
        operation: Operation name (required)
        error: Error message (required)
        duration_ms: Optional duration in milliseconds
        user_id: Optional user ID
        include_traceback: Whether to include stack trace (default: False for provider failures)
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="provider_failure",
        user_id=user_id,
        duration_ms=duration_ms,
        provider=provider,
        operation=operation,
        error=str(error),
        **kwargs
    )

    message = f"Provider failure: {provider}.{operation} - {error}"

    if include_traceback:
        exc_info = sys.exc_info()
        if exc_info[0] is not None:
            logger.error(message, extra=extra, exc_info=exc_info)
        else:
            logger.error(message, extra=extra)
    else:
        logger.error(message, extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
