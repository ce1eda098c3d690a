"""
Domain exceptions raised by the service layer.
HTTP status mapping lives in app.main (exception handlers).
"""
from decimal import Decimal


class CreditValidationError(ValueError):
    """Malformed input rejected before any ledger call (HTTP 400)."""


class InsufficientCredits(Exception):
    """Balance too low for the requested consumption (HTTP 402)."""

    def __init__(self, ledger: str, required: Decimal, available: Decimal):
        self.ledger = ledger
        self.required = required
        self.available = available
        self.shortfall = max(Decimal("0"), required - available)
        super().__init__(
            f"Insufficient {ledger} credits. Required: {required}, available: {available}"
        )


class StoreUnavailable(Exception):
    """Persistence layer failed (HTTP 503)."""


class PlanRequired(Exception):
    """Subscription plan does not include the feature (HTTP 403)."""

    def __init__(self, feature: str, plan: str):
        self.feature = feature
        self.plan = plan
        super().__init__(f"Plan '{plan}' does not include {feature}")


class ContentNotFound(LookupError):
    """Content item missing or owned by someone else (HTTP 404)."""


class AutoCommentsAlreadyActive(Exception):
    """Auto-comments already enabled for the content item (HTTP 409)."""


class InvalidTransition(Exception):
    """Auto-comment status change not allowed from the current state (HTTP 409)."""


class DailyLimitReached(Exception):
    """Daily per-platform automation cap reached (HTTP 429)."""

    def __init__(self, platform: str, count: int, limit: int):
        self.platform = platform
        self.count = count
        self.limit = limit
        super().__init__(f"Daily auto-comment limit reached on {platform} ({count}/{limit})")


class ContentAccessDenied(PermissionError):
    """Content item belongs to another user (HTTP 403)."""


class GenerationError(Exception):
    """AI completion failed or could not be parsed (HTTP 502)."""
