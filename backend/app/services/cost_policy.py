"""
Feature cost policy.

Pure functions mapping a billable operation to its credit price.
No I/O and no side effects: callers consume the returned amount BEFORE
doing the billable work.
"""
from decimal import Decimal
from typing import Dict

from app.services.exceptions import CreditValidationError

# Fixed prices per operation (AI credits)
CONTENT_REFINE = "content_refine"
QUIZ_GENERATE = "quiz_generate"
STRATEGY_GENERATE = "strategy_generate"
PERSONA_ENRICH = "persona_enrich"
COMPETITOR_ANALYSIS = "competitor_analysis"
AUTO_COMMENTS = "auto_comments"

FIXED_COSTS: Dict[str, Decimal] = {
    CONTENT_REFINE: Decimal("0.5"),
    QUIZ_GENERATE: Decimal("4"),
    STRATEGY_GENERATE: Decimal("1"),
    PERSONA_ENRICH: Decimal("1"),
    COMPETITOR_ANALYSIS: Decimal("1"),
}

# Auto-comments (automation credits)
CREDIT_PER_COMMENT = Decimal("0.25")
MAX_COMMENTS_BEFORE = 5
MAX_COMMENTS_AFTER = 5


def _comment_count(name: str, value, maximum: int) -> int:
    # bool is an int subclass; True must not be read as one comment
    if isinstance(value, bool) or not isinstance(value, int):
        raise CreditValidationError(f"{name} must be an integer")
    if value < 0 or value > maximum:
        raise CreditValidationError(f"{name} must be between 0 and {maximum}")
    return value


def validate_auto_comment_counts(nb_before, nb_after) -> tuple[int, int]:
    """
    Validate requested before/after comment counts.

    Raises:
        CreditValidationError: non-integer, out of range, or both zero
    """
    before = _comment_count("nb_comments_before", nb_before, MAX_COMMENTS_BEFORE)
    after = _comment_count("nb_comments_after", nb_after, MAX_COMMENTS_AFTER)
    if before == 0 and after == 0:
        raise CreditValidationError("At least one comment before or after is required")
    return before, after


def auto_comments_cost(nb_before, nb_after) -> Decimal:
    """Cost of an auto-comment activation: (before + after) x 0.25."""
    before, after = validate_auto_comment_counts(nb_before, nb_after)
    return (before + after) * CREDIT_PER_COMMENT


def feature_cost(feature: str, **params) -> Decimal:
    """
    Resolve the credit cost of a feature.

    Args:
        feature: Operation name (see FIXED_COSTS and AUTO_COMMENTS)
        **params: Request parameters for parametric costs
            (nb_before / nb_after for auto_comments)

    Raises:
        CreditValidationError: Unknown feature or invalid parameters
    """
    if feature == AUTO_COMMENTS:
        return auto_comments_cost(params.get("nb_before", 0), params.get("nb_after", 0))
    try:
        return FIXED_COSTS[feature]
    except KeyError:
        raise CreditValidationError(f"Unknown billable feature: {feature}") from None
