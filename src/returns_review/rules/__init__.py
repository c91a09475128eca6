"""Return risk rules, evaluated in priority order."""

from returns_review.rules.base import BaseRule, RuleContext, RuleResult
from returns_review.rules.multiple_returns import MultipleReturnsRule
from returns_review.rules.return_ratio import ReturnRatioRule


def get_all_rules(config: dict) -> list[BaseRule]:
    """Return rule instances in priority order (ratio reason before multi-return reason)."""
    risk_cfg = config.get("risk", {})
    return [ReturnRatioRule(risk_cfg), MultipleReturnsRule(risk_cfg)]


__all__ = [
    "BaseRule",
    "RuleResult",
    "RuleContext",
    "get_all_rules",
    "ReturnRatioRule",
    "MultipleReturnsRule",
]
