"""Risk rating for a return: worst severity among rule hits, reasons in rule order."""

from __future__ import annotations

from collections.abc import Sequence

from returns_review.rules.base import BaseRule, RuleContext
from returns_review.schemas import RiskAssessment, RuleResult

SEVERITY_ORDER = {"low": 0, "medium": 1, "high": 2}
NEUTRAL_REASON = "Within the acceptable range."


def max_severity(results: Sequence[RuleResult], floor: str = "low") -> str:
    """Highest severity among results, never below `floor`."""
    rating = floor
    for r in results:
        if SEVERITY_ORDER[r.severity] > SEVERITY_ORDER[rating]:
            rating = r.severity
    return rating


def rate_return(ctx: RuleContext, rules: Sequence[BaseRule]) -> RiskAssessment:
    """
    Evaluate rules in order and fold their hits into one assessment.
    A hit can only raise the rating; a high ratio stays high on a repeat return.
    """
    hits: list[RuleResult] = []
    for rule in rules:
        hits.extend(rule.evaluate(ctx))
    reasons = [h.reason for h in hits] or [NEUTRAL_REASON]
    return RiskAssessment(rating=max_severity(hits), reasons=reasons, rule_hits=hits)
