"""Structuring: more than one return submitted against the same batch."""

from __future__ import annotations

from returns_review.rules.base import BaseRule, RuleContext
from returns_review.schemas import RuleResult


class MultipleReturnsRule(BaseRule):
    rule_id = "MultipleReturnsInBatch"

    def __init__(self, config: dict) -> None:
        pass

    def evaluate(self, ctx: RuleContext) -> list[RuleResult]:
        # Fires on every repeat return, independent of value.
        if ctx.return_index < 1:
            return []
        return [
            RuleResult(
                rule_id=self.rule_id,
                severity="medium",
                reason="Multiple return transactions exist within a single batch.",
                evidence_fields={"batch_id": ctx.batch_id, "return_number": ctx.return_index + 1},
            )
        ]
