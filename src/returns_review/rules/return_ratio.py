"""Batch return ratio against the distributor's baseline return rate."""

from __future__ import annotations

from returns_review.rules.base import BaseRule, RuleContext
from returns_review.schemas import RuleResult


class ReturnRatioRule(BaseRule):
    rule_id = "ReturnRatio"

    def __init__(self, config: dict) -> None:
        self.high_multiplier = float(config.get("high_multiplier", 2.5))
        self.medium_multiplier = float(config.get("medium_multiplier", 1.5))

    def evaluate(self, ctx: RuleContext) -> list[RuleResult]:
        ratio = ctx.cumulative_ratio
        evidence = {
            "ratio": round(ratio, 4),
            "baseline_rate": ctx.baseline_rate,
            "batch_id": ctx.batch_id,
        }
        if ratio > ctx.baseline_rate * self.high_multiplier:
            return [
                RuleResult(
                    rule_id=self.rule_id,
                    severity="high",
                    reason="Batch return rate is significantly above the distributor average.",
                    evidence_fields={**evidence, "multiplier": self.high_multiplier},
                )
            ]
        if ratio > ctx.baseline_rate * self.medium_multiplier:
            return [
                RuleResult(
                    rule_id=self.rule_id,
                    severity="medium",
                    reason="Batch return rate is slightly elevated.",
                    evidence_fields={**evidence, "multiplier": self.medium_multiplier},
                )
            ]
        return []
