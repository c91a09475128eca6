"""Base rule interface and context."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from returns_review.schemas import RuleResult


@dataclass
class RuleContext:
    """Context passed to rules: the return being rated and its batch so far."""

    distributor_id: str
    baseline_rate: float
    batch_id: str
    batch_total_value: float
    cumulative_return_value: float  # includes the return being rated
    return_index: int  # 0 for the first return in the batch

    @property
    def cumulative_ratio(self) -> float:
        if self.batch_total_value <= 0:
            return 0.0
        return self.cumulative_return_value / self.batch_total_value


class BaseRule(ABC):
    """Base class for return risk rules."""

    rule_id: str = "base"

    @abstractmethod
    def evaluate(self, ctx: RuleContext) -> list[RuleResult]:
        """Evaluate rule; return list of RuleResult (empty if no hit)."""
        ...
