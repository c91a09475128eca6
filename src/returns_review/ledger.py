"""In-memory ledger owned by one session; the only writer is the approval mutator."""

from __future__ import annotations

import threading
from collections.abc import Iterable

from returns_review.aggregation import filter_by_kind
from returns_review.approval_lifecycle import MANUALLY_APPROVED, REJECTED, can_transition
from returns_review.logging_config import get_logger
from returns_review.review_context import get_request_id, get_reviewer
from returns_review.schemas import Distributor, Transaction

logger = get_logger(__name__)


class DistributorNotFoundError(LookupError):
    """Raised when a distributor id is not in the registry."""

    def __init__(self, distributor_id: str) -> None:
        super().__init__(f"Distributor {distributor_id} not found")
        self.distributor_id = distributor_id


class Ledger:
    """
    Distributors plus transactions in generation order.

    approve/reject are compare-and-set under a lock: a return moves out of
    `pending` at most once, whichever request gets there first.
    """

    def __init__(
        self, distributors: Iterable[Distributor], transactions: Iterable[Transaction]
    ) -> None:
        self._distributors = tuple(distributors)
        rows = list(transactions)
        # Generation order; records are frozen and replaced whole on a decision.
        self._order = [t.id for t in rows]
        self._by_id = {t.id: t for t in rows}
        if len(self._by_id) != len(self._order):
            raise ValueError("transaction ids must be unique")
        self._lock = threading.Lock()

    @property
    def distributors(self) -> tuple[Distributor, ...]:
        return self._distributors

    @property
    def transactions(self) -> list[Transaction]:
        return [self._by_id[i] for i in self._order]

    def __len__(self) -> int:
        return len(self._order)

    def get_distributor(self, distributor_id: str) -> Distributor:
        for d in self._distributors:
            if d.id == distributor_id:
                return d
        raise DistributorNotFoundError(distributor_id)

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        return self._by_id.get(transaction_id)

    def distributor_transactions(self, distributor_id: str, kind: str = "all") -> list[Transaction]:
        """Transactions of one distributor, newest first; raises DistributorNotFoundError."""
        self.get_distributor(distributor_id)
        rows = [t for t in self.transactions if t.distributor_id == distributor_id]
        return sorted(filter_by_kind(rows, kind), key=lambda t: t.date, reverse=True)

    def approve(self, transaction_id: str) -> bool:
        """pending -> manually-approved. Anything else is a no-op; returns whether it applied."""
        return self._decide(transaction_id, MANUALLY_APPROVED)

    def reject(self, transaction_id: str, reason: str) -> bool:
        """pending -> rejected with reason. Anything else is a no-op; returns whether it applied."""
        return self._decide(transaction_id, REJECTED, reason)

    def _decide(self, transaction_id: str, new_status: str, reason: str | None = None) -> bool:
        with self._lock:
            txn = self._by_id.get(transaction_id)
            if txn is None or not txn.is_return:
                logger.debug("Decision ignored: %s is not a known return", transaction_id)
                return False
            if not can_transition(txn.approval_status, new_status):
                logger.debug(
                    "Decision ignored: %s is %s, cannot move to %s",
                    transaction_id,
                    txn.approval_status,
                    new_status,
                )
                return False
            update: dict[str, str] = {"approval_status": new_status}
            if reason is not None:
                update["rejection_reason"] = reason
            self._by_id[transaction_id] = txn.model_copy(update=update)
        logger.info(
            "Return %s -> %s reviewer=%s request_id=%s",
            transaction_id,
            new_status,
            get_reviewer(),
            get_request_id(),
        )
        return True
