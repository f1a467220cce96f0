"""Smart match learning: feedback tallies and the bias they produce."""

import logging
import math
import re
import threading
from datetime import datetime, UTC
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from bankrec.domain.entities import (
    AMOUNT_TO_ACCOUNT,
    DESC_TO_ACCOUNT,
    DESC_TO_DESC,
    BankTransaction,
    FeedbackEntry,
    GLEntry,
    LearningRecord,
    Suggestion,
)
from bankrec.domain.errors import ValidationError

if TYPE_CHECKING:
    # database.base imports domain.entities, which loads this package
    from bankrec.database.base import LearningStore

log = logging.getLogger(__name__)

ACCEPTED = "accepted"
DENIED = "denied"
FEEDBACK_ACTIONS = (ACCEPTED, DENIED)
FEEDBACK_LOG_LIMIT = 200
MAX_LEARNING_BIAS = 0.10
DEFAULT_PROFILE = "default"

# (dimension, tanh steepness, weight)
BIAS_WEIGHTS = (
    (DESC_TO_ACCOUNT, 0.3, 0.06),
    (AMOUNT_TO_ACCOUNT, 0.2, 0.02),
    (DESC_TO_DESC, 0.3, 0.02),
)

AMOUNT_BUCKETS = (
    (Decimal("100"), "0-100"),
    (Decimal("500"), "100-500"),
    (Decimal("1000"), "500-1000"),
    (Decimal("2000"), "1000-2000"),
    (Decimal("5000"), "2000-5000"),
    (Decimal("10000"), "5000-10000"),
    (Decimal("50000"), "10000-50000"),
)


def normalize_for_learning(text: Optional[str]) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    cleaned = re.sub(r"[^a-z0-9\s]", " ", (text or "").lower())
    return re.sub(r"\s+", " ", cleaned).strip()


def amount_bucket(amount: Decimal) -> str:
    """Return the coarse amount range used as a learning key."""
    magnitude = abs(amount)
    for upper, label in AMOUNT_BUCKETS:
        if magnitude < upper:
            return label
    return "50000+"


def pattern_keys(bank_tx: BankTransaction, gl_entry: GLEntry) -> dict[str, tuple[str, str]]:
    """Return the (key, target) pair learned for each pattern dimension."""
    desc_key = normalize_for_learning(bank_tx.description)
    account_key = (gl_entry.account_number or "").strip()
    return {
        DESC_TO_ACCOUNT: (desc_key, account_key),
        AMOUNT_TO_ACCOUNT: (amount_bucket(bank_tx.amount), account_key),
        DESC_TO_DESC: (desc_key, normalize_for_learning(gl_entry.description)),
    }


def learning_bias(record: LearningRecord, bank_tx: BankTransaction, gl_entry: GLEntry) -> float:
    """Compute the bounded score adjustment learned for a bank/GL pair.

    Each dimension contributes ``tanh(net * k) * weight`` where ``net`` is
    accepted minus denied; the sum is clamped to +-MAX_LEARNING_BIAS.
    """
    keys = pattern_keys(bank_tx, gl_entry)
    bias = 0.0
    for dimension, steepness, weight in BIAS_WEIGHTS:
        key, target = keys[dimension]
        tally = record.lookup(dimension, key, target)
        if tally is not None:
            bias += math.tanh(tally.net * steepness) * weight
    return max(-MAX_LEARNING_BIAS, min(MAX_LEARNING_BIAS, bias))


def apply_feedback(
    record: LearningRecord,
    action: str,
    bank_tx: BankTransaction,
    gl_entry: GLEntry,
    score: float,
    now: Optional[datetime] = None,
) -> None:
    """Apply one accept/deny event to a learning record in place.

    Raises:
        ValidationError: If action is not "accepted" or "denied"
    """
    if action not in FEEDBACK_ACTIONS:
        raise ValidationError(f"Unknown feedback action '{action}'")
    # Naive UTC, matching what SQLite returns
    now = now or datetime.now(UTC).replace(tzinfo=None)

    for dimension, (key, target) in pattern_keys(bank_tx, gl_entry).items():
        tally = record.tally(dimension, key, target)
        if action == ACCEPTED:
            tally.accepted += 1
        else:
            tally.denied += 1

    if action == ACCEPTED:
        record.total_accepted += 1
    else:
        record.total_denied += 1

    record.feedback_log.append(
        FeedbackEntry(
            timestamp=now,
            action=action,
            bank_description=bank_tx.description,
            bank_amount=bank_tx.amount,
            gl_account=(gl_entry.account_number or "").strip(),
            gl_description=gl_entry.description,
            score=score,
        )
    )
    if len(record.feedback_log) > FEEDBACK_LOG_LIMIT:
        del record.feedback_log[:-FEEDBACK_LOG_LIMIT]
    record.last_updated = now


class LearningService:
    """Service for reading and updating smart match learning for one identity."""

    def __init__(self, store: "LearningStore", identity: str = DEFAULT_PROFILE):
        """Initialize learning service.

        Args:
            store: Learning store instance
            identity: Caller-supplied learning identity (e.g. a user name)
        """
        self.store = store
        self.identity = identity
        self._write_lock = threading.Lock()

    def load(self) -> LearningRecord:
        """Load the current learning record."""
        return self.store.load(self.identity)

    def bias(self, bank_tx: BankTransaction, gl_entry: GLEntry) -> float:
        """Learned bias for a single pair (loads the record on each call)."""
        return learning_bias(self.load(), bank_tx, gl_entry)

    def record_feedback(self, action: str, suggestion: Suggestion) -> LearningRecord:
        """Record an accept/deny event for a suggestion.

        The record is loaded, updated and saved as one unit while holding the
        write lock, so concurrent events never interleave.

        Args:
            action: "accepted" or "denied"
            suggestion: The suggestion the user acted on

        Returns:
            The saved learning record

        Raises:
            ValidationError: If action is unknown
        """
        if action not in FEEDBACK_ACTIONS:
            raise ValidationError(f"Unknown feedback action '{action}'")

        with self._write_lock:
            record = self.store.load(self.identity)
            apply_feedback(
                record,
                action,
                suggestion.bank_transaction,
                suggestion.gl_entry,
                suggestion.score,
            )
            self.store.save(self.identity, record)

        log.info(
            "Recorded %s feedback for %r -> %s",
            action,
            suggestion.bank_transaction.description,
            suggestion.gl_entry.account_number,
        )
        return record

    def accept(self, suggestion: Suggestion) -> LearningRecord:
        return self.record_feedback(ACCEPTED, suggestion)

    def deny(self, suggestion: Suggestion) -> LearningRecord:
        return self.record_feedback(DENIED, suggestion)
