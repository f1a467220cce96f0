"""Domain model entities for bankrec.

These are pure data classes representing reconciliation concepts,
independent of how callers read files or persist results. Bank and GL
records compare by identity: two identical statement lines are still two
different movements, and a match must claim each one at most once.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from typing import Any, Optional, Union

from bankrec.domain.errors import ValidationError

ZERO = Decimal("0.00")

BANK_SIDE = "bank"
GL_SIDE = "gl"
SIDES = (BANK_SIDE, GL_SIDE)


@dataclass(frozen=True, eq=False)
class BankTransaction:
    """One line item from a bank statement.

    ``amount`` is always a non-negative magnitude; direction lives in
    ``is_debit``. Combined transactions keep their constituents in
    ``combined_items`` so a multi-match can be undone.
    """

    date: Optional[date]
    description: str = ""
    memo: str = ""
    amount_credit: Decimal = ZERO
    amount_debit: Decimal = ZERO
    balance: Decimal = ZERO
    check_number: str = ""
    transaction_number: str = ""
    amount: Decimal = ZERO
    is_debit: bool = False
    raw_row: Any = None
    combined_items: tuple["BankTransaction", ...] = ()
    is_custom: bool = False

    @property
    def is_combined(self) -> bool:
        return bool(self.combined_items)

    def originals(self) -> tuple["BankTransaction", ...]:
        """Return the original statement lines this record stands for."""
        if self.is_custom:
            return ()
        return self.combined_items or (self,)


@dataclass(frozen=True, eq=False)
class GLEntry:
    """One line item from a general-ledger export."""

    account_number: str
    description: str = ""
    account_description: str = ""
    type: str = ""
    transaction_type: str = ""
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    amount: Decimal = ZERO
    check_number: str = ""
    ref_number: str = ""
    po_number: str = ""
    vendor_code: str = ""
    begin_balance: Decimal = ZERO
    ending_balance: Decimal = ZERO
    is_debit: bool = False
    raw_row: Any = None
    combined_items: tuple["GLEntry", ...] = ()
    is_custom: bool = False
    date: Optional[date] = None

    @property
    def is_combined(self) -> bool:
        return bool(self.combined_items)

    def originals(self) -> tuple["GLEntry", ...]:
        """Return the original ledger lines this record stands for."""
        if self.is_custom:
            return ()
        return self.combined_items or (self,)


Record = Union[BankTransaction, GLEntry]


@dataclass(frozen=True)
class MatchResult:
    """A pairing of one bank-side and one GL-side record."""

    bank_transaction: BankTransaction
    gl_entry: GLEntry
    match_score: float
    match_type: str
    is_manual: bool = False
    is_smart_match: bool = False
    is_custom: bool = False
    notes: str = ""

    @property
    def is_multi_match(self) -> bool:
        return self.bank_transaction.is_combined or self.gl_entry.is_combined

    @property
    def matched_count(self) -> int:
        """Number of records on the combined side (1 for plain matches)."""
        return max(
            len(self.bank_transaction.combined_items),
            len(self.gl_entry.combined_items),
            1,
        )


@dataclass(frozen=True)
class ReconcileSettings:
    """Scoring options recognised by the matchers.

    Attributes:
        date_range: Date window in days, 0-30
        amount_tolerance: Absolute amount difference treated as exact
    """

    date_range: int = 3
    amount_tolerance: Decimal = ZERO

    def __post_init__(self):
        if not isinstance(self.date_range, int) or not 0 <= self.date_range <= 30:
            raise ValidationError("date_range must be a number between 0 and 30")
        if not isinstance(self.amount_tolerance, Decimal):
            object.__setattr__(self, "amount_tolerance", Decimal(str(self.amount_tolerance)))
        if self.amount_tolerance < 0:
            raise ValidationError("amount_tolerance must not be negative")


@dataclass
class ReconciliationResult:
    """The three output lists of a reconciliation run."""

    matched: list[MatchResult] = field(default_factory=list)
    unmatched_bank: list[BankTransaction] = field(default_factory=list)
    unmatched_gl: list[GLEntry] = field(default_factory=list)


@dataclass(frozen=True)
class ReconciliationSummary:
    """Counts and totals of a reconciliation, as stored with a saved run."""

    total_matched: int
    total_unmatched_bank: int
    total_unmatched_gl: int
    total_matched_amount: Decimal
    total_unmatched_bank_amount: Decimal
    total_unmatched_gl_amount: Decimal


@dataclass(frozen=True)
class SignalScores:
    """Per-signal sub-scores behind a smart match suggestion."""

    amount: float = 0.0
    text: float = 0.0
    date: float = 0.0
    ref: float = 0.0
    learning_bias: float = 0.0


@dataclass(frozen=True)
class Reason:
    """A short human-readable explanation chip for a suggestion."""

    icon: str
    text: str
    strength: str


@dataclass(frozen=True, eq=False)
class Suggestion:
    """A ranked smart match candidate for one unmatched source record.

    For split suggestions ``target_items`` holds every record whose amounts
    sum to the source; ``bank_transaction``/``gl_entry`` then carry the source
    and the first target item, which is what feedback is learned against.
    """

    score: float
    scores: SignalScores
    bank_transaction: BankTransaction
    gl_entry: GLEntry
    target_items: tuple[Record, ...]
    is_split: bool = False
    reasons: tuple[Reason, ...] = ()


@dataclass
class PatternCount:
    """Accept/deny tallies for one learned pattern."""

    accepted: int = 0
    denied: int = 0

    @property
    def net(self) -> int:
        return self.accepted - self.denied


@dataclass(frozen=True)
class FeedbackEntry:
    """One accept/deny event in the learning feedback log."""

    timestamp: datetime
    action: str
    bank_description: str
    bank_amount: Decimal
    gl_account: str
    gl_description: str
    score: float


DESC_TO_ACCOUNT = "desc_to_account"
AMOUNT_TO_ACCOUNT = "amount_to_account"
DESC_TO_DESC = "desc_to_desc"
PATTERN_DIMENSIONS = (DESC_TO_ACCOUNT, AMOUNT_TO_ACCOUNT, DESC_TO_DESC)


def _empty_patterns() -> dict[str, dict[str, dict[str, PatternCount]]]:
    return {dimension: {} for dimension in PATTERN_DIMENSIONS}


@dataclass
class LearningRecord:
    """Accumulated smart match feedback for one learning identity.

    ``patterns`` maps dimension -> pattern key -> target key -> tallies.
    """

    version: int = 1
    last_updated: Optional[datetime] = None
    total_accepted: int = 0
    total_denied: int = 0
    patterns: dict[str, dict[str, dict[str, PatternCount]]] = field(
        default_factory=_empty_patterns
    )
    feedback_log: list[FeedbackEntry] = field(default_factory=list)

    def lookup(self, dimension: str, key: str, target: str) -> Optional[PatternCount]:
        """Return the tallies for a pattern, or None if never seen."""
        return self.patterns.get(dimension, {}).get(key, {}).get(target)

    def tally(self, dimension: str, key: str, target: str) -> PatternCount:
        """Return the tallies for a pattern, creating them if needed."""
        targets = self.patterns.setdefault(dimension, {}).setdefault(key, {})
        return targets.setdefault(target, PatternCount())
