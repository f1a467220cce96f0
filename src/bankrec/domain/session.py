"""Reconciliation session: the mutable matched / unmatched state after a run."""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from bankrec.domain.entities import (
    BANK_SIDE,
    GL_SIDE,
    ZERO,
    BankTransaction,
    GLEntry,
    MatchResult,
    Record,
    ReconcileSettings,
    ReconciliationResult,
    ReconciliationSummary,
    Suggestion,
)
from bankrec.domain.errors import (
    NotFoundError,
    ValidationError,
    duplicate_selection,
    empty_selection,
    invalid_side,
    match_not_found,
    no_smart_match_source,
    stale_suggestion,
    suggestion_not_found,
    unmatched_item_not_found,
)
from bankrec.domain.learning import LearningService
from bankrec.domain.matching import MatchingService
from bankrec.domain.smart_match import SmartMatchService
from bankrec.utils.amount_parser import to_money

log = logging.getLogger(__name__)


def _total(records: Sequence[Record]) -> Decimal:
    return sum((abs(r.amount) for r in records), ZERO)


def _combined_description(records: Sequence[Record]) -> str:
    if len(records) == 1:
        return records[0].description
    parts = [r.description for r in records if r.description]
    return f"[{len(records)} items combined] " + "; ".join(parts)


def combine_gl_entries(entries: Sequence[GLEntry]) -> GLEntry:
    """Build a synthetic GL entry standing for several ledger lines."""
    total = _total(entries)
    return GLEntry(
        account_number=", ".join(e.account_number for e in entries),
        description=_combined_description(entries),
        type="Combined",
        amount=total,
        debit=total,
        date=entries[0].date,
        combined_items=tuple(entries),
    )


def combine_bank_transactions(transactions: Sequence[BankTransaction]) -> BankTransaction:
    """Build a synthetic bank transaction standing for several statement lines."""
    total = _total(transactions)
    references = [t.transaction_number or t.check_number for t in transactions]
    return BankTransaction(
        date=transactions[0].date,
        description=_combined_description(transactions),
        transaction_number=", ".join(r for r in references if r),
        amount=total,
        amount_credit=total,
        combined_items=tuple(transactions),
    )


def _index_of(records: Sequence[Record], record: Record) -> int:
    """Position of a record by identity, -1 if absent."""
    for idx, item in enumerate(records):
        if item is record:
            return idx
    return -1


class ReconciliationSession:
    """Matched and unmatched lists plus the operations that move records between them.

    Every operation validates its inputs before touching any list, so a
    rejected operation leaves the session exactly as it was. Records are
    tracked by identity: a record is in exactly one of the unmatched lists or
    inside exactly one match.
    """

    def __init__(
        self,
        result: ReconciliationResult,
        settings: Optional[ReconcileSettings] = None,
        learning: Optional[LearningService] = None,
    ):
        """Initialize reconciliation session.

        Args:
            result: Output of the automatic matcher
            settings: Scoring settings used for smart match
            learning: Learning service receiving accept/deny feedback
        """
        self.settings = settings or ReconcileSettings()
        self.learning = learning
        self.smart_match = SmartMatchService(self.settings, learning)
        self.matched: list[MatchResult] = list(result.matched)
        self.unmatched_bank: list[BankTransaction] = list(result.unmatched_bank)
        self.unmatched_gl: list[GLEntry] = list(result.unmatched_gl)
        self.suggestions: list[Suggestion] = []
        self._source: Optional[Record] = None

    @classmethod
    def from_records(
        cls,
        bank_transactions: Sequence[BankTransaction],
        gl_entries: Sequence[GLEntry],
        settings: Optional[ReconcileSettings] = None,
        learning: Optional[LearningService] = None,
    ) -> "ReconciliationSession":
        """Run the automatic matcher and open a session on its result."""
        result = MatchingService(settings).reconcile(bank_transactions, gl_entries)
        return cls(result, settings, learning)

    def _unmatched(self, side: str) -> list:
        if side == BANK_SIDE:
            return self.unmatched_bank
        if side == GL_SIDE:
            return self.unmatched_gl
        raise ValidationError(invalid_side(side))

    def _opposite(self, side: str) -> list:
        return self._unmatched(GL_SIDE if side == BANK_SIDE else BANK_SIDE)

    def _get_unmatched(self, side: str, index: int) -> Record:
        records = self._unmatched(side)
        if not 0 <= index < len(records):
            raise NotFoundError(unmatched_item_not_found(side, index))
        return records[index]

    def _remove(self, records: list, items: Sequence[Record]) -> None:
        for item in items:
            del records[_index_of(records, item)]

    def _clear_suggestions(self) -> None:
        self.suggestions = []
        self._source = None

    def result(self) -> ReconciliationResult:
        """Snapshot of the three lists."""
        return ReconciliationResult(
            matched=list(self.matched),
            unmatched_bank=list(self.unmatched_bank),
            unmatched_gl=list(self.unmatched_gl),
        )

    def summary(self) -> ReconciliationSummary:
        """Counts and totals; the matched total is the sum of bank amounts."""
        return ReconciliationSummary(
            total_matched=len(self.matched),
            total_unmatched_bank=len(self.unmatched_bank),
            total_unmatched_gl=len(self.unmatched_gl),
            total_matched_amount=_total([m.bank_transaction for m in self.matched]),
            total_unmatched_bank_amount=_total(self.unmatched_bank),
            total_unmatched_gl_amount=_total(self.unmatched_gl),
        )

    # Smart match

    def suggest(self, side: str, index: int) -> list[Suggestion]:
        """Rank smart match candidates for one unmatched record.

        The record becomes the current smart match source; the returned list is
        what accept_suggestion / deny_suggestion indices refer to.

        Raises:
            ValidationError: If side is unknown
            NotFoundError: If index is out of range
        """
        source = self._get_unmatched(side, index)
        self.suggestions = self.smart_match.suggest(source, self._opposite(side))
        self._source = source
        return list(self.suggestions)

    def _get_suggestion(self, index: int) -> Suggestion:
        if self._source is None:
            raise ValidationError(no_smart_match_source())
        if not 0 <= index < len(self.suggestions):
            raise NotFoundError(suggestion_not_found(index))
        return self.suggestions[index]

    def accept_suggestion(self, index: int) -> MatchResult:
        """Accept a suggestion: record the feedback, then move its records.

        Raises:
            ValidationError: If no suggestions are pending or they are stale
            NotFoundError: If index is out of range
        """
        suggestion = self._get_suggestion(index)
        source = self._source
        source_side = BANK_SIDE if isinstance(source, BankTransaction) else GL_SIDE
        source_list = self._unmatched(source_side)
        target_list = self._opposite(source_side)
        if _index_of(source_list, source) < 0 or any(
            _index_of(target_list, item) < 0 for item in suggestion.target_items
        ):
            raise ValidationError(stale_suggestion())

        if self.learning is not None:
            self.learning.accept(suggestion)

        items = suggestion.target_items
        if suggestion.is_split:
            match_type = f"Smart Match ({len(items)}-way split)"
            if source_side == BANK_SIDE:
                bank_tx, gl_entry = source, combine_gl_entries(items)
            else:
                bank_tx, gl_entry = combine_bank_transactions(items), source
        else:
            match_type = "Smart Match"
            bank_tx, gl_entry = suggestion.bank_transaction, suggestion.gl_entry

        self._remove(target_list, items)
        self._remove(source_list, [source])
        match = MatchResult(
            bank_transaction=bank_tx,
            gl_entry=gl_entry,
            match_score=suggestion.score,
            match_type=match_type,
            is_manual=True,
            is_smart_match=True,
        )
        self.matched.append(match)
        self._clear_suggestions()
        log.info("Accepted smart match: %s (score %.2f)", match_type, suggestion.score)
        return match

    def deny_suggestion(self, index: int) -> Suggestion:
        """Deny a suggestion: record the feedback and drop it from the list.

        No record is moved.
        """
        suggestion = self._get_suggestion(index)
        if self.learning is not None:
            self.learning.deny(suggestion)
        del self.suggestions[index]
        log.info("Denied smart match suggestion %d", index)
        return suggestion

    # Manual matching

    def confirm_match(self, side: str, index: int, target_indices: Sequence[int]) -> MatchResult:
        """Match one unmatched record to one or more opposite-side records.

        A single target produces a "Manual Match"; several targets are combined
        into one synthetic record and produce a "Multi-Match".

        Args:
            side: Side of the source record ("bank" or "gl")
            index: Index of the source record in its unmatched list
            target_indices: Indices into the opposite unmatched list

        Raises:
            ValidationError: If side is unknown, nothing is selected or a target repeats
            NotFoundError: If any index is out of range
        """
        source = self._get_unmatched(side, index)
        if not target_indices:
            raise ValidationError(empty_selection())
        opposite_side = GL_SIDE if side == BANK_SIDE else BANK_SIDE
        seen: set[int] = set()
        targets = []
        for target_index in target_indices:
            if target_index in seen:
                raise ValidationError(duplicate_selection(target_index))
            seen.add(target_index)
            targets.append(self._get_unmatched(opposite_side, target_index))

        if len(targets) == 1:
            match_type = "Manual Match"
            combined = targets[0]
        elif side == BANK_SIDE:
            match_type = f"Multi-Match ({len(targets)} GL → 1 Bank)"
            combined = combine_gl_entries(targets)
        else:
            match_type = f"Multi-Match ({len(targets)} Bank → 1 GL)"
            combined = combine_bank_transactions(targets)

        if side == BANK_SIDE:
            bank_tx, gl_entry = source, combined
        else:
            bank_tx, gl_entry = combined, source

        self._remove(self._opposite(side), targets)
        self._remove(self._unmatched(side), [source])
        match = MatchResult(
            bank_transaction=bank_tx,
            gl_entry=gl_entry,
            match_score=1.0,
            match_type=match_type,
            is_manual=True,
        )
        self.matched.append(match)
        self._clear_suggestions()
        log.info("Created %s", match_type)
        return match

    def create_custom_match(
        self,
        side: str,
        index: int,
        match_type: str,
        amount: Any,
        description: str = "",
        account_number: str = "",
        entry_date: Optional[date] = None,
        notes: str = "",
    ) -> MatchResult:
        """Match an unmatched record against a hand-entered counterpart.

        A bank source gets a custom GL entry, a GL source a custom bank
        transaction. Custom counterparts are discarded when the match is undone.

        Args:
            side: Side of the source record ("bank" or "gl")
            index: Index of the source record in its unmatched list
            match_type: Kind of adjustment, e.g. "fee" (becomes "Custom Fee")
            amount: Amount of the counterpart
            description: Description of the counterpart
            account_number: Account/reference number (defaults to "CUSTOM")
            entry_date: Date of the counterpart
            notes: Free-text notes kept on the match

        Raises:
            ValidationError: If side or match_type is invalid
            NotFoundError: If index is out of range
        """
        source = self._get_unmatched(side, index)
        match_type = (match_type or "").strip()
        if not match_type:
            raise ValidationError("Custom match type is required")
        value = abs(to_money(amount))

        if side == BANK_SIDE:
            bank_tx = source
            gl_entry = GLEntry(
                account_number=account_number or "CUSTOM",
                description=description,
                type=match_type,
                debit=value,
                amount=value,
                date=entry_date,
                is_custom=True,
            )
        else:
            gl_entry = source
            bank_tx = BankTransaction(
                date=entry_date,
                description=description,
                memo=notes,
                amount_credit=value,
                check_number=account_number,
                transaction_number=account_number or "CUSTOM",
                amount=value,
                is_custom=True,
            )

        self._remove(self._unmatched(side), [source])
        match = MatchResult(
            bank_transaction=bank_tx,
            gl_entry=gl_entry,
            match_score=1.0,
            match_type=f"Custom {match_type[:1].upper()}{match_type[1:]}",
            is_manual=True,
            is_custom=True,
            notes=notes,
        )
        self.matched.append(match)
        self._clear_suggestions()
        log.info("Created %s for %s %s", match.match_type, side, index)
        return match

    def unmatch(self, match_index: int) -> MatchResult:
        """Undo a match, restoring every original record it consumed.

        Combined records are expanded back into their constituents; custom
        counterparts are dropped. Learning feedback is left untouched.

        Raises:
            NotFoundError: If match_index is out of range
        """
        if not 0 <= match_index < len(self.matched):
            raise NotFoundError(match_not_found(match_index))
        match = self.matched.pop(match_index)
        self.unmatched_bank.extend(match.bank_transaction.originals())
        self.unmatched_gl.extend(match.gl_entry.originals())
        self._clear_suggestions()
        log.info(
            "Unmatched %s%s",
            match.match_type,
            f" ({match.matched_count} items restored)" if match.is_multi_match else "",
        )
        return match

