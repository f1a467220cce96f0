"""Automatic matching of bank transactions to GL entries."""

import logging
import re
from decimal import Decimal
from typing import Optional, Sequence

from bankrec.domain.entities import (
    BankTransaction,
    GLEntry,
    MatchResult,
    ReconcileSettings,
    ReconciliationResult,
)

log = logging.getLogger(__name__)

AMOUNT_WEIGHT = 0.5
CHECK_NUMBER_WEIGHT = 0.3
DATE_WEIGHT = 0.2
MATCH_THRESHOLD = 0.5
NEAR_AMOUNT_RATIO = Decimal("0.01")


def digits(value: Optional[str]) -> str:
    """Strip everything but digits from a reference string."""
    return re.sub(r"\D", "", value or "")


def check_number_in_account(bank_tx: BankTransaction, gl_entry: GLEntry) -> bool:
    """Return True if the bank check number's digits appear in the GL account number."""
    check = digits(bank_tx.check_number)
    return bool(check) and check in digits(gl_entry.account_number)


class MatchingService:
    """Greedy, highest-score-first pairing of bank transactions to GL entries.

    Bank transactions are visited in input order and each claims the best
    still-unclaimed GL entry scoring above MATCH_THRESHOLD. There is no
    backtracking, so the result is deterministic but not a globally optimal
    assignment; the smart match assistant exists to resolve what it misses.
    """

    def __init__(self, settings: Optional[ReconcileSettings] = None):
        """Initialize matching service.

        Args:
            settings: Scoring settings (defaults to ReconcileSettings())
        """
        self.settings = settings or ReconcileSettings()

    def calculate_match_score(self, bank_tx: BankTransaction, gl_entry: GLEntry) -> float:
        """Score a bank/GL pair in [0, 1].

        Args:
            bank_tx: Bank transaction
            gl_entry: GL entry

        Returns:
            Weighted sum of the amount, check number and date signals
        """
        score = 0.0

        bank_amount = abs(bank_tx.amount)
        amount_diff = abs(bank_amount - abs(gl_entry.amount))
        if amount_diff <= self.settings.amount_tolerance:
            score += AMOUNT_WEIGHT
        elif amount_diff < bank_amount * NEAR_AMOUNT_RATIO:
            score += AMOUNT_WEIGHT * 0.8

        if check_number_in_account(bank_tx, gl_entry):
            score += CHECK_NUMBER_WEIGHT

        # GL exports carry no dependable transaction date, so any dated bank
        # line earns a flat half of the date weight.
        if bank_tx.date is not None and self.settings.date_range > 0:
            score += DATE_WEIGHT * 0.5

        return score

    def get_match_type(self, bank_tx: BankTransaction, gl_entry: GLEntry) -> str:
        """Describe which signals produced a match."""
        types = []
        amount_diff = abs(abs(bank_tx.amount) - abs(gl_entry.amount))
        if amount_diff <= self.settings.amount_tolerance:
            types.append("Exact Amount")
        if check_number_in_account(bank_tx, gl_entry):
            types.append("Check #")
        return " + ".join(types) if types else "Amount Match"

    def reconcile(
        self, bank_transactions: Sequence[BankTransaction], gl_entries: Sequence[GLEntry]
    ) -> ReconciliationResult:
        """Pair bank transactions with GL entries.

        Args:
            bank_transactions: Bank transactions in statement order
            gl_entries: GL entries in ledger order

        Returns:
            ReconciliationResult with matched pairs and both unmatched lists
        """
        matched = []
        claimed_bank: set[int] = set()
        claimed_gl: set[int] = set()

        for bank_idx, bank_tx in enumerate(bank_transactions):
            best_score = 0.0
            best_gl_idx = -1

            for gl_idx, gl_entry in enumerate(gl_entries):
                if gl_idx in claimed_gl:
                    continue
                score = self.calculate_match_score(bank_tx, gl_entry)
                if score > best_score and score > MATCH_THRESHOLD:
                    best_score = score
                    best_gl_idx = gl_idx

            if best_gl_idx == -1:
                continue

            gl_entry = gl_entries[best_gl_idx]
            claimed_bank.add(bank_idx)
            claimed_gl.add(best_gl_idx)
            matched.append(
                MatchResult(
                    bank_transaction=bank_tx,
                    gl_entry=gl_entry,
                    match_score=best_score,
                    match_type=self.get_match_type(bank_tx, gl_entry),
                )
            )
            log.debug(
                "Matched bank %s (%s) -> GL %s (%s) [score %.0f%%]",
                bank_tx.check_number or bank_tx.description,
                bank_tx.amount,
                gl_entry.account_number,
                gl_entry.amount,
                best_score * 100,
            )

        result = ReconciliationResult(
            matched=matched,
            unmatched_bank=[tx for i, tx in enumerate(bank_transactions) if i not in claimed_bank],
            unmatched_gl=[entry for i, entry in enumerate(gl_entries) if i not in claimed_gl],
        )
        log.info(
            "Reconciliation finished: %d matched, %d unmatched bank, %d unmatched GL",
            len(result.matched),
            len(result.unmatched_bank),
            len(result.unmatched_gl),
        )
        return result
