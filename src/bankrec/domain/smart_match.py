"""Smart match: multi-signal ranking of candidates for one unmatched record."""

import logging
import math
import re
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from bankrec.domain.entities import (
    BankTransaction,
    GLEntry,
    LearningRecord,
    Reason,
    Record,
    ReconcileSettings,
    SignalScores,
    Suggestion,
)
from bankrec.domain.learning import LearningService, learning_bias
from bankrec.domain.matching import digits
from bankrec.domain.records import extract_po_number
from bankrec.utils.amount_parser import format_currency

log = logging.getLogger(__name__)

AMOUNT_SIGNAL_WEIGHT = 0.40
TEXT_SIGNAL_WEIGHT = 0.20
DATE_SIGNAL_WEIGHT = 0.15
REF_SIGNAL_WEIGHT = 0.15

SUGGESTION_THRESHOLD = 0.40
HIGH_CONFIDENCE_SCORE = 0.85
MAX_SUGGESTIONS = 5

SPLIT_AMOUNT_SCORE = 0.95
SPLIT_SCORE = min(AMOUNT_SIGNAL_WEIGHT * SPLIT_AMOUNT_SCORE + 0.10, 0.80)
SUBSET_TOLERANCE_RATIO = Decimal("0.01")
TRIPLE_SEARCH_LIMIT = 50

MISSING_DATE_SCORE = 0.25

_TOKEN_SPLIT = re.compile(r"[^a-z0-9\s]")


def calculate_amount_score(source_amount: Decimal, target_amount: Decimal) -> float:
    """Score how close two amounts are, relative to the source amount.

    Returns 1.0 within a cent, then 0.85 / 0.6 / 0.3 within 1% / 5% / 10%.
    """
    source_amount = abs(source_amount)
    diff = abs(source_amount - abs(target_amount))
    if diff <= Decimal("0.01"):
        return 1.0
    if source_amount > 0:
        pct_diff = diff / source_amount
    else:
        pct_diff = Decimal(1)
    if pct_diff <= Decimal("0.01"):
        return 0.85
    if pct_diff <= Decimal("0.05"):
        return 0.6
    if pct_diff <= Decimal("0.10"):
        return 0.3
    return 0.0


def _tokens(text: str) -> set[str]:
    return {t for t in _TOKEN_SPLIT.sub(" ", text.lower()).split() if len(t) > 2}


def calculate_text_score(source_text: Optional[str], target_text: Optional[str]) -> float:
    """Jaccard similarity of the word tokens (longer than two characters)."""
    if not source_text or not target_text:
        return 0.0
    source_tokens = _tokens(source_text)
    target_tokens = _tokens(target_text)
    if not source_tokens or not target_tokens:
        return 0.0
    return len(source_tokens & target_tokens) / len(source_tokens | target_tokens)


def calculate_date_score(
    source_date: Optional[date], target_date: Optional[date], date_range: int
) -> float:
    """Score date proximity with exponential decay.

    Args:
        source_date: Date of the source record
        target_date: Date of the candidate record
        date_range: Configured date window in days (half-life is max(range, 3) / 2)

    Returns:
        1.0 for the same day, decaying towards 0; 0.25 if either date is missing
    """
    if source_date is None or target_date is None:
        return MISSING_DATE_SCORE
    days = abs((source_date - target_date).days)
    if days < 1:
        return 1.0
    half_life = max(date_range, 3) / 2
    return math.exp(-days / half_life)


def calculate_ref_score(bank_tx: BankTransaction, gl_entry: GLEntry) -> float:
    """Score reference agreement between a bank transaction and a GL entry.

    Check rules apply only to bank check numbers of at least three digits:
    exact match 1.0, contained in the GL account 0.9, same last four 0.6.
    Otherwise an identical PO number in both descriptions scores 0.8.
    """
    bank_check = digits(bank_tx.check_number)
    gl_check = digits(gl_entry.check_number or gl_entry.ref_number)
    gl_account = digits(gl_entry.account_number)

    if len(bank_check) >= 3:
        if gl_check and gl_check == bank_check:
            return 1.0
        if gl_account and bank_check in gl_account:
            return 0.9
        if gl_check and gl_check[-4:] == bank_check[-4:]:
            return 0.6

    bank_po = extract_po_number(f"{bank_tx.description} {bank_tx.memo}")
    gl_po = extract_po_number(gl_entry.description)
    if bank_po and bank_po == gl_po:
        return 0.8
    return 0.0


def match_text(record: Record) -> str:
    """Free text compared by the text signal."""
    if isinstance(record, BankTransaction):
        return f"{record.description} {record.memo}"
    return f"{record.description} {record.account_description}"


def find_subset_matches(
    source_amount: Decimal, targets: Sequence[Record], max_items: int = 3
) -> list[tuple[Record, ...]]:
    """Find 2- and 3-item combinations of targets summing to the source amount.

    Pairs are searched over every target; triples only over the first
    TRIPLE_SEARCH_LIMIT targets to bound the cubic search. The tolerance is
    1% of the source amount.

    Args:
        source_amount: Amount the combination has to add up to
        targets: Candidate records on the opposite side
        max_items: 2 to search pairs only, 3 to search triples too

    Returns:
        Matching combinations in search order
    """
    source_amount = abs(source_amount)
    tolerance = source_amount * SUBSET_TOLERANCE_RATIO
    amounts = [abs(t.amount) for t in targets]
    results = []

    count = len(targets)
    for i in range(count):
        for j in range(i + 1, count):
            if abs(amounts[i] + amounts[j] - source_amount) <= tolerance:
                results.append((targets[i], targets[j]))

    if max_items >= 3:
        cap = min(count, TRIPLE_SEARCH_LIMIT)
        for i in range(cap):
            for j in range(i + 1, cap):
                for k in range(j + 1, cap):
                    total = amounts[i] + amounts[j] + amounts[k]
                    if abs(total - source_amount) <= tolerance:
                        results.append((targets[i], targets[j], targets[k]))

    return results


def build_reasons(bank_tx: BankTransaction, gl_entry: GLEntry, scores: SignalScores) -> list[Reason]:
    """Turn sub-score tiers into short explanation chips."""
    reasons = []
    diff = abs(abs(bank_tx.amount) - abs(gl_entry.amount))

    if scores.amount >= 1.0:
        reasons.append(Reason("$", "Exact amount match", "Perfect"))
    elif scores.amount >= 0.85:
        reasons.append(Reason("$", f"Amount within 1% (${diff:.2f} diff)", "Strong"))
    elif scores.amount >= 0.3:
        reasons.append(Reason("$", f"Amount within 10% (${diff:.2f} diff)", "Weak"))

    if scores.text >= 0.5:
        reasons.append(Reason("T", "Description keywords match", "Strong"))
    elif scores.text > 0.1:
        reasons.append(Reason("T", "Partial description overlap", "Weak"))

    if scores.date >= 0.9:
        reasons.append(Reason("D", "Same day or within 1 day", "Strong"))
    elif scores.date >= 0.5:
        reasons.append(Reason("D", "Close date proximity", "Moderate"))

    if scores.ref >= 0.9:
        reasons.append(Reason("#", "Check/reference number match", "Perfect"))
    elif scores.ref >= 0.6:
        reasons.append(Reason("#", "Partial reference match", "Moderate"))

    if scores.learning_bias > 0.02:
        reasons.append(Reason("L", "Boosted by past acceptances", "Learned"))
    elif scores.learning_bias < -0.02:
        reasons.append(Reason("L", "Penalized by past denials", "Learned"))

    return reasons


def _pair(source: Record, target: Record) -> tuple[BankTransaction, GLEntry]:
    if isinstance(source, BankTransaction):
        return source, target
    return target, source


class SmartMatchService:
    """Rank opposite-side candidates for a single unmatched record."""

    def __init__(
        self,
        settings: Optional[ReconcileSettings] = None,
        learning: Optional[LearningService] = None,
    ):
        """Initialize smart match service.

        Args:
            settings: Scoring settings (date_range drives the date signal)
            learning: Learning service supplying the feedback bias; without one
                the bias is always 0
        """
        self.settings = settings or ReconcileSettings()
        self.learning = learning

    def score_candidate(
        self, source: Record, target: Record, record: Optional[LearningRecord] = None
    ) -> tuple[float, SignalScores]:
        """Compute the weighted score and the per-signal scores of one pair."""
        bank_tx, gl_entry = _pair(source, target)
        scores = SignalScores(
            amount=calculate_amount_score(source.amount, target.amount),
            text=calculate_text_score(match_text(source), match_text(target)),
            date=calculate_date_score(source.date, target.date, self.settings.date_range),
            ref=calculate_ref_score(bank_tx, gl_entry),
            learning_bias=learning_bias(record, bank_tx, gl_entry) if record is not None else 0.0,
        )
        score = (
            AMOUNT_SIGNAL_WEIGHT * scores.amount
            + TEXT_SIGNAL_WEIGHT * scores.text
            + DATE_SIGNAL_WEIGHT * scores.date
            + REF_SIGNAL_WEIGHT * scores.ref
            + scores.learning_bias
        )
        return score, scores

    def suggest(self, source: Record, targets: Sequence[Record]) -> list[Suggestion]:
        """Rank candidates for a source record.

        Every target scoring at least SUGGESTION_THRESHOLD is kept. When none
        reaches HIGH_CONFIDENCE_SCORE, 2- and 3-way combinations whose amounts
        sum to the source are added as split suggestions.

        Args:
            source: The unmatched record to find a partner for
            targets: Unmatched records on the opposite side

        Returns:
            Up to MAX_SUGGESTIONS suggestions, highest score first
        """
        record = self.learning.load() if self.learning is not None else None
        suggestions = []

        for target in targets:
            score, scores = self.score_candidate(source, target, record)
            if score < SUGGESTION_THRESHOLD:
                continue
            bank_tx, gl_entry = _pair(source, target)
            suggestions.append(
                Suggestion(
                    score=score,
                    scores=scores,
                    bank_transaction=bank_tx,
                    gl_entry=gl_entry,
                    target_items=(target,),
                    reasons=tuple(build_reasons(bank_tx, gl_entry, scores)),
                )
            )

        if not any(s.score >= HIGH_CONFIDENCE_SCORE for s in suggestions):
            source_amount = abs(source.amount)
            for items in find_subset_matches(source_amount, targets):
                total = sum((abs(item.amount) for item in items), Decimal("0"))
                bank_tx, gl_entry = _pair(source, items[0])
                reason = Reason(
                    "$",
                    f"{len(items)} items sum to {format_currency(total)} "
                    f"(target: {format_currency(source_amount)})",
                    "Split",
                )
                suggestions.append(
                    Suggestion(
                        score=SPLIT_SCORE,
                        scores=SignalScores(amount=SPLIT_AMOUNT_SCORE),
                        bank_transaction=bank_tx,
                        gl_entry=gl_entry,
                        target_items=items,
                        is_split=True,
                        reasons=(reason,),
                    )
                )

        suggestions.sort(key=lambda s: s.score, reverse=True)
        log.debug(
            "Smart match for %r: %d candidates, keeping %d",
            source.description,
            len(suggestions),
            min(len(suggestions), MAX_SUGGESTIONS),
        )
        return suggestions[:MAX_SUGGESTIONS]
