"""Tests for the reconciliation session operations."""

from decimal import Decimal

import pytest

from bankrec.database.base import LearningStore
from bankrec.domain.entities import LearningRecord
from bankrec.domain.errors import NotFoundError, ValidationError
from bankrec.domain.learning import LearningService
from bankrec.domain.session import (
    ReconciliationSession,
    combine_bank_transactions,
    combine_gl_entries,
)
from factories import make_bank, make_gl


class FailingStore(LearningStore):
    """Learning store whose saves always fail."""

    def connect(self):
        pass

    def disconnect(self):
        pass

    def initialize_schema(self):
        pass

    def load(self, identity):
        return LearningRecord()

    def save(self, identity, record):
        raise RuntimeError("disk full")


def snapshot(session):
    return (
        list(session.matched),
        list(session.unmatched_bank),
        list(session.unmatched_gl),
    )


@pytest.fixture
def split_session(learning_service):
    """Two bank items that together pay one GL entry."""
    banks = [
        make_bank("150.00", "Office Depot Supplies"),
        make_bank("350.25", "Office Depot Furniture"),
    ]
    gls = [make_gl("500.25", account_number="OD-1", description="Office Depot supplies")]
    return ReconciliationSession.from_records(banks, gls, learning=learning_service)


@pytest.fixture
def single_session(learning_service):
    """One undated bank line the automatic matcher leaves for smart match."""
    banks = [make_bank("100.00", "Rent payment", txn_date=None)]
    gls = [make_gl("100.00", account_number="6100", description="Rent payment")]
    return ReconciliationSession.from_records(banks, gls, learning=learning_service)


class TestSmartMatch:
    """Tests for accepting and denying suggestions."""

    def test_accept_single(self, single_session, learning_service):
        """Test accepting a one-to-one suggestion."""
        bank_tx = single_session.unmatched_bank[0]
        gl_entry = single_session.unmatched_gl[0]
        suggestions = single_session.suggest("bank", 0)
        assert len(suggestions) == 1

        match = single_session.accept_suggestion(0)

        assert match.match_type == "Smart Match"
        assert match.bank_transaction is bank_tx
        assert match.gl_entry is gl_entry
        assert match.match_score == suggestions[0].score
        assert match.is_manual and match.is_smart_match
        assert single_session.unmatched_bank == []
        assert single_session.unmatched_gl == []
        assert single_session.suggestions == []
        assert learning_service.load().total_accepted == 1

    def test_accept_split_and_unmatch(self, split_session, learning_service):
        """Test accepting a split and restoring its records afterwards."""
        banks = list(split_session.unmatched_bank)
        gl_entry = split_session.unmatched_gl[0]
        assert split_session.matched == []

        suggestions = split_session.suggest("gl", 0)
        assert suggestions[0].is_split
        match = split_session.accept_suggestion(0)

        assert match.match_type == "Smart Match (2-way split)"
        assert match.gl_entry is gl_entry
        assert match.bank_transaction.combined_items == tuple(banks)
        assert match.bank_transaction.amount == Decimal("500.25")
        assert match.is_multi_match
        assert match.matched_count == 2
        assert split_session.unmatched_bank == []
        assert split_session.unmatched_gl == []
        record = learning_service.load()
        assert record.total_accepted == 1
        assert record.feedback_log[0].bank_description == "Office Depot Supplies"

        split_session.unmatch(0)

        assert split_session.matched == []
        assert len(split_session.unmatched_bank) == 2
        assert all(
            any(tx is original for tx in split_session.unmatched_bank) for original in banks
        )
        assert split_session.unmatched_gl[0] is gl_entry
        assert learning_service.load().total_accepted == 1

    def test_deny(self, single_session, learning_service):
        """Test that denying records feedback and moves nothing."""
        before = snapshot(single_session)
        suggestions = single_session.suggest("bank", 0)

        denied = single_session.deny_suggestion(0)

        assert denied is suggestions[0]
        assert single_session.suggestions == []
        assert snapshot(single_session) == before
        assert learning_service.load().total_denied == 1

    def test_accept_without_source(self, single_session):
        """Test that suggestions must be requested first."""
        with pytest.raises(ValidationError, match="request suggestions first"):
            single_session.accept_suggestion(0)
        with pytest.raises(ValidationError):
            single_session.deny_suggestion(0)

    def test_suggestion_index_out_of_range(self, single_session):
        """Test that a bad suggestion index leaves the session unchanged."""
        single_session.suggest("bank", 0)
        before = snapshot(single_session)

        with pytest.raises(NotFoundError, match="Suggestion 3 not found"):
            single_session.accept_suggestion(3)

        assert snapshot(single_session) == before
        assert len(single_session.suggestions) == 1

    def test_stale_suggestion(self, single_session):
        """Test that a suggestion whose records moved is rejected."""
        single_session.suggest("bank", 0)
        single_session.unmatched_gl.clear()

        with pytest.raises(ValidationError, match="out of date"):
            single_session.accept_suggestion(0)

        assert len(single_session.unmatched_bank) == 1

    def test_failed_feedback_moves_nothing(self):
        """Test that a failing store leaves the lists untouched."""
        session = ReconciliationSession.from_records(
            [make_bank("100.00", "Rent payment", txn_date=None)],
            [make_gl("100.00", account_number="6100", description="Rent payment")],
            learning=LearningService(FailingStore(), "tester"),
        )
        session.suggest("bank", 0)
        before = snapshot(session)

        with pytest.raises(RuntimeError):
            session.accept_suggestion(0)

        assert snapshot(session) == before
        assert len(session.suggestions) == 1

    def test_invalid_side_and_index(self, single_session):
        """Test suggest argument validation."""
        with pytest.raises(ValidationError, match="Unknown side"):
            single_session.suggest("ledger", 0)
        with pytest.raises(NotFoundError, match="Unmatched bank transaction 5 not found"):
            single_session.suggest("bank", 5)

    def test_works_without_learning(self):
        """Test that a session without a learning service still accepts."""
        session = ReconciliationSession.from_records(
            [make_bank("100.00", "Rent payment", txn_date=None)],
            [make_gl("100.00", account_number="6100", description="Rent payment")],
        )
        session.suggest("bank", 0)

        assert session.accept_suggestion(0).match_type == "Smart Match"


class TestManualMatch:
    """Tests for confirm_match."""

    @pytest.fixture
    def session(self):
        banks = [make_bank("500.25", "Office Depot", txn_date=None)]
        gls = [
            make_gl("150.00", account_number="OD-1", description="Supplies"),
            make_gl("350.25", account_number="OD-2", description="Furniture"),
        ]
        return ReconciliationSession.from_records(banks, gls)

    def test_one_to_one(self, session):
        """Test a manual one-to-one match."""
        gl_entry = session.unmatched_gl[1]

        match = session.confirm_match("bank", 0, [1])

        assert match.match_type == "Manual Match"
        assert match.gl_entry is gl_entry
        assert match.match_score == 1.0
        assert match.is_manual
        assert session.unmatched_bank == []
        assert len(session.unmatched_gl) == 1

    def test_multi_match_and_unmatch(self, session):
        """Test combining several GL entries against one bank line."""
        gls = list(session.unmatched_gl)

        match = session.confirm_match("bank", 0, [0, 1])

        assert match.match_type == "Multi-Match (2 GL → 1 Bank)"
        assert match.gl_entry.account_number == "OD-1, OD-2"
        assert match.gl_entry.amount == Decimal("500.25")
        assert match.gl_entry.description == "[2 items combined] Supplies; Furniture"
        assert match.gl_entry.type == "Combined"
        assert session.unmatched_gl == []

        session.unmatch(0)

        assert len(session.unmatched_gl) == 2
        assert all(any(e is original for e in session.unmatched_gl) for original in gls)
        assert len(session.unmatched_bank) == 1

    def test_bank_to_gl_multi_match(self):
        """Test combining several bank lines against one GL entry."""
        session = ReconciliationSession.from_records(
            [
                make_bank("150.00", "Part one", check_number="101", txn_date=None),
                make_bank("350.25", "Part two", check_number="102", txn_date=None),
            ],
            [make_gl("500.25", account_number="OD-1")],
        )

        match = session.confirm_match("gl", 0, [0, 1])

        assert match.match_type == "Multi-Match (2 Bank → 1 GL)"
        assert match.bank_transaction.transaction_number == "101, 102"
        assert match.bank_transaction.amount == Decimal("500.25")

    def test_empty_selection(self, session):
        """Test that at least one target is required."""
        before = snapshot(session)

        with pytest.raises(ValidationError, match="select one or more"):
            session.confirm_match("bank", 0, [])

        assert snapshot(session) == before

    def test_duplicate_selection(self, session):
        """Test that a target cannot be selected twice."""
        before = snapshot(session)

        with pytest.raises(ValidationError, match="selected more than once"):
            session.confirm_match("bank", 0, [0, 0])

        assert snapshot(session) == before

    def test_target_out_of_range(self, session):
        """Test that a missing target leaves the session unchanged."""
        before = snapshot(session)

        with pytest.raises(NotFoundError, match="Unmatched GL entry 9 not found"):
            session.confirm_match("bank", 0, [0, 9])

        assert snapshot(session) == before


class TestCustomMatch:
    """Tests for create_custom_match."""

    def test_bank_source(self):
        """Test a custom GL counterpart for a bank fee."""
        session = ReconciliationSession.from_records([make_bank("12.50", "Service fee")], [])
        bank_tx = session.unmatched_bank[0]

        match = session.create_custom_match("bank", 0, "fee", "-12.50", description="Bank fee")

        assert match.match_type == "Custom Fee"
        assert match.bank_transaction is bank_tx
        assert match.gl_entry.account_number == "CUSTOM"
        assert match.gl_entry.amount == Decimal("12.50")
        assert match.gl_entry.is_custom
        assert match.is_custom and match.is_manual

        session.unmatch(0)

        assert session.unmatched_bank == [bank_tx]
        assert session.unmatched_gl == []

    def test_gl_source(self):
        """Test a custom bank counterpart for a GL adjustment."""
        session = ReconciliationSession.from_records([], [make_gl("10.00", account_number="9000")])

        match = session.create_custom_match(
            "gl", 0, "adjustment", 10, account_number="ADJ-1", notes="Year-end"
        )

        assert match.match_type == "Custom Adjustment"
        assert match.bank_transaction.transaction_number == "ADJ-1"
        assert match.bank_transaction.memo == "Year-end"
        assert match.bank_transaction.amount == Decimal("10.00")
        assert match.notes == "Year-end"
        assert session.unmatched_gl == []

    def test_type_required(self):
        """Test that a custom match needs a type."""
        session = ReconciliationSession.from_records([make_bank("1.00")], [])

        with pytest.raises(ValidationError, match="type is required"):
            session.create_custom_match("bank", 0, "  ", "1.00")

        assert len(session.unmatched_bank) == 1


def test_unmatch_out_of_range():
    """Test undoing a match that does not exist."""
    session = ReconciliationSession.from_records([], [])

    with pytest.raises(NotFoundError, match="Match 0 not found"):
        session.unmatch(0)


def test_summary():
    """Test counts and totals."""
    session = ReconciliationSession.from_records(
        [make_bank("100.00"), make_bank("40.00", "Coffee")],
        [make_gl("100.00"), make_gl("7.25"), make_gl("2.75")],
    )

    summary = session.summary()

    assert summary.total_matched == 1
    assert summary.total_matched_amount == Decimal("100.00")
    assert summary.total_unmatched_bank == 1
    assert summary.total_unmatched_bank_amount == Decimal("40.00")
    assert summary.total_unmatched_gl == 2
    assert summary.total_unmatched_gl_amount == Decimal("10.00")


def test_combine_helpers_keep_single_description():
    """Test that combining one record keeps its description."""
    gl_entry = make_gl("5.00", description="Only")
    bank_tx = make_bank("5.00", "Only")

    assert combine_gl_entries([gl_entry]).description == "Only"
    assert combine_bank_transactions([bank_tx]).combined_items == (bank_tx,)
