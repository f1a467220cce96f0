"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the learning record can keep
its nested dict shape while the tables stay flat.
"""

from datetime import UTC, datetime
from typing import Optional

from bankrec.domain import entities as domain
from bankrec.database.models import (
    LearningProfile as ORMLearningProfile,
    LearningPattern as ORMLearningPattern,
    LearningFeedback as ORMLearningFeedback,
)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def feedback_to_domain(orm_feedback: ORMLearningFeedback) -> domain.FeedbackEntry:
    """Convert SQLAlchemy LearningFeedback model to domain FeedbackEntry."""
    return domain.FeedbackEntry(
        timestamp=orm_feedback.timestamp,
        action=orm_feedback.action,
        bank_description=orm_feedback.bank_description or "",
        bank_amount=orm_feedback.bank_amount,
        gl_account=orm_feedback.gl_account or "",
        gl_description=orm_feedback.gl_description or "",
        score=orm_feedback.score,
    )


def feedback_to_orm(entry: domain.FeedbackEntry) -> ORMLearningFeedback:
    """Convert domain FeedbackEntry to a new SQLAlchemy LearningFeedback model."""
    return ORMLearningFeedback(
        timestamp=to_naive_utc(entry.timestamp),
        action=entry.action,
        bank_description=entry.bank_description,
        bank_amount=entry.bank_amount,
        gl_account=entry.gl_account,
        gl_description=entry.gl_description,
        score=entry.score,
    )


def profile_to_domain(orm_profile: ORMLearningProfile) -> domain.LearningRecord:
    """Convert SQLAlchemy LearningProfile (with patterns and feedback) to a LearningRecord."""
    record = domain.LearningRecord(
        version=orm_profile.version,
        last_updated=orm_profile.last_updated,
        total_accepted=orm_profile.total_accepted,
        total_denied=orm_profile.total_denied,
    )
    for orm_pattern in orm_profile.patterns:
        tally = record.tally(orm_pattern.dimension, orm_pattern.pattern_key, orm_pattern.target_key)
        tally.accepted = orm_pattern.accepted
        tally.denied = orm_pattern.denied
    record.feedback_log = [feedback_to_domain(f) for f in orm_profile.feedback]
    return record


def pattern_rows(record: domain.LearningRecord) -> dict[tuple[str, str, str], domain.PatternCount]:
    """Flatten a record's nested pattern tables to (dimension, key, target) rows."""
    rows = {}
    for dimension, keys in record.patterns.items():
        for key, targets in keys.items():
            for target, tally in targets.items():
                rows[(dimension, key, target)] = tally
    return rows


def pattern_key(orm_pattern: ORMLearningPattern) -> tuple[str, str, str]:
    """Return the (dimension, key, target) identity of a stored pattern."""
    return (orm_pattern.dimension, orm_pattern.pattern_key, orm_pattern.target_key)
