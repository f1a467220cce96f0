"""Domain layer for bankrec application."""

from bankrec.domain.matching import MatchingService
from bankrec.domain.smart_match import SmartMatchService
from bankrec.domain.learning import LearningService
from bankrec.domain.session import ReconciliationSession

__all__ = [
    "MatchingService",
    "SmartMatchService",
    "LearningService",
    "ReconciliationSession",
]
