"""Abstract learning store interface."""

from abc import ABC, abstractmethod

# Import entities directly to avoid circular import through domain/__init__.py
from bankrec.domain.entities import LearningRecord


class LearningStore(ABC):
    """Abstract persistence interface for smart match learning records.

    Records are keyed by an opaque caller-supplied identity. The engine never
    assumes a storage medium; it only loads a whole record and saves a whole
    record.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the store."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the store."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize storage schema (create tables)."""
        pass

    @abstractmethod
    def load(self, identity: str) -> LearningRecord:
        """Load the learning record for an identity.

        Returns an empty record when nothing has been saved yet.
        """
        pass

    @abstractmethod
    def save(self, identity: str, record: LearningRecord) -> None:
        """Persist the complete learning record for an identity atomically."""
        pass
