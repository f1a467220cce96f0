"""SQLAlchemy models for the bankrec learning store."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Float,
    Numeric,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class LearningProfile(Base):
    """Learning profile model, one per learning identity."""

    __tablename__ = "learning_profiles"

    id = Column(Integer, primary_key=True)
    identity = Column(String, unique=True, nullable=False)
    version = Column(Integer, default=1, nullable=False)
    total_accepted = Column(Integer, default=0, nullable=False)
    total_denied = Column(Integer, default=0, nullable=False)
    last_updated = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC).replace(tzinfo=None), nullable=False)

    # Relationships
    patterns = relationship(
        "LearningPattern", back_populates="profile", cascade="all, delete-orphan"
    )
    feedback = relationship(
        "LearningFeedback",
        back_populates="profile",
        cascade="all, delete-orphan",
        order_by="LearningFeedback.id",
    )


class LearningPattern(Base):
    """Accept/deny tallies for one (dimension, key, target) pattern."""

    __tablename__ = "learning_patterns"

    id = Column(Integer, primary_key=True)
    profile_id = Column(Integer, ForeignKey("learning_profiles.id"), nullable=False)
    dimension = Column(String, nullable=False)
    pattern_key = Column(String, nullable=False)
    target_key = Column(String, nullable=False)
    accepted = Column(Integer, default=0, nullable=False)
    denied = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "profile_id", "dimension", "pattern_key", "target_key", name="uq_learning_pattern"
        ),
    )

    # Relationships
    profile = relationship("LearningProfile", back_populates="patterns")


class LearningFeedback(Base):
    """One entry of the capped feedback log."""

    __tablename__ = "learning_feedback"

    id = Column(Integer, primary_key=True)
    profile_id = Column(Integer, ForeignKey("learning_profiles.id"), nullable=False)
    timestamp = Column(DateTime, nullable=False)
    action = Column(String, nullable=False)
    bank_description = Column(String, nullable=True)
    bank_amount = Column(Numeric(14, 2), nullable=False)
    gl_account = Column(String, nullable=True)
    gl_description = Column(String, nullable=True)
    score = Column(Float, nullable=False)

    # Relationships
    profile = relationship("LearningProfile", back_populates="feedback")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
