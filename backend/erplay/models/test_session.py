from sqlalchemy import (
    Column, String, DateTime, Integer, Float, Boolean, Text, JSON, ForeignKey, Enum as SQLEnum
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from erplay.core.database import Base
from erplay.core.types import GUID, generate_uuid
from erplay.models.user import enum_values


class TestMode(str, enum.Enum):
    __test__ = False  # not a pytest class

    LEARNING = "learning"
    EXAM = "exam"
    ERRORS = "errors"


class TestSession(Base):
    """One run of questions over a diagram by a user"""
    __tablename__ = "test_sessions"
    __test__ = False  # not a pytest class

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    diagram_id = Column(GUID, ForeignKey("diagrams.id", ondelete="CASCADE"), nullable=False, index=True)
    mode = Column(SQLEnum(TestMode, name="test_mode", values_callable=enum_values), nullable=False)

    total_questions = Column(Integer, nullable=False, default=0)
    correct_count = Column(Integer, nullable=False, default=0)
    incorrect_count = Column(Integer, nullable=False, default=0)
    duration_seconds = Column(Integer, nullable=True)
    score = Column(Float, nullable=True)  # 0-10, exam mode only
    session_metadata = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User")
    diagram = relationship("Diagram")
    results = relationship(
        "TestResult",
        back_populates="session",
        order_by="TestResult.order_index",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class TestResult(Base):
    """Per-question snapshot and answer inside a session"""
    __tablename__ = "test_results"
    __test__ = False

    id = Column(GUID, primary_key=True, default=generate_uuid)
    session_id = Column(GUID, ForeignKey("test_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(GUID, ForeignKey("questions.id", ondelete="SET NULL"), nullable=True, index=True)
    order_index = Column(Integer, nullable=False)

    prompt_snapshot = Column(Text, nullable=False)
    options_snapshot = Column(JSON, nullable=False)
    correct_index_at_test = Column(Integer, nullable=False)

    selected_index = Column(Integer, nullable=True)
    used_hint = Column(Boolean, nullable=False, default=False)
    revealed_answer = Column(Boolean, nullable=False, default=False)
    attempts_count = Column(Integer, nullable=False, default=0)
    time_spent_seconds = Column(Integer, nullable=False, default=0)
    is_correct = Column(Boolean, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    session = relationship("TestSession", back_populates="results")
    question = relationship("Question")
    claims = relationship("Claim", back_populates="test_result", order_by="Claim.created_at")


class TestEvent(Base):
    """Append-only event log entry of a session"""
    __tablename__ = "test_events"
    __test__ = False

    id = Column(GUID, primary_key=True, default=generate_uuid)
    session_id = Column(GUID, ForeignKey("test_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    result_id = Column(GUID, ForeignKey("test_results.id", ondelete="SET NULL"), nullable=True)
    type = Column(String(80), nullable=False)
    payload = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
