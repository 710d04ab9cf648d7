from sqlalchemy import Column, DateTime, Integer, Text, JSON, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from erplay.core.database import Base
from erplay.core.types import GUID, generate_uuid
from erplay.models.user import enum_values


class ClaimStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Claim(Base):
    """Student dispute over the official answer of a question"""
    __tablename__ = "claims"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    status = Column(
        SQLEnum(ClaimStatus, name="claim_status", values_callable=enum_values),
        default=ClaimStatus.PENDING,
        nullable=False,
        index=True,
    )

    question_id = Column(GUID, ForeignKey("questions.id", ondelete="SET NULL"), nullable=True, index=True)
    test_result_id = Column(GUID, ForeignKey("test_results.id", ondelete="SET NULL"), nullable=True, index=True)
    diagram_id = Column(GUID, ForeignKey("diagrams.id", ondelete="SET NULL"), nullable=True)
    student_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    prompt_snapshot = Column(Text, nullable=False)
    options_snapshot = Column(JSON, nullable=False)
    chosen_index = Column(Integer, nullable=False)
    correct_index_at_submission = Column(Integer, nullable=False)
    explanation = Column(Text, nullable=False)

    reviewer_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewer_comment = Column(Text, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    question = relationship("Question")
    test_result = relationship("TestResult", back_populates="claims")
    diagram = relationship("Diagram")
    student = relationship("User", foreign_keys=[student_id])
    reviewer = relationship("User", foreign_keys=[reviewer_id])
