from sqlalchemy import Column, DateTime, Integer, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from erplay.core.database import Base
from erplay.core.types import GUID, generate_uuid
from erplay.models.user import enum_values


class ReviewStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class QuestionSource(str, enum.Enum):
    CATALOG = "catalog"   # created by a supervisor
    STUDENT = "student"   # proposed by an alumno


class Question(Base):
    """Multiple-choice question attached to a diagram"""
    __tablename__ = "questions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    prompt = Column(Text, nullable=False)
    hint = Column(Text, nullable=False)
    correct_option_index = Column(Integer, nullable=False, default=0)

    status = Column(
        SQLEnum(ReviewStatus, name="review_status", values_callable=enum_values),
        default=ReviewStatus.PENDING,
        nullable=False,
        index=True,
    )
    source = Column(
        SQLEnum(QuestionSource, name="question_source", values_callable=enum_values),
        default=QuestionSource.CATALOG,
        nullable=False,
    )

    diagram_id = Column(GUID, ForeignKey("diagrams.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    reviewed_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    review_comment = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    diagram = relationship("Diagram", back_populates="questions")
    creator = relationship("User", foreign_keys=[creator_id])
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])
    options = relationship(
        "Option",
        back_populates="question",
        order_by="Option.order_index",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def option_texts(self):
        return [o.text for o in sorted(self.options, key=lambda o: o.order_index)]

    def __repr__(self):
        return f"<Question {self.id} {self.status}>"


class Option(Base):
    """Answer option of a question, ordered by order_index"""
    __tablename__ = "options"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    text = Column(Text, nullable=False)
    order_index = Column(Integer, nullable=False)
    question_id = Column(GUID, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)

    question = relationship("Question", back_populates="options")
