from sqlalchemy import Column, DateTime, Integer, ForeignKey
from datetime import datetime

from erplay.core.database import Base
from erplay.core.types import GUID, generate_uuid


class Rating(Base):
    """Star rating a user gave to a question"""
    __tablename__ = "ratings"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    rating = Column(Integer, nullable=False)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(GUID, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
