from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime

from erplay.core.database import Base
from erplay.core.types import GUID, generate_uuid


class Diagram(Base):
    """ER diagram image with its quiz questions"""
    __tablename__ = "diagrams"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), unique=True, nullable=False)
    filename = Column(String(255), nullable=False)
    path = Column(String(500), nullable=False)  # public path, e.g. /uploads/diagrams/<file>

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    questions = relationship(
        "Question",
        back_populates="diagram",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Diagram {self.title}>"
