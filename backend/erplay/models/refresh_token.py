from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey
from datetime import datetime

from erplay.core.database import Base
from erplay.core.types import GUID, generate_uuid


class RefreshToken(Base):
    """Issued refresh token, rotated on every refresh"""
    __tablename__ = "refresh_tokens"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    token = Column(String(500), unique=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    revoked = Column(Boolean, default=False, nullable=False)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
