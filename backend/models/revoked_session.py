"""Revoked session token definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from backend.database import Base


class RevokedSession(Base):
    """A logged-out session token, kept until the token would have expired."""
    __tablename__ = "revoked_sessions"

    jti = Column(String, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
