"""Upvote model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from backend.database import Base


class Upvote(Base):
    """One user's vote on one question: upvote when True, downvote when False.

    A missing row means no vote; unvoting deletes the row.
    """
    __tablename__ = "upvotes"
    __table_args__ = (UniqueConstraint("question_id", "user_id", name="uq_upvotes_question_user"),)

    id = Column(Integer, primary_key=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    upvote = Column(Boolean, nullable=False)

    question = relationship("Question", back_populates="upvotes")
