"""Quiz model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from backend.database import Base


class QuizQuestion(Base):
    """Membership of a question in a quiz, ordered by ``position``."""
    __tablename__ = "quiz_questions"

    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), primary_key=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True)
    position = Column(Integer, nullable=False, default=0)

    quiz = relationship("Quiz", back_populates="memberships")
    question = relationship("Question", back_populates="quiz_memberships")


class Quiz(Base):
    """A named set of verified questions. Managed by admins."""
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    is_public = Column(Boolean, nullable=False, default=False)

    memberships = relationship(
        "QuizQuestion",
        back_populates="quiz",
        order_by="QuizQuestion.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    attempts = relationship("Attempt", back_populates="quiz", cascade="all, delete-orphan")

    @property
    def question_ids(self) -> list[int]:
        return [membership.question_id for membership in self.memberships]
