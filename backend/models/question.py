"""Question and answer model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from backend.database import Base

DIFFICULTY_LEVELS = ("EASY", "MEDIUM", "HARD")
DEFAULT_DESCRIPTION_MIME = "text/plain"


class Answer(Base):
    """One choice of a multiple-choice question.

    ``key`` is chosen by the uploader and is unique within its question only.
    """
    __tablename__ = "answers"
    __table_args__ = (UniqueConstraint("question_id", "key", name="uq_answers_question_key"),)

    id = Column(Integer, primary_key=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    key = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)


class Question(Base):
    """A crowd-sourced multiple-choice question.

    Invariant: ``correct_answer_key`` equals the key of one of ``answers``.
    """
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    question = Column(Text, unique=True, nullable=False)
    description = Column(Text, nullable=False, default="")
    description_mime = Column(String, nullable=False, default=DEFAULT_DESCRIPTION_MIME)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False, index=True)
    correct_answer_key = Column(Integer, nullable=False)
    correct_answer_explanation = Column(Text, nullable=False, default="")
    uploader_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    difficulty = Column(String, nullable=False)
    verified = Column(Boolean, nullable=False, default=False, index=True)
    generated_from_id = Column(Integer, ForeignKey("questions.id", ondelete="SET NULL"), nullable=True)

    subject = relationship("Subject", lazy="joined")
    answers = relationship(
        "Answer",
        order_by="Answer.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    upvotes = relationship("Upvote", back_populates="question", cascade="all, delete-orphan")
    quiz_memberships = relationship("QuizQuestion", back_populates="question", cascade="all, delete-orphan")
    attempt_answers = relationship("AttemptAnswer", back_populates="question", cascade="all, delete-orphan")

    @property
    def answer_keys(self) -> set[int]:
        return {answer.key for answer in self.answers}
