"""Question, choice, explanation and answer models."""
from datetime import datetime
from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from coursevault.db.base import Base


class Question(Base):
    """A question in a knowledge point pool.

    `latest` is False for retired generations that are kept because a
    question order or an answer still points at them.
    """

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    knowledge_point_id = Column(Integer, ForeignKey("knowledge_points.id", ondelete="CASCADE"), nullable=False, index=True)
    content_id = Column(Integer, ForeignKey("content.id"), nullable=False, index=True)
    latest = Column(Boolean, nullable=False, default=True)

    # Relationships
    knowledge_point = relationship("KnowledgePoint", back_populates="questions")
    content = relationship("Content")
    choices = relationship("Choice", back_populates="question", cascade="all, delete-orphan", passive_deletes=True, order_by="Choice.id")
    explanation = relationship("Explanation", uselist=False, cascade="all, delete-orphan", passive_deletes=True)


class Choice(Base):
    """Choice model. Insertion order is display order."""

    __tablename__ = "choices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    content_id = Column(Integer, ForeignKey("content.id"), nullable=False, index=True)
    correct = Column(Boolean, nullable=False, default=False)

    # Relationships
    question = relationship("Question", back_populates="choices")
    content = relationship("Content")


class Explanation(Base):
    """At most one explanation per question."""

    __tablename__ = "explanations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    content_id = Column(Integer, ForeignKey("content.id"), nullable=False, index=True)

    content = relationship("Content")


class Answer(Base):
    """A user's chosen choice for a question, overwritten on re-answer."""

    __tablename__ = "answers"
    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_answer_user_question"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    choice_id = Column(Integer, ForeignKey("choices.id", ondelete="CASCADE"), nullable=False)
    answered_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
