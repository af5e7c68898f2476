"""Visit and question order models."""
from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from coursevault.db.base import Base


class Visit(Base):
    """A user's progress cursor, pinned to one module version for its lifetime."""

    __tablename__ = "visits"
    __table_args__ = (
        UniqueConstraint("user_id", "module_version_id", name="uq_visit_user_version"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    module_version_id = Column(Integer, ForeignKey("module_versions.id", ondelete="CASCADE"), nullable=False, index=True)
    block_index = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    module_version = relationship("ModuleVersion", back_populates="visits")
    question_orders = relationship(
        "QuestionOrder",
        back_populates="visit",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="QuestionOrder.question_index",
    )


class QuestionOrder(Base):
    """The question shown for a knowledge point within a visit."""

    __tablename__ = "question_orders"
    __table_args__ = (
        UniqueConstraint("visit_id", "knowledge_point_id", "question_id", name="uq_question_order"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    visit_id = Column(Integer, ForeignKey("visits.id", ondelete="CASCADE"), nullable=False, index=True)
    knowledge_point_id = Column(Integer, ForeignKey("knowledge_points.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    question_index = Column(Integer, nullable=False)

    # Relationships
    visit = relationship("Visit", back_populates="question_orders")
