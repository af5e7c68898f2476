"""Knowledge point model."""
from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from coursevault.db.base import Base


class KnowledgePoint(Base):
    """A labelled pool of interchangeable questions testing one concept."""

    __tablename__ = "knowledge_points"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)

    # Relationships
    course = relationship("Course", back_populates="knowledge_points")
    questions = relationship(
        "Question",
        back_populates="knowledge_point",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Question.id",
    )
