"""Point model."""
from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from coursevault.db.base import Base


class Point(Base):
    """Points awarded once per (user, module) on completion."""

    __tablename__ = "points"
    __table_args__ = (
        UniqueConstraint("user_id", "module_id", name="uq_point_user_module"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    module_id = Column(Integer, ForeignKey("modules.id", ondelete="CASCADE"), nullable=False)
    count = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    module = relationship("Module", back_populates="points")
