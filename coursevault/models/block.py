"""Block models."""
import enum
from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from coursevault.db.base import Base


class BlockType(str, enum.Enum):
    CONTENT = "content"
    KNOWLEDGE_POINT = "knowledge_point"


class Block(Base):
    """One ordered slot of a module version."""

    __tablename__ = "blocks"
    __table_args__ = (
        UniqueConstraint("module_version_id", "block_index", name="uq_block_version_index"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    module_version_id = Column(Integer, ForeignKey("module_versions.id", ondelete="CASCADE"), nullable=False, index=True)
    block_index = Column(Integer, nullable=False)
    block_type = Column(String(20), nullable=False)  # content / knowledge_point

    # Relationships
    module_version = relationship("ModuleVersion", back_populates="blocks")
    content_block = relationship("ContentBlock", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    knowledge_point_block = relationship("KnowledgePointBlock", uselist=False, cascade="all, delete-orphan", passive_deletes=True)


class ContentBlock(Base):
    """Binds a content block to its text."""

    __tablename__ = "content_blocks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    block_id = Column(Integer, ForeignKey("blocks.id", ondelete="CASCADE"), nullable=False, unique=True)
    content_id = Column(Integer, ForeignKey("content.id"), nullable=False, index=True)

    content = relationship("Content")


class KnowledgePointBlock(Base):
    """Binds a knowledge-point block to a question pool."""

    __tablename__ = "knowledge_point_blocks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    block_id = Column(Integer, ForeignKey("blocks.id", ondelete="CASCADE"), nullable=False, unique=True)
    knowledge_point_id = Column(Integer, ForeignKey("knowledge_points.id"), nullable=False, index=True)

    knowledge_point = relationship("KnowledgePoint")
