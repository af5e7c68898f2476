"""Module, module version and prerequisite models."""
from sqlalchemy import Column, Integer, String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from coursevault.db.base import Base


class Module(Base):
    """Stable identity of a module across edits. Never versioned itself."""

    __tablename__ = "modules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    course = relationship("Course", back_populates="modules")
    versions = relationship(
        "ModuleVersion",
        back_populates="module",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ModuleVersion.version_number",
    )
    points = relationship("Point", back_populates="module", cascade="all, delete-orphan", passive_deletes=True)


class ModuleVersion(Base):
    """Immutable snapshot of a module's block sequence.

    Only title and description may change after creation.
    """

    __tablename__ = "module_versions"
    __table_args__ = (
        UniqueConstraint("module_id", "version_number", name="uq_module_version_number"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    module_id = Column(Integer, ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)

    # Relationships
    module = relationship("Module", back_populates="versions")
    blocks = relationship(
        "Block",
        back_populates="module_version",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Block.block_index",
    )
    visits = relationship("Visit", back_populates="module_version", cascade="all, delete-orphan", passive_deletes=True)


class Prereq(Base):
    """Module `prereq_module_id` must be completed before `module_id` unlocks."""

    __tablename__ = "prereqs"
    __table_args__ = (
        UniqueConstraint("module_id", "prereq_module_id", name="uq_prereq_pair"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    module_id = Column(Integer, ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True)
    prereq_module_id = Column(Integer, ForeignKey("modules.id", ondelete="CASCADE"), nullable=False)
