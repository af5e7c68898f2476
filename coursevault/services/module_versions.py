"""Module version manager.

A module is a stable identity; its block sequence lives in immutable,
numbered versions. Editing creates version N+1 and then tries to drop
version N, which only succeeds when no visit is pinned to it.
"""
import logging
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from coursevault.core.exceptions import IntegrityViolation, NotFoundError
from coursevault.models import (
    Block,
    BlockType,
    ContentBlock,
    KnowledgePointBlock,
    Module,
    ModuleVersion,
    Visit,
)
from coursevault.schemas import BlockInput
from coursevault.services.content_store import ContentStore

logger = logging.getLogger(__name__)


class ModuleVersionManager:
    def __init__(self, db: Session, content_store: Optional[ContentStore] = None):
        self.db = db
        self.content = content_store or ContentStore(db)

    def get_module(self, module_id: int) -> Module:
        module = self.db.query(Module).filter(Module.id == module_id).first()
        if module is None:
            raise NotFoundError(f"Module {module_id} not found")
        return module

    def create_module(self, course_id: int, title: str, description: str) -> Module:
        """New module with an empty version 1."""
        module = Module(course_id=course_id)
        self.db.add(module)
        self.db.flush()
        self.create_version(module.id, title, description)
        return module

    def latest_version(self, module_id: int) -> ModuleVersion:
        version = self.db.query(ModuleVersion).filter(
            ModuleVersion.module_id == module_id
        ).order_by(ModuleVersion.version_number.desc()).first()
        if version is None:
            raise NotFoundError(f"Module {module_id} has no versions")
        return version

    def get_version(self, module_id: int, version_number: int) -> Optional[ModuleVersion]:
        return self.db.query(ModuleVersion).filter(
            ModuleVersion.module_id == module_id,
            ModuleVersion.version_number == version_number,
        ).first()

    def create_version(self, module_id: int, title: str, description: str) -> ModuleVersion:
        """Write version max+1 (1 for a fresh module).

        A concurrent creator can pick the same number; the unique constraint
        rejects the loser at flush time and the transaction rolls back.
        """
        current = self.db.query(func.max(ModuleVersion.version_number)).filter(
            ModuleVersion.module_id == module_id
        ).scalar() or 0
        version = ModuleVersion(
            module_id=module_id,
            version_number=current + 1,
            title=title,
            description=description,
        )
        self.db.add(version)
        self.db.flush()
        logger.info("Created module %s version %s", module_id, version.version_number)
        return version

    def update_metadata(self, module_id: int, title: str, description: str) -> ModuleVersion:
        """Retitle the latest version in place; the version number stays."""
        version = self.latest_version(module_id)
        version.title = title
        version.description = description
        self.db.flush()
        return version

    # Blocks

    def replace_blocks(self, version: ModuleVersion, blocks: Sequence[BlockInput]) -> List[Block]:
        """Insert the block sequence of a freshly created version, index order."""
        if self.block_count(version.id):
            raise IntegrityViolation(f"Module version {version.id} already has blocks")

        created = []
        for idx, item in enumerate(blocks):
            block = Block(module_version_id=version.id, block_index=idx, block_type=BlockType(item.type).value)
            self.db.add(block)
            self.db.flush()
            if block.block_type == BlockType.CONTENT.value:
                self.db.add(ContentBlock(block_id=block.id, content_id=self.content.put_content(item.text)))
            else:
                self.db.add(KnowledgePointBlock(block_id=block.id, knowledge_point_id=item.knowledge_point_id))
            created.append(block)
        self.db.flush()
        return created

    def block_count(self, version_id: int) -> int:
        return self.db.query(func.count(Block.id)).filter(Block.module_version_id == version_id).scalar() or 0

    def question_count(self, version_id: int) -> int:
        return self.db.query(func.count(Block.id)).filter(
            Block.module_version_id == version_id,
            Block.block_type == BlockType.KNOWLEDGE_POINT.value,
        ).scalar() or 0

    def get_block(self, version_id: int, block_index: int) -> Block:
        block = self.db.query(Block).filter(
            Block.module_version_id == version_id,
            Block.block_index == block_index,
        ).first()
        if block is None:
            raise NotFoundError(f"Block {block_index} not found")
        return block

    def knowledge_point_ids(self, version_id: int) -> List[int]:
        """Knowledge points of the version's question blocks, in block order."""
        rows = (
            self.db.query(KnowledgePointBlock.knowledge_point_id)
            .join(Block, Block.id == KnowledgePointBlock.block_id)
            .filter(Block.module_version_id == version_id)
            .order_by(Block.block_index)
            .all()
        )
        return [row[0] for row in rows]

    # Reclamation

    def visit_count(self, module_id: int, version_number: int) -> int:
        return (
            self.db.query(func.count(Visit.id))
            .join(ModuleVersion, ModuleVersion.id == Visit.module_version_id)
            .filter(
                ModuleVersion.module_id == module_id,
                ModuleVersion.version_number == version_number,
            )
            .scalar()
            or 0
        )

    def _delete_version(self, version: ModuleVersion) -> List[int]:
        scope = self.content.content_ids_for_versions([version.id])
        self.db.delete(version)
        self.db.flush()
        return self.content.reclaim_unreferenced(scope)

    def delete_version_if_unpinned(self, module_id: int, version_number: int) -> bool:
        """Drop one version and its exclusive content unless a visit pins it."""
        if version_number < 1:
            return False
        version = self.get_version(module_id, version_number)
        if version is None:
            return False
        pinned = self.visit_count(module_id, version_number)
        if pinned:
            logger.info("Keeping module %s version %s (pinned by %d visits)", module_id, version_number, pinned)
            return False
        reclaimed = self._delete_version(version)
        logger.info(
            "Deleted module %s version %s (%d content rows reclaimed)",
            module_id, version_number, len(reclaimed),
        )
        return True

    def sweep_unpinned_versions(self, module_id: int) -> List[int]:
        """Delete every non-latest version nobody is pinned to.

        Edits only look at the immediately preceding version, so versions
        skipped while pinned linger until this runs. Returns the deleted
        version numbers.
        """
        latest = self.latest_version(module_id)
        candidates = self.db.query(ModuleVersion).filter(
            ModuleVersion.module_id == module_id,
            ModuleVersion.version_number < latest.version_number,
        ).order_by(ModuleVersion.version_number).all()
        deleted = []
        for version in candidates:
            if self.visit_count(module_id, version.version_number):
                continue
            deleted.append(version.version_number)
            self._delete_version(version)
        logger.info("Swept module %s: deleted versions %s", module_id, deleted)
        return deleted

    def delete_module(self, module: Module) -> List[int]:
        """Delete a module with every version, block and visit.

        Content reachable only through this module is reclaimed.
        """
        version_ids = [row[0] for row in self.db.query(ModuleVersion.id).filter(ModuleVersion.module_id == module.id).all()]
        scope = self.content.content_ids_for_versions(version_ids)
        module_id = module.id
        self.db.delete(module)
        self.db.flush()
        reclaimed = self.content.reclaim_unreferenced(scope)
        logger.info("Deleted module %s (%d content rows reclaimed)", module_id, len(reclaimed))
        return reclaimed
