"""Visit tracker: a per-user progress cursor pinned to one module version."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from coursevault.core.exceptions import IntegrityViolation
from coursevault.models import ModuleVersion, Visit
from coursevault.services.module_versions import ModuleVersionManager

logger = logging.getLogger(__name__)


class VisitTracker:
    def __init__(self, db: Session, versions: Optional[ModuleVersionManager] = None):
        self.db = db
        self.versions = versions or ModuleVersionManager(db)

    def get_visit(self, user_id: int, module_id: int) -> Optional[Visit]:
        """The user's visit to any version of the module, if one exists."""
        return (
            self.db.query(Visit)
            .join(ModuleVersion, ModuleVersion.id == Visit.module_version_id)
            .filter(Visit.user_id == user_id, ModuleVersion.module_id == module_id)
            .order_by(ModuleVersion.version_number.desc())
            .first()
        )

    def get_or_create_visit(self, user_id: int, module_id: int) -> Visit:
        """Existing visit unchanged, or a new one pinned to the latest version.

        Visits are never migrated forward to newer versions.
        """
        visit = self.get_visit(user_id, module_id)
        if visit is not None:
            return visit

        version = self.versions.latest_version(module_id)
        visit = Visit(user_id=user_id, module_version_id=version.id, block_index=0)
        self.db.add(visit)
        self.db.flush()
        logger.info(
            "User %s started module %s on version %s",
            user_id, module_id, version.version_number,
        )
        return visit

    def block_count(self, visit: Visit) -> int:
        return self.versions.block_count(visit.module_version_id)

    def advance(self, visit: Visit, requested_block_index: int) -> Visit:
        """Move the cursor to `requested_block_index`.

        Rejected past the last block or more than one step beyond the
        frontier. Revisiting an earlier block leaves the cursor where it is.
        """
        count = self.block_count(visit)
        if requested_block_index < 0 or requested_block_index >= count:
            logger.warning("Rejected advance of visit %s to block %s of %s", visit.id, requested_block_index, count)
            raise IntegrityViolation(f"Block {requested_block_index} does not exist")
        if requested_block_index > visit.block_index + 1:
            logger.warning("Rejected skip of visit %s from %s to %s", visit.id, visit.block_index, requested_block_index)
            raise IntegrityViolation("Cannot skip ahead of the next block")
        if requested_block_index > visit.block_index:
            visit.block_index = requested_block_index
            self.db.flush()
        return visit
