"""Content store service.

Content-addressed, deduplicating storage for every piece of user-authored
text (content blocks, question bodies, choices, explanations). Rows are
immutable: editing text means inserting new text and letting the old row be
reclaimed once nothing references it.

Reclamation is reachability based. Callers collect the content ids owned by
the unit they are about to delete, delete the unit, then hand those ids to
`reclaim_unreferenced`, which removes exactly the ids no surviving
ContentBlock, Question, Choice or Explanation points at. There are no
reference counters to drift. Both steps must run in the caller's transaction.
"""
import hashlib
import logging
from typing import Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from coursevault.core.exceptions import IntegrityViolation, ValidationError
from coursevault.models import (
    Block,
    Choice,
    Content,
    ContentBlock,
    Explanation,
    Question,
)

logger = logging.getLogger(__name__)

HASH_SIZE = 16


def content_hash(text: str) -> bytes:
    """Digest used as the content address of `text`."""
    return hashlib.blake2b(text.encode("utf-8"), digest_size=HASH_SIZE).digest()


class ContentStore:
    """Put, read and reclaim content rows inside the caller's session."""

    def __init__(self, db: Session):
        self.db = db

    def put_content(self, text: str) -> int:
        """Return the id of the row holding exactly `text`, creating it if needed."""
        if text is None:
            raise ValidationError("Content text is required")
        existing = self.find_content(text)
        if existing is not None:
            if existing.text != text:
                raise IntegrityViolation("Content address collision")
            return existing.id

        content = Content(hash=content_hash(text), text=text)
        self.db.add(content)
        self.db.flush()
        return content.id

    def find_content(self, text: str) -> Optional[Content]:
        return self.db.query(Content).filter(Content.hash == content_hash(text)).first()

    def content_ids_for_versions(self, version_ids: Iterable[int]) -> Set[int]:
        """Content referenced by the content blocks of the given module versions."""
        version_ids = list(version_ids)
        if not version_ids:
            return set()
        rows = (
            self.db.query(ContentBlock.content_id)
            .join(Block, Block.id == ContentBlock.block_id)
            .filter(Block.module_version_id.in_(version_ids))
            .distinct()
            .all()
        )
        return {row[0] for row in rows}

    def content_ids_for_questions(self, question_ids: Iterable[int]) -> Set[int]:
        """Content referenced by the given questions, their choices and explanations."""
        question_ids = list(question_ids)
        if not question_ids:
            return set()
        ids: Set[int] = set()
        for column, key in (
            (Question.content_id, Question.id),
            (Choice.content_id, Choice.question_id),
            (Explanation.content_id, Explanation.question_id),
        ):
            rows = self.db.query(column).filter(key.in_(question_ids)).distinct().all()
            ids.update(row[0] for row in rows)
        return ids

    def referenced_content_ids(self, candidate_ids: Iterable[int]) -> Set[int]:
        """Subset of `candidate_ids` still referenced anywhere in the store."""
        candidate_ids = list(candidate_ids)
        if not candidate_ids:
            return set()
        referenced: Set[int] = set()
        for column in (
            ContentBlock.content_id,
            Question.content_id,
            Choice.content_id,
            Explanation.content_id,
        ):
            rows = self.db.query(column).filter(column.in_(candidate_ids)).distinct().all()
            referenced.update(row[0] for row in rows)
        return referenced

    def reclaim_unreferenced(self, scope_ids: Iterable[int]) -> List[int]:
        """Delete the content in `scope_ids` that nothing references any more.

        Must be called after the structural deletion it accompanies, in the
        same transaction. Returns the reclaimed ids.
        """
        scope = set(scope_ids)
        if not scope:
            return []
        # pending ORM deletes must reach the store before reachability is checked
        self.db.flush()
        orphaned = sorted(scope - self.referenced_content_ids(scope))
        if orphaned:
            self.db.query(Content).filter(Content.id.in_(orphaned)).delete(synchronize_session=False)
            logger.info("Reclaimed %d unreferenced content rows (scope=%d)", len(orphaned), len(scope))
        return orphaned
