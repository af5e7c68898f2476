"""Module prerequisites and unlock checks."""
import logging
from typing import Dict, Iterable, List, Set

from sqlalchemy.orm import Session

from coursevault.core.exceptions import ValidationError
from coursevault.models import Module, Point, Prereq

logger = logging.getLogger(__name__)


def has_cycle(edges: Dict[int, Iterable[int]], root: int) -> bool:
    """True if following prerequisite edges from `root` ever loops back.

    Iterative depth-first search tracking the current path.
    """
    on_path: Set[int] = set()
    done: Set[int] = set()
    stack = [(root, iter(edges.get(root, ())))]
    on_path.add(root)
    while stack:
        node, neighbors = stack[-1]
        nxt = next(neighbors, None)
        if nxt is None:
            stack.pop()
            on_path.discard(node)
            done.add(node)
            continue
        if nxt in on_path:
            return True
        if nxt in done:
            continue
        on_path.add(nxt)
        stack.append((nxt, iter(edges.get(nxt, ()))))
    return False


class PrerequisiteService:
    def __init__(self, db: Session):
        self.db = db

    def prereq_ids(self, module_id: int) -> List[int]:
        rows = self.db.query(Prereq.prereq_module_id).filter(
            Prereq.module_id == module_id
        ).order_by(Prereq.prereq_module_id).all()
        return [row[0] for row in rows]

    def course_edges(self, course_id: int) -> Dict[int, List[int]]:
        rows = (
            self.db.query(Prereq.module_id, Prereq.prereq_module_id)
            .join(Module, Module.id == Prereq.module_id)
            .filter(Module.course_id == course_id)
            .all()
        )
        edges: Dict[int, List[int]] = {}
        for module_id, prereq_id in rows:
            edges.setdefault(module_id, []).append(prereq_id)
        return edges

    def set_prereqs(self, module: Module, prereq_module_ids: Iterable[int]) -> List[int]:
        """Replace the prerequisite set of `module`.

        Every prerequisite must be another module of the same course and the
        resulting graph must stay acyclic.
        """
        wanted = sorted(set(prereq_module_ids))
        if module.id in wanted:
            raise ValidationError("A module cannot be its own prerequisite")
        if wanted:
            same_course = self.db.query(Module.id).filter(
                Module.id.in_(wanted),
                Module.course_id == module.course_id,
            ).count()
            if same_course != len(wanted):
                raise ValidationError("Prerequisites must be modules of the same course")

        edges = self.course_edges(module.course_id)
        edges[module.id] = list(wanted)
        if has_cycle(edges, module.id):
            raise ValidationError("Cannot create cycle in prerequisites")

        self.db.query(Prereq).filter(Prereq.module_id == module.id).delete(synchronize_session=False)
        for prereq_id in wanted:
            self.db.add(Prereq(module_id=module.id, prereq_module_id=prereq_id))
        self.db.flush()
        logger.info("Module %s prerequisites set to %s", module.id, wanted)
        return wanted

    def missing_prereqs(self, user_id: int, module_id: int) -> List[int]:
        """Prerequisites the user has not completed yet."""
        required = self.prereq_ids(module_id)
        if not required:
            return []
        completed = {
            row[0]
            for row in self.db.query(Point.module_id).filter(
                Point.user_id == user_id,
                Point.module_id.in_(required),
            ).all()
        }
        return [m for m in required if m not in completed]

    def is_unlocked(self, user_id: int, module_id: int) -> bool:
        return not self.missing_prereqs(user_id, module_id)
