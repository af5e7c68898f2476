"""Learning engine.

Student-side flow: enroll, open a module (get or create the pinned visit),
take blocks one at a time, answer knowledge-point questions and complete the
module for points. Each public mutating method is one transaction.
"""
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from coursevault.core.exceptions import IntegrityViolation, NotAuthorizedError, NotFoundError
from coursevault.db.sessions import transaction
from coursevault.models import Block, BlockType, Course, Enrollment, Module, Point, Visit
from coursevault.services.content_store import ContentStore
from coursevault.services.module_versions import ModuleVersionManager
from coursevault.services.prerequisites import PrerequisiteService
from coursevault.services.question_allocator import QuestionOrderAllocator
from coursevault.services.question_bank import QuestionBank
from coursevault.services.scoring import ScoringEngine
from coursevault.services.visit_tracker import VisitTracker

logger = logging.getLogger(__name__)


class LearningEngine:
    def __init__(self, db: Session, rng: Optional[Any] = None, now: Optional[Callable[[], datetime]] = None):
        self.db = db
        content = ContentStore(db)
        self.versions = ModuleVersionManager(db, content)
        self.bank = QuestionBank(db, content)
        self.visits = VisitTracker(db, self.versions)
        self.allocator = QuestionOrderAllocator(db, rng=rng, bank=self.bank)
        self.scoring = ScoringEngine(db, now=now, visits=self.visits, bank=self.bank)
        self.prereqs = PrerequisiteService(db)

    # Enrollment

    def _get_course(self, course_id: int) -> Course:
        course = self.db.query(Course).filter(Course.id == course_id).first()
        if course is None:
            raise NotFoundError(f"Course {course_id} not found")
        return course

    def is_enrolled(self, user_id: int, course_id: int) -> bool:
        return self.db.query(Enrollment.id).filter(
            Enrollment.user_id == user_id,
            Enrollment.course_id == course_id,
        ).first() is not None

    def enroll(self, user_id: int, course_id: int) -> Enrollment:
        """Enroll once; a second attempt is rejected rather than duplicated."""
        with transaction(self.db):
            course = self._get_course(course_id)
            if not course.public and course.user_id != user_id:
                raise NotFoundError(f"Course {course_id} not found")
            if self.is_enrolled(user_id, course.id):
                raise IntegrityViolation("Already enrolled in this course")
            enrollment = Enrollment(user_id=user_id, course_id=course.id)
            self.db.add(enrollment)
            self.db.flush()
            logger.info("User %s enrolled in course %s", user_id, course.id)
        return enrollment

    def _module_for_student(self, user_id: int, module_id: int) -> Module:
        module = self.versions.get_module(module_id)
        if not self.is_enrolled(user_id, module.course_id):
            raise NotAuthorizedError("Not enrolled in this course")
        missing = self.prereqs.missing_prereqs(user_id, module.id)
        if missing:
            logger.warning("User %s blocked from module %s by prerequisites %s", user_id, module.id, missing)
            raise NotAuthorizedError("Complete the prerequisite modules first")
        if self.visits.get_visit(user_id, module.id) is None:
            latest = self.versions.latest_version(module.id)
            if not self.versions.block_count(latest.id):
                # no visit is pinned to an unpublished version
                raise NotFoundError(f"Module {module.id} has no content yet")
        return module

    # Rendering

    def _render_block(self, visit: Visit, block: Block, user_id: int) -> Dict[str, Any]:
        view: Dict[str, Any] = {"index": block.block_index, "type": block.block_type}
        if block.block_type == BlockType.CONTENT.value:
            view["text"] = block.content_block.content.text
        else:
            question = self.allocator.question_for(visit, block.knowledge_point_block.knowledge_point_id)
            view["question"] = self.bank.question_view(question, user_id)
        return view

    def _visit_view(self, visit: Visit, blocks: List[Dict[str, Any]]) -> Dict[str, Any]:
        version = visit.module_version
        return {
            "visit_id": visit.id,
            "module_id": version.module_id,
            "version_number": version.version_number,
            "title": version.title,
            "description": version.description,
            "block_index": visit.block_index,
            "block_count": self.visits.block_count(visit),
            "blocks": blocks,
        }

    # Visits

    def open_module(self, user_id: int, module_id: int) -> Dict[str, Any]:
        """Get or create the visit and reveal every block up to its frontier."""
        with transaction(self.db):
            module = self._module_for_student(user_id, module_id)
            visit = self.visits.get_or_create_visit(user_id, module.id)
            count = self.visits.block_count(visit)
            revealed = self.db.query(Block).filter(
                Block.module_version_id == visit.module_version_id,
                Block.block_index < min(visit.block_index + 1, count),
            ).order_by(Block.block_index).all()
            view = self._visit_view(visit, [self._render_block(visit, b, user_id) for b in revealed])
        return view

    def take_block(self, user_id: int, module_id: int, block_index: int) -> Dict[str, Any]:
        """Advance to `block_index` (at most one past the frontier) and reveal it."""
        with transaction(self.db):
            module = self._module_for_student(user_id, module_id)
            visit = self.visits.get_or_create_visit(user_id, module.id)
            self.visits.advance(visit, block_index)
            block = self.versions.get_block(visit.module_version_id, block_index)
            view = self._render_block(visit, block, user_id)
            view["block_index"] = visit.block_index
        return view

    def answer_question(self, user_id: int, module_id: int, block_index: int, choice_id: int) -> Dict[str, Any]:
        """Record the answer to the question shown at `block_index`."""
        with transaction(self.db):
            module = self._module_for_student(user_id, module_id)
            visit = self.visits.get_visit(user_id, module.id)
            if visit is None:
                raise NotFoundError(f"No visit to module {module.id}")
            if block_index > visit.block_index:
                raise NotAuthorizedError("That block has not been reached yet")
            block = self.versions.get_block(visit.module_version_id, block_index)
            if block.block_type != BlockType.KNOWLEDGE_POINT.value:
                raise IntegrityViolation(f"Block {block_index} is not a question")
            question = self.allocator.question_for(visit, block.knowledge_point_block.knowledge_point_id)
            self.bank.store_answer(user_id, question.id, choice_id)
            view = self.bank.question_view(question, user_id)
        return view

    def complete_module(self, user_id: int, module_id: int) -> Optional[Point]:
        with transaction(self.db):
            module = self._module_for_student(user_id, module_id)
            point = self.scoring.complete_module(user_id, module.id)
        return point

    # Read models

    def module_progress(self, user_id: int, course_id: int) -> List[Dict[str, Any]]:
        """Visible modules of a course with the user's progress in each.

        Modules whose latest version has no blocks are hidden.
        """
        course = self._get_course(course_id)
        if not self.is_enrolled(user_id, course.id):
            raise NotAuthorizedError("Not enrolled in this course")
        items = []
        for module in self.db.query(Module).filter(Module.course_id == course.id).order_by(Module.id).all():
            version = self.versions.latest_version(module.id)
            count = self.versions.block_count(version.id)
            if not count:
                continue
            visit = self.visits.get_visit(user_id, module.id)
            point = self.scoring.get_points(user_id, module.id)
            items.append({
                "module_id": module.id,
                "title": version.title,
                "description": version.description,
                "block_count": count,
                "block_index": visit.block_index if visit is not None else None,
                "completed": point is not None,
                "points": point.count if point is not None else None,
                "unlocked": self.prereqs.is_unlocked(user_id, module.id),
            })
        return items

    def total_points(self, user_id: int) -> int:
        return self.db.query(func.coalesce(func.sum(Point.count), 0)).filter(Point.user_id == user_id).scalar() or 0
