"""Scoring engine: turns a finished visit into points."""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from coursevault.core.exceptions import IntegrityViolation, NotFoundError
from coursevault.models import Point
from coursevault.services.question_allocator import QuestionOrderAllocator
from coursevault.services.question_bank import QuestionBank
from coursevault.services.visit_tracker import VisitTracker

logger = logging.getLogger(__name__)


def compute_points(block_count: int, question_count: int, correct_answers: int) -> int:
    """Points for a completed module.

    One point per block, a quarter bonus for a perfect run, one mistake
    forgiven, otherwise scaled by the share of correct answers. A module with
    questions and no correct answer earns nothing.
    """
    points = block_count
    if question_count > 0 and correct_answers == 0:
        return 0
    if correct_answers == question_count:
        return points + points // 4
    if correct_answers == question_count - 1:
        return points
    return points * correct_answers // question_count


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScoringEngine:
    def __init__(
        self,
        db: Session,
        now: Optional[Callable[[], datetime]] = None,
        visits: Optional[VisitTracker] = None,
        bank: Optional[QuestionBank] = None,
    ):
        self.db = db
        self.now = now or _utcnow
        self.visits = visits or VisitTracker(db)
        self.bank = bank or QuestionBank(db)
        self.allocator = QuestionOrderAllocator(db, bank=self.bank)

    def get_points(self, user_id: int, module_id: int) -> Optional[Point]:
        return self.db.query(Point).filter(Point.user_id == user_id, Point.module_id == module_id).first()

    def correct_answers(self, user_id: int, visit) -> int:
        """Scores the question recorded for the visit, not always the pool's first question."""
        versions = self.visits.versions
        correct = 0
        for knowledge_point_id in versions.knowledge_point_ids(visit.module_version_id):
            question = self.allocator.recorded_question(visit.id, knowledge_point_id)
            if question is None:
                pool = self.bank.questions_for(knowledge_point_id, latest_only=True)
                question = pool[0] if pool else None
            if question is None:
                continue
            if self.bank.is_correct(self.bank.get_answer(user_id, question.id)):
                correct += 1
        return correct

    def complete_module(self, user_id: int, module_id: int) -> Optional[Point]:
        """Award points once the last block has been reached.

        Calling again after completion changes nothing and returns the
        existing Point (None for a module without blocks).
        """
        visit = self.visits.get_visit(user_id, module_id)
        if visit is None:
            raise NotFoundError(f"No visit to module {module_id}")
        count = self.visits.block_count(visit)
        if visit.block_index == count:
            return self.get_points(user_id, module_id)
        if visit.block_index < count - 1:
            logger.warning("User %s tried to complete module %s at block %s of %s", user_id, module_id, visit.block_index, count)
            raise IntegrityViolation("The last block has not been reached")

        question_count = self.visits.versions.question_count(visit.module_version_id)
        correct = self.correct_answers(user_id, visit)
        awarded = compute_points(count, question_count, correct)

        visit.block_index = count
        point = self.get_points(user_id, module_id)
        if point is None:
            point = Point(user_id=user_id, module_id=module_id, count=awarded, created_at=self.now())
            self.db.add(point)
        self.db.flush()
        logger.info(
            "User %s completed module %s: %d/%d correct, %d points",
            user_id, module_id, correct, question_count, awarded,
        )
        return point
