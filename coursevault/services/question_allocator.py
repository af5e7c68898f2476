"""Question order allocator.

The first reveal of a knowledge-point block in a visit draws one question
uniformly from the pool's latest generation and records it. Every later
reveal in that visit replays the recorded question.
"""
import logging
import secrets
from typing import Optional

from sqlalchemy.orm import Session

from coursevault.core.exceptions import NotFoundError
from coursevault.models import Question, QuestionOrder, Visit
from coursevault.services.question_bank import QuestionBank

logger = logging.getLogger(__name__)


class QuestionOrderAllocator:
    """Allocate and replay questions per (visit, knowledge point).

    `rng` needs a `choice(seq)` method; production uses `secrets.SystemRandom`
    so the pick cannot be predicted from earlier ones.
    """

    def __init__(self, db: Session, rng: Optional[object] = None, bank: Optional[QuestionBank] = None):
        self.db = db
        self.rng = rng or secrets.SystemRandom()
        self.bank = bank or QuestionBank(db)

    def recorded_question(self, visit_id: int, knowledge_point_id: int) -> Optional[Question]:
        order = self.db.query(QuestionOrder).filter(
            QuestionOrder.visit_id == visit_id,
            QuestionOrder.knowledge_point_id == knowledge_point_id,
        ).order_by(QuestionOrder.question_index.desc()).first()
        if order is None:
            return None
        return self.bank.get_question(order.question_id)

    def question_for(self, visit: Visit, knowledge_point_id: int) -> Question:
        question = self.recorded_question(visit.id, knowledge_point_id)
        if question is not None:
            return question

        pool = self.bank.questions_for(knowledge_point_id, latest_only=True)
        if not pool:
            raise NotFoundError(f"Knowledge point {knowledge_point_id} has no questions")
        question = self.rng.choice(pool)
        self.db.add(QuestionOrder(
            visit_id=visit.id,
            knowledge_point_id=knowledge_point_id,
            question_id=question.id,
            question_index=0,
        ))
        self.db.flush()
        logger.info("Allocated question %s for visit %s, knowledge point %s", question.id, visit.id, knowledge_point_id)
        return question
