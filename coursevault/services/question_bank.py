"""Knowledge point and question bank service."""
import logging
from typing import Dict, Any, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from coursevault.core.exceptions import NotFoundError, ValidationError
from coursevault.models import (
    Answer,
    Choice,
    Explanation,
    KnowledgePoint,
    KnowledgePointBlock,
    Question,
    QuestionOrder,
)
from coursevault.services.content_store import ContentStore

logger = logging.getLogger(__name__)


class QuestionBank:
    """Per-course pools of questions grouped by knowledge point.

    Nothing here commits; callers own the transaction.
    """

    def __init__(self, db: Session, content_store: Optional[ContentStore] = None):
        self.db = db
        self.content = content_store or ContentStore(db)

    # Knowledge points

    def create_knowledge_point(self, course_id: int, name: str) -> KnowledgePoint:
        knowledge_point = KnowledgePoint(course_id=course_id, name=name)
        self.db.add(knowledge_point)
        self.db.flush()
        return knowledge_point

    def get_knowledge_point(self, course_id: int, knowledge_point_id: int) -> KnowledgePoint:
        knowledge_point = self.db.query(KnowledgePoint).filter(
            KnowledgePoint.id == knowledge_point_id,
            KnowledgePoint.course_id == course_id,
        ).first()
        if knowledge_point is None:
            raise NotFoundError(f"Knowledge point {knowledge_point_id} not found")
        return knowledge_point

    def knowledge_points_for_course(self, course_id: int) -> List[KnowledgePoint]:
        return self.db.query(KnowledgePoint).filter(
            KnowledgePoint.course_id == course_id
        ).order_by(KnowledgePoint.id).all()

    def is_referenced_by_blocks(self, knowledge_point_id: int) -> bool:
        return self.db.query(KnowledgePointBlock.id).filter(
            KnowledgePointBlock.knowledge_point_id == knowledge_point_id
        ).first() is not None

    def delete_knowledge_point(self, knowledge_point: KnowledgePoint) -> List[int]:
        """Delete the pool and every question in it, reclaiming their content."""
        question_ids = [q.id for q in self.questions_for(knowledge_point.id, latest_only=False)]
        scope = self.content.content_ids_for_questions(question_ids)
        self.db.delete(knowledge_point)
        self.db.flush()
        logger.info("Deleted knowledge point %s with %d questions", knowledge_point.id, len(question_ids))
        return self.content.reclaim_unreferenced(scope)

    # Questions

    def insert_question(
        self,
        knowledge_point_id: int,
        text: str,
        choice_texts: Sequence[str],
        correct_choice_index: int,
        explanation_text: Optional[str] = None,
    ) -> Question:
        """Write a question, its choices and its explanation.

        Exactly one choice must be correct; callers validate that upstream.
        """
        question = Question(
            knowledge_point_id=knowledge_point_id,
            content_id=self.content.put_content(text),
            latest=True,
        )
        self.db.add(question)
        self.db.flush()

        for idx, choice_text in enumerate(choice_texts):
            self.db.add(Choice(
                question_id=question.id,
                content_id=self.content.put_content(choice_text),
                correct=idx == correct_choice_index,
            ))
            # flush per choice so ids follow display order
            self.db.flush()

        if explanation_text:
            self.db.add(Explanation(
                question_id=question.id,
                content_id=self.content.put_content(explanation_text),
            ))
            self.db.flush()
        return question

    def questions_for(self, knowledge_point_id: int, latest_only: bool = True) -> List[Question]:
        """The pool used for random allocation, lowest id first."""
        query = self.db.query(Question).filter(Question.knowledge_point_id == knowledge_point_id)
        if latest_only:
            query = query.filter(Question.latest.is_(True))
        return query.order_by(Question.id).all()

    def get_question(self, question_id: int) -> Question:
        question = self.db.query(Question).filter(Question.id == question_id).first()
        if question is None:
            raise NotFoundError(f"Question {question_id} not found")
        return question

    def mark_questions_old(self, knowledge_point_id: int) -> int:
        """Retire the current generation; retired questions stay addressable."""
        updated = self.db.query(Question).filter(
            Question.knowledge_point_id == knowledge_point_id,
            Question.latest.is_(True),
        ).update({Question.latest: False}, synchronize_session="fetch")
        logger.info("Marked %d questions old for knowledge point %s", updated, knowledge_point_id)
        return updated

    def delete_unanswered_questions(self, knowledge_point_id: int) -> List[int]:
        """Drop latest questions nobody has answered or been shown.

        Returns the reclaimed content ids.
        """
        answered = select(Answer.question_id)
        ordered = select(QuestionOrder.question_id)
        doomed = self.db.query(Question).filter(
            Question.knowledge_point_id == knowledge_point_id,
            Question.latest.is_(True),
            ~Question.id.in_(answered),
            ~Question.id.in_(ordered),
        ).all()
        if not doomed:
            return []
        scope = self.content.content_ids_for_questions([q.id for q in doomed])
        for question in doomed:
            self.db.delete(question)
        self.db.flush()
        logger.info("Deleted %d unanswered questions for knowledge point %s", len(doomed), knowledge_point_id)
        return self.content.reclaim_unreferenced(scope)

    # Answers

    def get_answer(self, user_id: int, question_id: int) -> Optional[Answer]:
        return self.db.query(Answer).filter(
            Answer.user_id == user_id,
            Answer.question_id == question_id,
        ).first()

    def store_answer(self, user_id: int, question_id: int, choice_id: int) -> Answer:
        """Upsert keyed by (user, question); re-answering overwrites the choice."""
        choice = self.db.query(Choice).filter(
            Choice.id == choice_id,
            Choice.question_id == question_id,
        ).first()
        if choice is None:
            raise ValidationError(f"Choice {choice_id} does not belong to question {question_id}")

        answer = self.get_answer(user_id, question_id)
        if answer is None:
            answer = Answer(user_id=user_id, question_id=question_id, choice_id=choice_id)
            self.db.add(answer)
        else:
            answer.choice_id = choice_id
        self.db.flush()
        return answer

    def is_correct(self, answer: Optional[Answer]) -> bool:
        if answer is None:
            return False
        choice = self.db.query(Choice).filter(Choice.id == answer.choice_id).first()
        return bool(choice and choice.correct)

    # Read models

    def question_view(self, question: Question, user_id: Optional[int] = None, reveal: bool = False) -> Dict[str, Any]:
        """Render a question for display.

        Correctness and the explanation are only included once the user has
        answered (or when `reveal` is set, e.g. for the author).
        """
        answer = self.get_answer(user_id, question.id) if user_id is not None else None
        answered = answer is not None
        show = reveal or answered
        choices = []
        for choice in question.choices:
            item = {"id": choice.id, "text": choice.content.text}
            if show:
                item["correct"] = choice.correct
            if answered:
                item["chosen"] = choice.id == answer.choice_id
            choices.append(item)
        explanation = None
        if show and question.explanation is not None:
            explanation = question.explanation.content.text
        return {
            "id": question.id,
            "knowledge_point_id": question.knowledge_point_id,
            "text": question.content.text,
            "choices": choices,
            "answered": answered,
            "explanation": explanation,
        }

    def question_input(self, question: Question) -> Dict[str, Any]:
        """Shape a stored question like the authoring input it came from."""
        correct = next((i for i, c in enumerate(question.choices) if c.correct), 0)
        return {
            "text": question.content.text,
            "choices": [c.content.text for c in question.choices],
            "correct_choice_index": correct,
            "explanation": question.explanation.content.text if question.explanation else "",
        }
