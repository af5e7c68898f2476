"""
Tests for point calculation and module completion.
"""
from datetime import datetime

import pytest

from coursevault.core.exceptions import IntegrityViolation, NotAuthorizedError
from coursevault.db.sessions import transaction
from coursevault.models import Point
from coursevault.services.learning_engine import LearningEngine
from coursevault.services.scoring import compute_points
from coursevault.services.visit_tracker import VisitTracker

from helpers import FixedChoice, content_block, kp_block, question


FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5)


class TestComputePoints:
    @pytest.mark.parametrize(
        "correct,expected",
        [(0, 0), (4, 10), (3, 8), (2, 4), (1, 2)],
    )
    def test_eight_blocks_four_questions(self, correct, expected):
        assert compute_points(8, 4, correct) == expected

    def test_no_questions_earns_bonus(self):
        assert compute_points(5, 0, 0) == 6

    def test_single_question_wrong(self):
        assert compute_points(3, 1, 0) == 0

    def test_truncates(self):
        assert compute_points(7, 3, 1) == 2


@pytest.fixture
def quiz_module(authoring, teacher, course, module_ids):
    """Eight blocks alternating content and single-question knowledge points."""
    blocks = []
    for n in range(4):
        kp = authoring.create_knowledge_point(teacher.id, course.id, f"KP {n}", [question(f"q{n}?")])
        blocks.extend([content_block(f"text {n}"), kp_block(kp.id)])
    authoring.edit_module(teacher.id, module_ids[0], "Quiz", "Four questions", blocks)
    return module_ids[0]


@pytest.fixture
def learner(db):
    return LearningEngine(db, rng=FixedChoice(0), now=lambda: FIXED_NOW)


def run_through(learner, user_id, module_id, correct_answers):
    """Take every block, answering the first `correct_answers` questions correctly."""
    answered = 0
    for idx in range(8):
        view = learner.take_block(user_id, module_id, idx)
        if view["type"] == "knowledge_point":
            choices = view["question"]["choices"]
            choice = choices[0] if answered < correct_answers else choices[1]
            learner.answer_question(user_id, module_id, idx, choice["id"])
            answered += 1


class TestCompleteModule:
    @pytest.mark.parametrize("correct,expected", [(0, 0), (4, 10), (3, 8), (2, 4)])
    def test_awards_points(self, db, learner, student, course, quiz_module, correct, expected):
        learner.enroll(student.id, course.id)
        run_through(learner, student.id, quiz_module, correct)
        point = learner.complete_module(student.id, quiz_module)
        assert point.count == expected
        assert learner.total_points(student.id) == expected

    def test_completion_is_idempotent(self, db, learner, student, course, quiz_module):
        learner.enroll(student.id, course.id)
        run_through(learner, student.id, quiz_module, 4)
        learner.complete_module(student.id, quiz_module)
        learner.complete_module(student.id, quiz_module)
        assert db.query(Point).count() == 1
        assert VisitTracker(db).get_visit(student.id, quiz_module).block_index == 8

    def test_point_is_stamped_with_clock(self, db, learner, student, course, quiz_module):
        learner.enroll(student.id, course.id)
        run_through(learner, student.id, quiz_module, 4)
        learner.complete_module(student.id, quiz_module)
        assert db.query(Point).one().created_at == FIXED_NOW

    def test_early_completion_is_rejected(self, db, learner, student, course, quiz_module):
        learner.enroll(student.id, course.id)
        learner.take_block(student.id, quiz_module, 0)
        with pytest.raises(IntegrityViolation):
            learner.complete_module(student.id, quiz_module)
        assert db.query(Point).count() == 0

    def test_empty_module_completion_is_noop(self, db, learner, student, course, module_ids):
        learner.enroll(student.id, course.id)
        with transaction(db):
            VisitTracker(db).get_or_create_visit(student.id, module_ids[1])
        assert learner.complete_module(student.id, module_ids[1]) is None
        assert db.query(Point).count() == 0

    def test_changed_answer_counts(self, db, learner, student, course, quiz_module):
        learner.enroll(student.id, course.id)
        run_through(learner, student.id, quiz_module, 0)
        view = learner.open_module(student.id, quiz_module)
        for block in view["blocks"]:
            if block["type"] == "knowledge_point":
                right = block["question"]["choices"][0]["id"]
                learner.answer_question(student.id, quiz_module, block["index"], right)
        assert learner.complete_module(student.id, quiz_module).count == 10


class TestAnswerGuards:
    def test_cannot_answer_beyond_frontier(self, learner, student, course, quiz_module):
        learner.enroll(student.id, course.id)
        learner.take_block(student.id, quiz_module, 0)
        with pytest.raises(NotAuthorizedError):
            learner.answer_question(student.id, quiz_module, 1, 1)

    def test_cannot_answer_content_block(self, learner, student, course, quiz_module):
        learner.enroll(student.id, course.id)
        learner.take_block(student.id, quiz_module, 0)
        with pytest.raises(IntegrityViolation):
            learner.answer_question(student.id, quiz_module, 0, 1)
