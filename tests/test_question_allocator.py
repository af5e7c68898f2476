"""
Tests for per-visit question allocation and replay.
"""
import secrets

import pytest

from coursevault.core.exceptions import NotFoundError
from coursevault.db.sessions import transaction
from coursevault.models import KnowledgePoint, QuestionOrder
from coursevault.services.learning_engine import LearningEngine
from coursevault.services.question_allocator import QuestionOrderAllocator
from coursevault.services.visit_tracker import VisitTracker

from helpers import FixedChoice, kp_block, make_user, question


POOL = ["alpha?", "beta?", "gamma?", "delta?", "epsilon?"]


@pytest.fixture
def kp(authoring, teacher, course):
    return authoring.create_knowledge_point(teacher.id, course.id, "Pool", [question(text) for text in POOL])


@pytest.fixture
def module_id(authoring, teacher, module_ids, kp):
    authoring.edit_module(teacher.id, module_ids[0], "Quiz", "One question", [kp_block(kp.id)])
    return module_ids[0]


def open_visit(db, user_id, module_id):
    with transaction(db):
        visit = VisitTracker(db).get_or_create_visit(user_id, module_id)
    return visit


class TestAllocation:
    def test_first_reveal_records_an_order(self, db, student, kp, module_id):
        visit = open_visit(db, student.id, module_id)
        allocator = QuestionOrderAllocator(db, rng=FixedChoice(2))
        with transaction(db):
            chosen = allocator.question_for(visit, kp.id)
        assert chosen.content.text == "gamma?"
        order = db.query(QuestionOrder).one()
        assert order.question_index == 0
        assert order.question_id == chosen.id

    def test_second_reveal_replays(self, db, student, kp, module_id):
        visit = open_visit(db, student.id, module_id)
        rng = FixedChoice(1)
        allocator = QuestionOrderAllocator(db, rng=rng)
        with transaction(db):
            first = allocator.question_for(visit, kp.id)
        rng.index = 4
        with transaction(db):
            second = allocator.question_for(visit, kp.id)
        assert first.id == second.id
        assert rng.calls == 1
        assert db.query(QuestionOrder).count() == 1

    def test_replay_through_open_module(self, db, learning, student, course, module_id):
        learning.enroll(student.id, course.id)
        first = learning.open_module(student.id, module_id)["blocks"][0]["question"]["id"]
        second = learning.open_module(student.id, module_id)["blocks"][0]["question"]["id"]
        assert first == second

    def test_retired_question_is_still_replayed(self, db, authoring, teacher, course, student, kp, module_id):
        visit = open_visit(db, student.id, module_id)
        allocator = QuestionOrderAllocator(db, rng=FixedChoice(0))
        with transaction(db):
            first = allocator.question_for(visit, kp.id)
        authoring.edit_knowledge_point(teacher.id, course.id, kp.id, "Pool", [question("fresh?")])
        with transaction(db):
            again = allocator.question_for(visit, kp.id)
        assert again.id == first.id
        assert again.latest is False

    def test_new_allocations_skip_retired_questions(self, db, authoring, teacher, course, student, kp, module_id):
        visit = open_visit(db, student.id, module_id)
        with transaction(db):
            shown = QuestionOrderAllocator(db, rng=FixedChoice(0)).question_for(visit, kp.id)
        authoring.edit_knowledge_point(teacher.id, course.id, kp.id, "Pool", [question("new one?"), question("new two?")])

        picked = set()
        for index in range(4):
            other = make_user(db, f"later-{index}")
            later_visit = open_visit(db, other.id, module_id)
            with transaction(db):
                chosen = QuestionOrderAllocator(db, rng=FixedChoice(index)).question_for(later_visit, kp.id)
            assert chosen.latest is True
            assert chosen.id != shown.id
            picked.add(chosen.content.text)
        assert picked == {"new one?", "new two?"}

    def test_empty_pool_writes_nothing(self, db, course, student, module_id):
        empty = KnowledgePoint(course_id=course.id, name="Empty")
        db.add(empty)
        db.commit()
        visit = open_visit(db, student.id, module_id)
        with pytest.raises(NotFoundError):
            with transaction(db):
                QuestionOrderAllocator(db).question_for(visit, empty.id)
        assert db.query(QuestionOrder).count() == 0

    def test_default_source_is_system_random(self, db):
        assert isinstance(QuestionOrderAllocator(db).rng, secrets.SystemRandom)


class TestDistribution:
    def test_different_visits_can_get_different_questions(self, db, course, kp, module_id):
        seen = set()
        for n in range(40):
            user = make_user(db, f"student-{n}")
            engine = LearningEngine(db)
            engine.enroll(user.id, course.id)
            seen.add(engine.open_module(user.id, module_id)["blocks"][0]["question"]["id"])
        assert len(seen) > 1
