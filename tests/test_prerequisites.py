"""
Tests for prerequisite graphs and unlock gating.
"""
import pytest

from coursevault.core.exceptions import NotAuthorizedError, ValidationError
from coursevault.services.prerequisites import PrerequisiteService, has_cycle

from helpers import content_block


class TestHasCycle:
    def test_chain_has_no_cycle(self):
        assert not has_cycle({1: [2], 2: [3]}, 1)

    def test_self_loop(self):
        assert has_cycle({1: [1]}, 1)

    def test_indirect_cycle(self):
        assert has_cycle({1: [2], 2: [3], 3: [1]}, 1)

    def test_diamond_is_not_a_cycle(self):
        assert not has_cycle({1: [2, 3], 2: [4], 3: [4]}, 1)

    def test_edges_are_not_mutated(self):
        edges = {1: [2], 2: [3]}
        has_cycle(edges, 1)
        assert edges == {1: [2], 2: [3]}


@pytest.fixture
def three_modules(authoring, teacher):
    course = authoring.create_course(
        teacher.id, "Chain", "Three steps", ["One", "Two", "Three"], ["first", "second", "third"]
    )
    ids = [m.id for m in course.modules]
    for module_id in ids:
        authoring.edit_module(teacher.id, module_id, "Step", "Only block", [content_block(f"block {module_id}")])
    return course, ids


class TestSetPrereqs:
    def test_replaces_set(self, db, authoring, teacher, three_modules):
        _, (one, two, three) = three_modules
        authoring.set_prereqs(teacher.id, three, [one, two])
        assert authoring.set_prereqs(teacher.id, three, [two]) == [two]
        assert PrerequisiteService(db).prereq_ids(three) == [two]

    def test_cycle_is_rejected(self, db, authoring, teacher, three_modules):
        _, (one, two, three) = three_modules
        authoring.set_prereqs(teacher.id, two, [one])
        authoring.set_prereqs(teacher.id, three, [two])
        with pytest.raises(ValidationError):
            authoring.set_prereqs(teacher.id, one, [three])
        assert PrerequisiteService(db).prereq_ids(one) == []

    def test_self_reference_is_rejected(self, authoring, teacher, three_modules):
        _, (one, _, _) = three_modules
        with pytest.raises(ValidationError):
            authoring.set_prereqs(teacher.id, one, [one])

    def test_other_course_module_is_rejected(self, authoring, teacher, three_modules, module_ids):
        _, (one, _, _) = three_modules
        with pytest.raises(ValidationError):
            authoring.set_prereqs(teacher.id, one, [module_ids[0]])


class TestGating:
    def test_locked_until_prerequisite_completed(self, db, authoring, learning, teacher, student, three_modules):
        course, (one, two, _) = three_modules
        authoring.set_prereqs(teacher.id, two, [one])
        learning.enroll(student.id, course.id)

        with pytest.raises(NotAuthorizedError):
            learning.open_module(student.id, two)

        learning.open_module(student.id, one)
        learning.complete_module(student.id, one)

        view = learning.open_module(student.id, two)
        assert view["blocks"][0]["text"] == f"block {two}"

    def test_progress_reports_lock_state(self, authoring, learning, teacher, student, three_modules):
        course, (one, two, three) = three_modules
        authoring.set_prereqs(teacher.id, three, [one, two])
        learning.enroll(student.id, course.id)
        unlocked = {p["module_id"]: p["unlocked"] for p in learning.module_progress(student.id, course.id)}
        assert unlocked == {one: True, two: True, three: False}
