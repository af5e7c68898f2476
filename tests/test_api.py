"""
End-to-end tests through the HTTP layer.
"""
import pytest


def register(client, username):
    response = client.post("/auth/register", json={"username": username})
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def teacher_headers(client):
    return register(client, "teacher")


@pytest.fixture
def student_headers(client):
    return register(client, "student")


@pytest.fixture
def published(client, teacher_headers):
    """A course with one module: a content block and a question block."""
    course = client.post(
        "/teacher/courses",
        json={"title": "Course", "description": "About", "module_titles": ["M"], "module_descriptions": ["m"]},
        headers=teacher_headers,
    ).json()
    kp = client.post(
        f"/teacher/courses/{course['id']}/knowledge-points",
        json={
            "name": "KP",
            "questions": [{"text": "Pick yes", "choices": ["yes", "no"], "correct_choice_index": 0, "explanation": "Obvious"}],
        },
        headers=teacher_headers,
    ).json()
    module_id = course["module_ids"][0]
    response = client.put(
        f"/teacher/modules/{module_id}",
        json={
            "title": "M",
            "description": "m",
            "blocks": [
                {"type": "content", "text": "Read this"},
                {"type": "knowledge_point", "knowledge_point_id": kp["id"]},
            ],
        },
        headers=teacher_headers,
    )
    assert response.status_code == 200
    assert response.json()["version_number"] == 2
    return course["id"], module_id


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestAuth:
    def test_missing_token(self, client):
        assert client.get("/student/points").status_code in (401, 403)

    def test_bad_token(self, client):
        response = client.get("/student/points", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_me(self, client, teacher_headers):
        assert client.get("/auth/me", headers=teacher_headers).json()["username"] == "teacher"


class TestStudentFlow:
    def test_full_module(self, client, student_headers, published):
        course_id, module_id = published
        assert client.post(f"/student/courses/{course_id}/enroll", headers=student_headers).status_code == 201

        opened = client.get(f"/student/modules/{module_id}", headers=student_headers).json()
        assert opened["blocks"][0]["text"] == "Read this"

        block = client.post(f"/student/modules/{module_id}/blocks/1", headers=student_headers).json()
        choices = block["question"]["choices"]
        assert "correct" not in choices[0]

        answered = client.post(
            f"/student/modules/{module_id}/blocks/1/answer",
            json={"choice_id": choices[0]["id"]},
            headers=student_headers,
        ).json()
        assert answered["explanation"] == "Obvious"

        completed = client.post(f"/student/modules/{module_id}/complete", headers=student_headers).json()
        assert completed["points"] == 2
        assert client.get("/student/points", headers=student_headers).json() == {"total": 2}

    def test_error_mapping(self, client, student_headers, teacher_headers, published):
        course_id, module_id = published
        assert client.get(f"/student/modules/{module_id}", headers=student_headers).status_code == 403
        client.post(f"/student/courses/{course_id}/enroll", headers=student_headers)
        assert client.post(f"/student/courses/{course_id}/enroll", headers=student_headers).status_code == 409
        assert client.post(f"/student/modules/{module_id}/blocks/5", headers=student_headers).status_code == 409
        assert client.get("/student/modules/9999", headers=student_headers).status_code == 404
        bad_edit = client.put(
            f"/teacher/modules/{module_id}",
            json={"title": "", "description": "m", "blocks": []},
            headers=teacher_headers,
        )
        assert bad_edit.status_code == 400


class TestTeacherFlow:
    def test_export_and_delete(self, client, teacher_headers, student_headers, published):
        course_id, module_id = published
        exported = client.get(f"/teacher/modules/{module_id}/export", headers=teacher_headers)
        assert exported.status_code == 200
        assert "[//]: # (choice correct)\nyes" in exported.text

        assert client.delete(f"/teacher/modules/{module_id}", headers=student_headers).status_code == 403
        deleted = client.delete(f"/teacher/modules/{module_id}", headers=teacher_headers).json()
        assert len(deleted["reclaimed_content_ids"]) == 1

    def test_knowledge_point_in_use(self, client, teacher_headers, published):
        course_id, _ = published
        kps = client.get(f"/teacher/courses/{course_id}/knowledge-points", headers=teacher_headers).json()
        response = client.delete(f"/teacher/courses/{course_id}/knowledge-points/{kps[0]['id']}", headers=teacher_headers)
        assert response.status_code == 409
