"""
Tests for the server-side access-check endpoints and tenant-scoped listings.
"""

import base64
import json
import time

import pytest

from quizbuilder_backend.model import AuditLog, Classroom, ClassroomMember, QuizBlueprint, Tenant
from quizbuilder_backend.permissions.auth import encode_token
from quizbuilder_backend.tests.conftest import actor_headers, make_actor

INSTRUCTOR = make_actor("instructor-1", "instructor")
COLLEAGUE = make_actor("instructor-2", "instructor")
STUDENT = make_actor("student-1", "student")
OTHER_STUDENT = make_actor("student-2", "student")
FOREIGN_INSTRUCTOR = make_actor("instructor-9", "instructor", tenant_id="tenant-b")
SUPER_ADMIN = make_actor("admin-1", "super_admin", tenant_id="tenant-root")


@pytest.fixture
def seeded(session):
    session.add_all([
        Tenant(id="tenant-a", slug="a", name="Tenant A"),
        Tenant(id="tenant-b", slug="b", name="Tenant B"),
        QuizBlueprint(id="quiz-draft", tenant_id="tenant-a", owner_user_id="instructor-1", title="Draft"),
        QuizBlueprint(id="quiz-live", tenant_id="tenant-a", owner_user_id="instructor-1", title="Live",
                      status="published"),
        QuizBlueprint(id="quiz-colleague", tenant_id="tenant-a", owner_user_id="instructor-2", title="Other",
                      status="published"),
        QuizBlueprint(id="quiz-foreign", tenant_id="tenant-b", owner_user_id="instructor-9", title="Foreign",
                      status="published"),
        Classroom(id="room-1", tenant_id="tenant-a", owner_user_id="instructor-1", name="Room 1"),
        Classroom(id="room-2", tenant_id="tenant-a", owner_user_id="instructor-2", name="Room 2"),
        Classroom(id="room-foreign", tenant_id="tenant-b", owner_user_id="instructor-9", name="Foreign"),
        ClassroomMember(classroom_id="room-1", user_id="student-1"),
        ClassroomMember(classroom_id="room-foreign", user_id="student-2"),
    ])
    session.commit()
    return session


def _verify(client, path, actor, **body):
    payload = {"tenantId": actor.tenant_id, "userId": actor.id, "action": "read"}
    payload.update(body)
    response = client.post(path, json=payload, headers=actor_headers(actor))
    assert response.status_code == 200, response.text
    return response.json()["hasAccess"]


class TestQuizVerifyAccess:

    @pytest.mark.parametrize("actor,quiz_id,action,expected", [
        (INSTRUCTOR, "quiz-draft", "write", True),
        (INSTRUCTOR, "quiz-colleague", "read", True),
        (INSTRUCTOR, "quiz-colleague", "write", False),
        (INSTRUCTOR, "quiz-foreign", "read", False),
        (STUDENT, "quiz-live", "read", True),
        (STUDENT, "quiz-draft", "read", False),
        (STUDENT, "quiz-live", "write", False),
        (SUPER_ADMIN, "quiz-foreign", "delete", True),
        (INSTRUCTOR, "quiz-missing", "read", False),
    ])
    def test_quiz_access(self, client, seeded, actor, quiz_id, action, expected):
        assert _verify(client, f"/api/quizzes/{quiz_id}/verify-access", actor, action=action) is expected

    def test_foreign_context_in_body_is_refused(self, client, seeded):
        has_access = _verify(client, "/api/quizzes/quiz-draft/verify-access", COLLEAGUE,
                             userId="instructor-1", action="write")
        assert has_access is False

    def test_bearer_token_identifies_caller(self, client, seeded):
        token = encode_token("instructor-1", "tenant-a", "instructor")
        response = client.post(
            "/api/quizzes/quiz-draft/verify-access",
            json={"tenantId": "tenant-a", "userId": "instructor-1", "action": "write"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.json() == {"hasAccess": True}

    def test_unsigned_super_admin_token_refused(self, client, seeded):
        claims = {"userId": "attacker", "tenantId": "tenant-a", "role": "super_admin", "exp": int(time.time()) + 60}
        forged = base64.b64encode(json.dumps(claims).encode("utf-8")).decode("utf-8")

        response = client.post(
            "/api/quizzes/quiz-foreign/verify-access",
            json={"tenantId": "tenant-a", "userId": "attacker", "action": "delete"},
            headers={"Authorization": f"Bearer {forged}"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "NO_CONTEXT"

    def test_foreign_secret_refused(self, client, seeded):
        token = encode_token("attacker", "tenant-a", "super_admin", secret="guessed-secret")
        response = client.post(
            "/api/quizzes/quiz-foreign/verify-access",
            json={"tenantId": "tenant-a", "userId": "attacker", "action": "delete"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 400

    def test_identity_headers_not_trusted(self, client, seeded):
        response = client.post(
            "/api/quizzes/quiz-foreign/verify-access",
            json={"tenantId": "tenant-a", "userId": "attacker", "action": "delete"},
            headers={"X-User-ID": "attacker", "X-Tenant-ID": "tenant-a", "X-User-Role": "super_admin"},
        )
        assert response.status_code == 400

    def test_missing_context_is_bad_request(self, client, seeded):
        response = client.post("/api/quizzes/quiz-draft/verify-access", json={})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "NO_CONTEXT"


class TestClassroomVerifyAccess:

    @pytest.mark.parametrize("actor,classroom_id,action,expected", [
        (INSTRUCTOR, "room-1", "write", True),
        (INSTRUCTOR, "room-2", "read", False),
        (FOREIGN_INSTRUCTOR, "room-1", "read", False),
        (STUDENT, "room-1", "read", True),
        (STUDENT, "room-1", "write", False),
        (STUDENT, "room-2", "read", False),
        (SUPER_ADMIN, "room-2", "write", True),
    ])
    def test_classroom_access(self, client, seeded, actor, classroom_id, action, expected):
        assert _verify(client, f"/api/classrooms/{classroom_id}/verify-access", actor, action=action) is expected


class TestStudentVerifyAccess:

    @pytest.mark.parametrize("actor,student_id,expected", [
        (INSTRUCTOR, "student-1", True),
        (COLLEAGUE, "student-1", False),
        (INSTRUCTOR, "student-2", False),
        (FOREIGN_INSTRUCTOR, "student-2", True),
        (STUDENT, "student-1", False),
    ])
    def test_instructor_student_access(self, client, seeded, actor, student_id, expected):
        response = client.post(
            f"/api/students/{student_id}/verify-instructor-access",
            json={"tenantId": actor.tenant_id, "instructorId": actor.id},
            headers=actor_headers(actor),
        )
        assert response.json()["hasAccess"] is expected


class TestMembership:

    def test_member(self, client, seeded):
        response = client.get("/api/classrooms/room-1/members/student-1", headers=actor_headers(STUDENT))
        assert response.status_code == 200

    def test_owner_may_ask(self, client, seeded):
        response = client.get("/api/classrooms/room-1/members/student-1", headers=actor_headers(INSTRUCTOR))
        assert response.status_code == 200

    @pytest.mark.parametrize("actor,path", [
        (OTHER_STUDENT, "/api/classrooms/room-1/members/student-2"),
        (OTHER_STUDENT, "/api/classrooms/room-foreign/members/student-2"),
        (COLLEAGUE, "/api/classrooms/room-1/members/student-1"),
        (STUDENT, "/api/classrooms/room-missing/members/student-1"),
    ])
    def test_not_found(self, client, seeded, actor, path):
        assert client.get(path, headers=actor_headers(actor)).status_code == 404


class TestAuditLog:

    def test_stores_entry(self, client, seeded):
        response = client.post(
            "/api/audit/log",
            json={
                "user_id": "student-1",
                "tenant_id": "tenant-a",
                "resource_type": "result",
                "resource_id": "student-2",
                "action": "read",
                "result": "denied",
                "timestamp": "2024-05-01T12:00:00Z",
            },
            headers=actor_headers(STUDENT),
        )

        assert response.status_code == 201
        entry = seeded.get(AuditLog, response.json()["id"])
        assert entry.resource_type == "result"
        assert entry.result == "denied"
        assert entry.ip_address == "testclient"

    def test_foreign_tenant_refused(self, client, seeded):
        response = client.post(
            "/api/audit/log",
            json={"tenant_id": "tenant-b", "resource_type": "quiz", "action": "read", "result": "success"},
            headers=actor_headers(STUDENT),
        )
        assert response.status_code == 403


class TestListings:

    def test_instructor_sees_own_quizzes(self, client, seeded):
        response = client.get("/api/quizzes", headers=actor_headers(INSTRUCTOR))

        assert response.status_code == 200
        assert sorted(quiz["id"] for quiz in response.json()) == ["quiz-draft", "quiz-live"]

    def test_student_sees_published_tenant_quizzes(self, client, seeded):
        response = client.get("/api/quizzes", headers=actor_headers(STUDENT))
        assert sorted(quiz["id"] for quiz in response.json()) == ["quiz-colleague", "quiz-live"]

    def test_super_admin_sees_all_quizzes(self, client, seeded):
        response = client.get("/api/quizzes", headers=actor_headers(SUPER_ADMIN))
        assert len(response.json()) == 4

    def test_classrooms(self, client, seeded):
        instructor = client.get("/api/classrooms", headers=actor_headers(INSTRUCTOR)).json()
        student = client.get("/api/classrooms", headers=actor_headers(STUDENT)).json()
        other = client.get("/api/classrooms", headers=actor_headers(OTHER_STUDENT)).json()

        assert [room["id"] for room in instructor] == ["room-1"]
        assert [room["id"] for room in student] == ["room-1"]
        assert other == []


class TestCreateQuiz:

    def test_stamps_tenant_and_owner(self, client, seeded):
        response = client.post(
            "/api/quizzes",
            json={"title": "New", "tenant_id": "tenant-b", "owner_user_id": "instructor-9"},
            headers=actor_headers(INSTRUCTOR),
        )

        assert response.status_code == 201
        quiz = response.json()
        assert quiz["tenant_id"] == "tenant-a"
        assert quiz["owner_user_id"] == "instructor-1"
        assert quiz["status"] == "draft"

    def test_super_admin_may_target_tenant(self, client, seeded):
        response = client.post(
            "/api/quizzes",
            json={"title": "Seeded", "tenant_id": "tenant-b", "owner_user_id": "instructor-9"},
            headers=actor_headers(SUPER_ADMIN),
        )
        assert response.json()["tenant_id"] == "tenant-b"

    def test_students_cannot_create(self, client, seeded):
        response = client.post("/api/quizzes", json={"title": "Mine"}, headers=actor_headers(STUDENT))

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "ACCESS_DENIED"

    def test_quota(self, client, seeded):
        seeded.add_all([
            QuizBlueprint(tenant_id="tenant-a", owner_user_id="instructor-1", title=f"Quiz {index}")
            for index in range(7)
        ])
        seeded.commit()

        # Ten quizzes exist in tenant-a now, the basic plan allows ten
        response = client.post("/api/quizzes", json={"title": "Eleventh"}, headers=actor_headers(INSTRUCTOR))

        assert response.status_code == 402
        detail = response.json()["detail"]
        assert detail["code"] == "QUOTA_EXCEEDED"
        assert detail["upgradeRequired"] is True

    def test_pro_plan_quota(self, client, seeded):
        seeded.add_all([
            QuizBlueprint(tenant_id="tenant-a", owner_user_id="instructor-1", title=f"Quiz {index}")
            for index in range(7)
        ])
        seeded.commit()

        token = encode_token("instructor-1", "tenant-a", "instructor", plan="pro")
        response = client.post("/api/quizzes", json={"title": "Eleventh"},
                               headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 201

    def test_empty_title_rejected(self, client, seeded):
        response = client.post("/api/quizzes", json={"title": ""}, headers=actor_headers(INSTRUCTOR))
        assert response.status_code == 422


class TestQuizEndpoints:

    def test_colleague_may_read(self, client, seeded):
        response = client.get("/api/quizzes/quiz-colleague", headers=actor_headers(INSTRUCTOR))

        assert response.status_code == 200
        assert response.json()["owner_user_id"] == "instructor-2"

    @pytest.mark.parametrize("actor,quiz_id,expected", [
        (INSTRUCTOR, "quiz-foreign", 403),
        (FOREIGN_INSTRUCTOR, "quiz-live", 403),
        (STUDENT, "quiz-draft", 403),
        (STUDENT, "quiz-live", 200),
        (INSTRUCTOR, "quiz-missing", 403),
        (SUPER_ADMIN, "quiz-foreign", 200),
    ])
    def test_read(self, client, seeded, actor, quiz_id, expected):
        response = client.get(f"/api/quizzes/{quiz_id}", headers=actor_headers(actor))
        assert response.status_code == expected

    def test_owner_updates(self, client, seeded):
        response = client.put(
            "/api/quizzes/quiz-draft",
            json={"title": "Renamed", "tenant_id": "tenant-b"},
            headers=actor_headers(INSTRUCTOR),
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"
        assert response.json()["tenant_id"] == "tenant-a"

    @pytest.mark.parametrize("actor,quiz_id", [
        (INSTRUCTOR, "quiz-colleague"),
        (INSTRUCTOR, "quiz-foreign"),
        (STUDENT, "quiz-live"),
    ])
    def test_update_denied(self, client, seeded, actor, quiz_id):
        response = client.put(f"/api/quizzes/{quiz_id}", json={"title": "Mine now"}, headers=actor_headers(actor))

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "ACCESS_DENIED"
        assert seeded.get(QuizBlueprint, quiz_id).title != "Mine now"

    @pytest.mark.parametrize("actor,quiz_id", [
        (INSTRUCTOR, "quiz-colleague"),
        (INSTRUCTOR, "quiz-foreign"),
        (STUDENT, "quiz-live"),
    ])
    def test_delete_denied(self, client, seeded, actor, quiz_id):
        response = client.delete(f"/api/quizzes/{quiz_id}", headers=actor_headers(actor))

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "ACCESS_DENIED"
        seeded.expire_all()
        assert seeded.get(QuizBlueprint, quiz_id) is not None

    def test_owner_deletes(self, client, seeded):
        response = client.delete("/api/quizzes/quiz-draft", headers=actor_headers(INSTRUCTOR))

        assert response.status_code == 200
        seeded.expire_all()
        assert seeded.get(QuizBlueprint, "quiz-draft") is None

    def test_duplicate_colleague_quiz(self, client, seeded):
        response = client.post("/api/quizzes/quiz-colleague/duplicate", headers=actor_headers(INSTRUCTOR))

        assert response.status_code == 201
        copy = response.json()
        assert copy["title"] == "Other (Copy)"
        assert copy["owner_user_id"] == "instructor-1"
        assert copy["tenant_id"] == "tenant-a"
        assert copy["status"] == "draft"

    def test_duplicate_foreign_quiz_denied(self, client, seeded):
        response = client.post("/api/quizzes/quiz-foreign/duplicate", headers=actor_headers(INSTRUCTOR))
        assert response.status_code == 403

    def test_students_cannot_duplicate_or_publish(self, client, seeded):
        for path in ["/api/quizzes/quiz-live/duplicate", "/api/quizzes/quiz-live/publish"]:
            response = client.post(path, headers=actor_headers(STUDENT))

            assert response.status_code == 403
            assert response.json()["detail"]["code"] == "INSUFFICIENT_PERMISSIONS"

    def test_publish(self, client, seeded):
        response = client.post("/api/quizzes/quiz-draft/publish", headers=actor_headers(INSTRUCTOR))

        assert response.status_code == 200
        assert response.json()["status"] == "published"

    def test_publish_colleague_quiz_denied(self, client, seeded):
        response = client.post("/api/quizzes/quiz-colleague/publish", headers=actor_headers(INSTRUCTOR))
        assert response.status_code == 403
