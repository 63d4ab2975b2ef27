"""Route tests with auth and database overridden."""

import json
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from calcify.api.deps import create_access_token, decode_access_token
from calcify.api.routes.intake import get_intake_service
from calcify.db.models import Course, GraphHistoryEntry, Preferences, Workspace
from calcify.main import app
from calcify.schemas.intake import ChatMessage
from calcify.services.envelope import REQUEST_PREFIX, REQUEST_SUFFIX

NOW = datetime(2025, 9, 1, 12, 0, tzinfo=timezone.utc)

PLAN = {
    "id": "course_01",
    "title": "Calculus I",
    "syllabusExtract": {"term": "Fall 2025", "topics": [{"order": 1, "label": "Limits", "weeks": [1, 2]}]},
    "plan": {
        "chapters": [
            {
                "id": "ch_limits",
                "title": "Limits",
                "lessons": [{"id": "les_def", "title": "Definition of a Limit", "problemSets": [{"id": "ps_1", "title": "Basics"}]}],
            }
        ],
        "calendar": [
            {"date": "2025-08-27", "type": "lesson", "refId": "les_def"},
            {"date": "2025-09-03", "type": "problemSetDue", "refId": "ps_1"},
        ],
    },
}


def _course(user, plan_metadata=PLAN):
    return Course(
        id=uuid4(),
        user_id=user.id,
        title="Calculus I",
        description="Fall 2025",
        plan_metadata=plan_metadata,
        created_at=NOW,
        updated_at=NOW,
    )


class FakeIntakeService:
    def __init__(self, reply: ChatMessage):
        self.reply = reply
        self.histories = []

    async def submit_message(self, db, user_id, history):
        self.histories.append(list(history))
        return self.reply


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_courses_require_auth(client):
    response = await client.get("/courses/")
    assert response.status_code == 401


def test_access_token_round_trip():
    user_id = uuid4()
    assert decode_access_token(create_access_token(user_id)) == user_id
    assert decode_access_token("garbage") is None


async def test_me(authed_client, user):
    response = await authed_client.get("/auth/me")
    assert response.status_code == 200
    assert response.json()["email"] == "learner@example.com"


class TestIntakeRoute:
    async def test_reply_with_question_envelope(self, authed_client):
        payload = {"requestId": "r1", "title": "Details", "questions": [{"id": "term", "prompt": "Which term?"}]}
        reply = ChatMessage(role="assistant", content=f"One thing first.\n{REQUEST_PREFIX}{json.dumps(payload)}{REQUEST_SUFFIX}")
        service = FakeIntakeService(reply)
        app.dependency_overrides[get_intake_service] = lambda: service

        response = await authed_client.post(
            "/courses/intake/messages",
            json={"history": [{"role": "user", "content": "Calc I, fall term"}]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["displayText"] == "One thing first."
        assert body["infoRequest"]["requestId"] == "r1"
        assert body["message"]["role"] == "assistant"
        assert service.histories[0][0].content == "Calc I, fall term"

    async def test_empty_history_is_rejected(self, authed_client):
        app.dependency_overrides[get_intake_service] = lambda: FakeIntakeService(
            ChatMessage(role="assistant", content="unused")
        )
        response = await authed_client.post("/courses/intake/messages", json={"history": []})
        assert response.status_code == 422

    async def test_saved_course_summary(self, authed_client):
        reply = ChatMessage(role="assistant", content=json.dumps(PLAN), saved_course_id=str(uuid4()))
        app.dependency_overrides[get_intake_service] = lambda: FakeIntakeService(reply)

        response = await authed_client.post(
            "/courses/intake/messages",
            json={"history": [{"role": "user", "content": "Go ahead"}]},
        )

        body = response.json()
        assert body["message"]["savedCourseId"] == reply.saved_course_id
        assert body["courseSummary"] == {"title": "Calculus I", "term": "Fall 2025", "instructor": None}


class TestCourses:
    async def test_list(self, authed_client, fake_db, user):
        fake_db.queue(_course(user), _course(user))
        response = await authed_client.get("/courses/")
        assert response.status_code == 200
        assert response.json()["total"] == 2

    async def test_create(self, authed_client, fake_db, user):
        response = await authed_client.post("/courses/", json={"title": "Linear Algebra"})
        assert response.status_code == 201
        [course] = fake_db.added
        assert course.user_id == user.id
        assert course.plan_metadata == {}

    async def test_detail(self, authed_client, fake_db, user):
        fake_db.queue(_course(user))
        response = await authed_client.get(f"/courses/{uuid4()}")
        assert response.status_code == 200
        body = response.json()
        assert body["record"]["id"] == "course_01"
        assert body["record"]["syllabusExtract"]["instructor"] == "Instructor TBD"
        assert body["source_label"] == "Captured via chat conversation."
        assert body["topics"] == [{"order": 1, "label": "Limits", "weeks_label": "Weeks 1-2"}]

    async def test_unreadable_metadata_is_404(self, authed_client, fake_db, user):
        fake_db.queue(_course(user, plan_metadata=["broken"]))
        response = await authed_client.get(f"/courses/{uuid4()}")
        assert response.status_code == 404

    async def test_foreign_course_is_404(self, authed_client):
        response = await authed_client.get(f"/courses/{uuid4()}")
        assert response.status_code == 404

    async def test_calendar_labels(self, authed_client, fake_db, user):
        fake_db.queue(_course(user))
        response = await authed_client.get(f"/courses/{uuid4()}/calendar")
        labels = [entry["label"] for entry in response.json()["entries"]]
        assert labels == ["Definition of a Limit - Limits", "Basics - Definition of a Limit"]

    async def test_chapter_view(self, authed_client, fake_db, user):
        fake_db.queue(_course(user))
        response = await authed_client.get(f"/courses/{uuid4()}/chapters/ch_limits")
        assert response.status_code == 200
        body = response.json()
        assert body["chapter"]["lessons"][0]["problemSets"][0]["id"] == "ps_1"
        assert len(body["calendar"]) == 2

    async def test_missing_chapter_is_404(self, authed_client, fake_db, user):
        fake_db.queue(_course(user))
        response = await authed_client.get(f"/courses/{uuid4()}/chapters/nope")
        assert response.status_code == 404

    async def test_delete(self, authed_client, fake_db, user):
        course = _course(user)
        fake_db.queue(course)
        response = await authed_client.delete(f"/courses/{course.id}")
        assert response.status_code == 204
        assert fake_db.deleted == [course]


class TestGraphing:
    async def test_log_entry(self, authed_client, fake_db):
        response = await authed_client.post(
            "/graphing/history/",
            json={"expression": "sin(x) * a", "variables": {"a": 2}},
        )
        assert response.status_code == 201
        [entry] = fake_db.added
        assert entry.variables == {"a": 2.0}
        assert entry.settings == {}

    async def test_list_entries(self, authed_client, fake_db, user):
        fake_db.queue(
            GraphHistoryEntry(id=uuid4(), user_id=user.id, expression="x^2", variables={}, settings={}, rendered_at=NOW)
        )
        response = await authed_client.get("/graphing/history/?limit=5")
        assert response.status_code == 200
        assert response.json()["entries"][0]["expression"] == "x^2"

    @pytest.mark.parametrize("limit", [0, 1000])
    async def test_limit_bounds(self, authed_client, limit):
        response = await authed_client.get(f"/graphing/history/?limit={limit}")
        assert response.status_code == 422

    async def test_clear(self, authed_client, fake_db):
        response = await authed_client.delete("/graphing/history/")
        assert response.status_code == 204
        assert len(fake_db.executed) == 1
        assert fake_db.commits == 1


class TestPreferencesAndWorkspace:
    async def test_update_existing_preferences(self, authed_client, fake_db, user):
        prefs = Preferences(user_id=user.id, theme="system", notifications_enabled=True, calc_mode="symbolic", extras={}, updated_at=NOW)
        fake_db.queue(prefs)
        response = await authed_client.put("/preferences/", json={"theme": "dark"})
        assert response.status_code == 200
        body = response.json()
        assert body["theme"] == "dark"
        assert body["calc_mode"] == "symbolic"

    async def test_create_preferences_with_defaults(self, authed_client, fake_db):
        response = await authed_client.put("/preferences/", json={"calc_mode": "numeric"})
        assert response.status_code == 200
        body = response.json()
        assert body["theme"] == "system"
        assert body["notifications_enabled"] is True
        assert body["calc_mode"] == "numeric"

    async def test_read_workspace(self, authed_client, fake_db, user):
        fake_db.queue(
            Workspace(id=uuid4(), user_id=user.id, title="Main Workspace", data={"notes": ""}, created_at=NOW, updated_at=NOW)
        )
        response = await authed_client.get("/workspace/")
        assert response.status_code == 200
        assert response.json()["data"] == {"notes": ""}

    async def test_replace_workspace(self, authed_client, fake_db, user):
        workspace = Workspace(id=uuid4(), user_id=user.id, title="Main Workspace", data={"notes": ""}, created_at=NOW, updated_at=NOW)
        fake_db.queue(workspace)
        response = await authed_client.put("/workspace/", json={"title": "Exam prep", "data": {"notes": "chain rule"}})
        assert response.status_code == 200
        assert workspace.title == "Exam prep"
        assert workspace.data == {"notes": "chain rule"}
