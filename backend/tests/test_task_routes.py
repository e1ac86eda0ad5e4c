from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from fieldops.auth import get_current_actor
from fieldops.config import settings
from fieldops.domain_errors import DomainError
from fieldops.main import app
from fieldops.repositories.task_store import TaskScope
from fieldops.routers.tasks import get_station_registry, get_task_store
from fieldops.services.event_builder import Actor

BASE = "/api/v1/orgs/acme/projects/T2-IRK/tasks"


class _StoreStub:
    def __init__(self, task):
        self.task = task
        self.writes = []
        self.scope = TaskScope(org_id=task.org_id, project_id=task.project_id)

    def resolve_scope(self, org_ref, project_ref):
        if org_ref != "acme":
            raise DomainError(code="ORG_NOT_FOUND", http_status=404, message="Org not found")
        return self.scope

    def find_task(self, scope, *, task_id=None, task_code=None):
        if task_id == self.task.id or (task_id is None and task_code == self.task.task_code):
            return self.task
        return None

    def task_code_exists(self, scope, task_code):
        return task_code == self.task.task_code

    def create_task(self, scope, fields, events):
        return SimpleNamespace(
            id=uuid4(),
            org_id=scope.org_id,
            project_id=scope.project_id,
            events=list(events),
            created_at=None,
            updated_at=None,
            **fields,
        )

    def apply_write(self, task, write):
        self.writes.append(write)
        for name, value in write.fields_to_set.items():
            setattr(task, name, value)
        for name in write.fields_to_clear:
            setattr(task, name, None)
        task.events.extend(write.events_to_append)
        return task


class _RegistryStub:
    def find_station(self, bs_number, *, operator_code=None, region_code=None):
        return None

    def upsert_station(self, request):
        return None


def _task():
    return SimpleNamespace(
        id=uuid4(),
        org_id=uuid4(),
        project_id=uuid4(),
        task_code="K7QX2",
        task_name="Replace RRU",
        bs_number="IR0001",
        bs_address="Irkutsk, Lenina 1",
        task_description=None,
        status="To do",
        priority="medium",
        due_date=None,
        bs_location=[],
        bs_latitude=None,
        bs_longitude=None,
        total_cost=None,
        executor_id=None,
        executor_name=None,
        executor_email=None,
        author_id="u-1",
        author_name="Dispatcher",
        author_email=None,
        events=[],
        created_at=None,
        updated_at=None,
    )


@pytest.fixture()
def store():
    return _StoreStub(_task())


@pytest.fixture()
def client(store):
    app.dependency_overrides[get_task_store] = lambda: store
    app.dependency_overrides[get_station_registry] = lambda: _RegistryStub()
    app.dependency_overrides[get_current_actor] = lambda: Actor(id="u-1", name="Dispatcher")
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_health(client) -> None:
    response = client.get("/api/v1/system/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_patch_normalizes_status_label_and_records_event(client, store) -> None:
    response = client.patch(f"{BASE}/K7QX2", json={"status": "in progress"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "At work"
    assert [event["action"] for event in payload["events"]] == ["updated"]
    assert payload["events"][0]["details"] == {"status": {"from": "To do", "to": "At work"}}


def test_put_is_accepted_as_sparse_update(client, store) -> None:
    response = client.put(f"{BASE}/{store.task.id}", json={"priority": "urgent"})

    assert response.status_code == 200
    assert response.json()["priority"] == "urgent"


def test_patch_with_only_garbage_changes_nothing(client, store) -> None:
    response = client.patch(
        f"{BASE}/K7QX2",
        json={"priority": "whatever", "due_date": "soon", "org_id": "other"},
    )

    assert response.status_code == 200
    assert response.json()["events"] == []
    assert store.writes == []


def test_malformed_body_is_problem_details(client, store) -> None:
    response = client.patch(
        f"{BASE}/K7QX2",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 422
    assert response.headers["content-type"].startswith("application/problem+json")
    payload = response.json()
    assert payload["code"] == "VALIDATION_ERROR"
    assert payload["details"]["errors"]
    assert store.writes == []


def test_unknown_task_is_404(client) -> None:
    response = client.get(f"{BASE}/ZZZZZ")

    assert response.status_code == 404
    assert response.json()["code"] == "TASK_NOT_FOUND"
    assert response.json()["instance"] == f"{BASE}/ZZZZZ"


def test_unknown_org_is_404(client) -> None:
    response = client.get("/api/v1/orgs/nobody/projects/T2-IRK/tasks/K7QX2")

    assert response.status_code == 404
    assert response.json()["code"] == "ORG_NOT_FOUND"


def test_create_returns_201_with_generated_code(client) -> None:
    response = client.post(
        BASE,
        json={"task_name": "Swap antenna", "bs_number": "IR0002", "bs_address": "Irkutsk, Marksa 5"},
    )

    assert response.status_code == 201
    payload = response.json()
    assert payload["status"] == "To do"
    assert payload["priority"] == "medium"
    assert len(payload["task_code"]) == settings.TASK_CODE_LENGTH
    assert [event["action"] for event in payload["events"]] == ["created"]


def test_create_missing_required_field_is_validation_error(client) -> None:
    response = client.post(BASE, json={"task_name": "Swap antenna"})

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_history_returns_reconciled_timeline(client, store) -> None:
    client.patch(f"{BASE}/K7QX2", json={"executor_id": "e-42", "executor_name": "Ann"})

    response = client.get(f"{BASE}/K7QX2/history")

    assert response.status_code == 200
    rows = response.json()
    assert len(store.task.events) == 2
    assert [row["title"] for row in rows] == ["assigned to executor"]
    assert rows[0]["details"]["status"] == {"from": "To do", "to": "Assigned"}


def test_missing_token_is_401(store) -> None:
    app.dependency_overrides[get_task_store] = lambda: store
    try:
        response = TestClient(app).get(f"{BASE}/K7QX2")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_REQUIRED"


def test_bearer_token_resolves_actor(store) -> None:
    token = jwt.encode(
        {"sub": "u-7", "name": "Field Lead", "email": "lead@example.com"},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    app.dependency_overrides[get_task_store] = lambda: store
    app.dependency_overrides[get_station_registry] = lambda: _RegistryStub()
    try:
        client = TestClient(app)
        ok = client.patch(
            f"{BASE}/K7QX2",
            json={"priority": "low"},
            headers={"Authorization": f"Bearer {token}"},
        )
        bad = client.get(f"{BASE}/K7QX2", headers={"Authorization": "Bearer not-a-jwt"})
    finally:
        app.dependency_overrides.clear()

    assert ok.status_code == 200
    assert ok.json()["events"][0]["author"] == "Field Lead"
    assert bad.status_code == 401
    assert bad.json()["code"] == "AUTH_INVALID_TOKEN"
