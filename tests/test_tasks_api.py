"""Task service API tests.

Learn: Tests cover:
1. CRUD, toggle, search and filter within a project
2. Project ownership checked through the project service:
   someone else's project → 403, missing project → 404
3. Stats: counts and half-up rounding, zeros for unknown projects
4. Ownership enforcement switched off (the old trust-the-caller mode)
5. Project service unreachable → 503 (fails closed)
"""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from projectflow.clients.projects import ProjectAccessClient
from projectflow.main import create_task_app
from projectflow.services.task_service import progress_percentage


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def ada(register):
    return await register("ada@example.com", name="Ada")


@pytest.fixture
async def bob(register):
    return await register("bob@example.com", name="Bob")


@pytest.fixture
async def project(project_client, ada):
    r = await project_client.post(
        "/api/projects", json={"title": "Apollo"}, headers=_auth(ada["token"])
    )
    assert r.status_code == 201
    return r.json()


async def _task(client, token, project_id, title="Write tests", **extra):
    r = await client.post(
        "/api/tasks",
        json={"title": title, "projectId": project_id, **extra},
        headers=_auth(token),
    )
    assert r.status_code == 201, r.text
    return r.json()


# ═══════════════════════════════════════════════════════════
# CRUD
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_task(task_client, ada, project):
    task = await _task(
        task_client, ada["token"], project["id"],
        description="all of them", dueDate="2026-04-01",
    )
    assert task["title"] == "Write tests"
    assert task["description"] == "all of them"
    assert task["projectId"] == project["id"]
    assert task["dueDate"] == "2026-04-01"
    assert task["completed"] is False


@pytest.mark.asyncio
async def test_create_task_blank_title(task_client, ada, project):
    r = await task_client.post(
        "/api/tasks",
        json={"title": "  ", "projectId": project["id"]},
        headers=_auth(ada["token"]),
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_create_task_missing_project_id(task_client, ada):
    r = await task_client.post(
        "/api/tasks", json={"title": "orphan"}, headers=_auth(ada["token"])
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_list_get_update_delete(task_client, ada, project):
    first = await _task(task_client, ada["token"], project["id"], title="First")
    await _task(task_client, ada["token"], project["id"], title="Second")

    r = await task_client.get(f"/api/tasks/project/{project['id']}", headers=_auth(ada["token"]))
    assert [t["title"] for t in r.json()] == ["First", "Second"]

    r = await task_client.get(f"/api/tasks/{first['id']}", headers=_auth(ada["token"]))
    assert r.status_code == 200
    assert r.json()["title"] == "First"

    r = await task_client.put(
        f"/api/tasks/{first['id']}",
        json={"title": "First (edited)", "dueDate": "2026-05-05"},
        headers=_auth(ada["token"]),
    )
    assert r.status_code == 200
    assert r.json()["title"] == "First (edited)"
    assert r.json()["dueDate"] == "2026-05-05"
    assert r.json()["projectId"] == project["id"]

    r = await task_client.delete(f"/api/tasks/{first['id']}", headers=_auth(ada["token"]))
    assert r.status_code == 200
    r = await task_client.get(f"/api/tasks/{first['id']}", headers=_auth(ada["token"]))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_toggle(task_client, ada, project):
    task = await _task(task_client, ada["token"], project["id"])
    r = await task_client.patch(f"/api/tasks/{task['id']}/toggle", headers=_auth(ada["token"]))
    assert r.json()["completed"] is True
    r = await task_client.patch(f"/api/tasks/{task['id']}/toggle", headers=_auth(ada["token"]))
    assert r.json()["completed"] is False


@pytest.mark.asyncio
async def test_search_and_filter(task_client, ada, project):
    pid = project["id"]
    a = await _task(task_client, ada["token"], pid, title="Fix login bug")
    await _task(task_client, ada["token"], pid, title="Write docs")
    await _task(task_client, ada["token"], pid, title="Fix signup BUG")
    await task_client.patch(f"/api/tasks/{a['id']}/toggle", headers=_auth(ada["token"]))

    r = await task_client.get(
        f"/api/tasks/project/{pid}/search", params={"query": "bug"}, headers=_auth(ada["token"])
    )
    assert [t["title"] for t in r.json()] == ["Fix login bug", "Fix signup BUG"]

    r = await task_client.get(
        f"/api/tasks/project/{pid}/filter", params={"completed": "true"}, headers=_auth(ada["token"])
    )
    assert [t["title"] for t in r.json()] == ["Fix login bug"]

    r = await task_client.get(
        f"/api/tasks/project/{pid}/filter", params={"completed": "false"}, headers=_auth(ada["token"])
    )
    assert len(r.json()) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "query,expected",
    [
        ("%", ["Reach 100%"]),
        ("_", ["rename user_id"]),
    ],
)
async def test_search_wildcards_match_literally(task_client, ada, project, query, expected):
    for title in ("Plan", "Reach 100%", "rename user_id"):
        await _task(task_client, ada["token"], project["id"], title=title)

    r = await task_client.get(
        f"/api/tasks/project/{project['id']}/search",
        params={"query": query},
        headers=_auth(ada["token"]),
    )
    assert [t["title"] for t in r.json()] == expected


@pytest.mark.asyncio
async def test_missing_task_is_404(task_client, ada):
    r = await task_client.get("/api/tasks/4242", headers=_auth(ada["token"]))
    assert r.status_code == 404
    assert r.json() == {"message": "Task not found"}


@pytest.mark.asyncio
async def test_requires_token(task_client, project):
    r = await task_client.get(f"/api/tasks/project/{project['id']}")
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Project ownership
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_cannot_add_task_to_someone_elses_project(task_client, bob, project):
    r = await task_client.post(
        "/api/tasks",
        json={"title": "sneaky", "projectId": project["id"]},
        headers=_auth(bob["token"]),
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_cannot_add_task_to_missing_project(task_client, ada):
    r = await task_client.post(
        "/api/tasks",
        json={"title": "lost", "projectId": 9999},
        headers=_auth(ada["token"]),
    )
    assert r.status_code == 404
    assert r.json() == {"message": "Project not found"}


@pytest.mark.asyncio
async def test_cannot_touch_someone_elses_tasks(task_client, ada, bob, project):
    task = await _task(task_client, ada["token"], project["id"])
    tid, pid = task["id"], project["id"]
    bob_h = _auth(bob["token"])

    assert (await task_client.get(f"/api/tasks/{tid}", headers=bob_h)).status_code == 403
    assert (await task_client.put(f"/api/tasks/{tid}", json={"title": "x"}, headers=bob_h)).status_code == 403
    assert (await task_client.patch(f"/api/tasks/{tid}/toggle", headers=bob_h)).status_code == 403
    assert (await task_client.delete(f"/api/tasks/{tid}", headers=bob_h)).status_code == 403
    assert (await task_client.get(f"/api/tasks/project/{pid}", headers=bob_h)).status_code == 403


@pytest.mark.asyncio
async def test_ownership_check_disabled_trusts_project_id(settings, services, clock, ada):
    """The old behaviour: any project id is accepted without asking."""

    def explode(request):
        raise AssertionError("project service must not be called")

    settings.enforce_task_project_ownership = False
    app = create_task_app(
        settings,
        database=services.task_db,
        clock=clock,
        project_access=ProjectAccessClient(
            "http://projects", transport=httpx.MockTransport(explode)
        ),
    )
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        task = await _task(client, ada["token"], 9999)
        assert task["projectId"] == 9999


@pytest.mark.asyncio
async def test_project_service_down_fails_closed(settings, services, clock, ada):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    app = create_task_app(
        settings,
        database=services.task_db,
        clock=clock,
        project_access=ProjectAccessClient(
            "http://projects", transport=httpx.MockTransport(refuse)
        ),
    )
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        r = await client.post(
            "/api/tasks", json={"title": "t", "projectId": 1}, headers=_auth(ada["token"])
        )
    assert r.status_code == 503
    assert r.json() == {"message": "Project service is unavailable"}


# ═══════════════════════════════════════════════════════════
# Stats
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_stats(task_client, ada, project):
    pid = project["id"]
    ids = [(await _task(task_client, ada["token"], pid, title=f"t{i}"))["id"] for i in range(3)]
    await task_client.patch(f"/api/tasks/{ids[1]}/toggle", headers=_auth(ada["token"]))

    r = await task_client.get(f"/api/tasks/project/{pid}/stats", headers=_auth(ada["token"]))
    assert r.status_code == 200
    assert r.json() == {"totalTasks": 3, "completedTasks": 1, "progressPercentage": 33.33}


@pytest.mark.asyncio
async def test_stats_unknown_project_is_zero(task_client, ada):
    r = await task_client.get("/api/tasks/project/777/stats", headers=_auth(ada["token"]))
    assert r.status_code == 200
    assert r.json() == {"totalTasks": 0, "completedTasks": 0, "progressPercentage": 0.0}


@pytest.mark.asyncio
async def test_stats_readable_by_any_authenticated_caller(task_client, ada, bob, project):
    """No ownership check here; the project service calls this route itself."""
    await _task(task_client, ada["token"], project["id"])
    r = await task_client.get(
        f"/api/tasks/project/{project['id']}/stats", headers=_auth(bob["token"])
    )
    assert r.status_code == 200
    assert r.json()["totalTasks"] == 1


@pytest.mark.asyncio
async def test_stats_requires_token(task_client):
    r = await task_client.get("/api/tasks/project/1/stats")
    assert r.status_code == 401


@pytest.mark.parametrize(
    "completed,total,expected",
    [
        (0, 0, 0.0),
        (1, 3, 33.33),
        (2, 3, 66.67),
        (3, 3, 100.0),
        (1, 8, 12.5),
        (1, 160, 0.63),   # 0.625 → half-up, not banker's 0.62
        (1, 6, 16.67),
    ],
)
def test_progress_percentage(completed, total, expected):
    assert progress_percentage(completed, total) == expected
