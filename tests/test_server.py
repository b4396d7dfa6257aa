import pytest
from fastapi.testclient import TestClient

import server
from conftest import FakeSession

POST_URL = "https://www.linkedin.com/posts/acme_123"
LIKERS = {"likers": [{"profileUrl": "https://linkedin.com/in/a", "fullName": "A"}]}


@pytest.fixture
def provider():
    """Holds the fake PhantomBuster session used by the next scrape request."""
    return {"session": FakeSession()}


@pytest.fixture
def api(settings, db, service_factory, provider):
    server.app.dependency_overrides[server.get_settings] = lambda: settings
    server.app.dependency_overrides[server.get_db] = lambda: db
    server.app.dependency_overrides[server.get_scrape_service] = lambda: service_factory(provider["session"])
    with TestClient(server.app) as client:
        yield client
    server.app.dependency_overrides.clear()


def test_health(api):
    resp = api.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert "X-Request-ID" in resp.headers


def test_create_and_list_projects(api):
    resp = api.post("/api/projects", json={"name": "  Launch week  "})
    assert resp.status_code == 200
    project = resp.json()["project"]
    assert project["name"] == "Launch week"
    assert "createdAt" in project

    listed = api.get("/api/projects").json()
    assert listed["success"] is True
    assert [p["name"] for p in listed["projects"]] == ["Launch week"]


@pytest.mark.parametrize("body", [{}, {"name": ""}, {"name": "   "}])
def test_project_name_is_required(api, body):
    resp = api.post("/api/projects", json=body)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Project name is required"


def test_scrape_returns_profiles_post_and_logs(api, provider):
    project_id = api.post("/api/projects", json={"name": "Launch week"}).json()["project"]["id"]
    provider["session"] = FakeSession(outputs=[{"output": LIKERS}])

    resp = api.post("/api/phantombuster", json={"linkedinPostUrl": POST_URL, "projectId": project_id})

    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["profiles"] == [{"profileUrl": "https://linkedin.com/in/a", "name": "A", "headline": None}]
    assert data["containerId"] == "c-1"
    assert {e["type"] for e in data["logs"]} >= {"operation", "api", "success"}

    detail = api.get(f"/api/projects/{project_id}").json()["project"]
    assert [p["postUrl"] for p in detail["posts"]] == [POST_URL]
    assert detail["posts"][0]["id"] == data["postId"]

    profiles = api.get(f"/api/posts/{data['postId']}/profiles").json()["profiles"]
    assert [p["profileUrl"] for p in profiles] == ["https://linkedin.com/in/a"]


def test_scrape_rejects_pulse_urls(api, provider):
    project_id = api.post("/api/projects", json={"name": "Launch week"}).json()["project"]["id"]

    resp = api.post(
        "/api/phantombuster",
        json={"linkedinPostUrl": "https://www.linkedin.com/pulse/an-article", "projectId": project_id},
    )

    assert resp.status_code == 400
    data = resp.json()
    assert data["category"] == "validation_error"
    assert "Pulse" in data["error"]
    assert provider["session"].calls == []


def test_scrape_error_categories_map_to_status(api, provider):
    project_id = api.post("/api/projects", json={"name": "Launch week"}).json()["project"]["id"]
    provider["session"] = FakeSession(outputs=[{"error": "Rate limit: too many requests"}])

    resp = api.post("/api/phantombuster", json={"linkedinPostUrl": POST_URL, "projectId": project_id})

    assert resp.status_code == 429
    assert resp.json()["category"] == "rate_limited"
    assert resp.json()["logs"][-1]["type"] == "error"


def test_unknown_project_detail_is_404(api):
    assert api.get("/api/projects/12345").status_code == 404


def test_recent_logs_endpoint(api, provider):
    project_id = api.post("/api/projects", json={"name": "Launch week"}).json()["project"]["id"]
    provider["session"] = FakeSession(outputs=[{"output": LIKERS}])
    api.post("/api/phantombuster", json={"linkedinPostUrl": POST_URL, "projectId": project_id})

    logs = api.get("/api/logs", params={"limit": 2}).json()["logs"]

    assert len(logs) == 2
    assert logs[-1]["message"] == "Saved 1 profile(s)"


def test_unexpected_scrape_failure_is_500(api, db, provider):
    project_id = api.post("/api/projects", json={"name": "Launch week"}).json()["project"]["id"]
    provider["session"] = FakeSession(outputs=[{"output": LIKERS}])

    def broken_save(post_id, profiles):
        raise RuntimeError("disk full")

    db.save_profiles = broken_save
    resp = api.post("/api/phantombuster", json={"linkedinPostUrl": POST_URL, "projectId": project_id})

    assert resp.status_code == 500
    data = resp.json()
    assert data["error"] == "Failed to scrape LinkedIn profiles"
    assert data["details"] == "disk full"
    assert data["logs"][-1]["type"] == "error"


@pytest.mark.parametrize(
    "body",
    [
        {"linkedinPostUrl": POST_URL, "projectId": "abc"},
        {"linkedinPostUrl": 123, "projectId": 1},
        {"linkedinPostUrl": POST_URL},
    ],
)
def test_malformed_scrape_body_is_a_validation_error(api, provider, body):
    api.post("/api/projects", json={"name": "Launch week"})

    resp = api.post("/api/phantombuster", json=body)

    assert resp.status_code == 400
    data = resp.json()
    assert data["category"] == "validation_error"
    assert data["error"]
    assert data["logs"][-1]["type"] == "error"
    assert provider["session"].calls == []


def test_non_object_body_is_a_validation_error(api, provider):
    resp = api.post("/api/phantombuster", json=["not", "an", "object"])

    assert resp.status_code == 400
    assert resp.json()["category"] == "validation_error"
    assert "details" in resp.json()
    assert provider["session"].calls == []


def test_scrape_services_share_one_client_closed_on_shutdown(monkeypatch, settings, db):
    monkeypatch.setenv("PHANTOMBUSTER_API_KEY", "pb-test-key")
    server.get_settings.cache_clear()
    server.get_client.cache_clear()
    try:
        client = server.get_client()
        first = server.get_scrape_service(settings, db, server.get_client())
        second = server.get_scrape_service(settings, db, server.get_client())
        assert first.launcher.client is client
        assert second.launcher.client is client
        assert first.poller.client is client

        closed = []
        monkeypatch.setattr(client, "close", lambda: closed.append(True))
        with TestClient(server.app):
            pass

        assert closed == [True]
        assert server.get_client.cache_info().currsize == 0
    finally:
        server.get_settings.cache_clear()
        server.get_client.cache_clear()
