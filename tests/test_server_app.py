import pytest
from fastapi.testclient import TestClient

from core import Settings
from server.app import create_app


@pytest.fixture
def client(ts_project, memory_dir):
    app = create_app(Settings(project_root=str(ts_project), memory_dir=str(memory_dir)))
    with TestClient(app) as client:
        yield client


def test_health_and_status(client, ts_project):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy", "system_ready": True}

    r = client.get("/status")
    assert r.status_code == 200
    assert r.json()["project_root"] == str(ts_project)
    assert r.json()["tool_count"] == 7


def test_list_and_call_tools(client):
    r = client.get("/tools")
    assert r.status_code == 200
    assert r.json()["count"] == 7

    r = client.post("/tools/analyze_codebase_structure", json={"depth": "shallow"})
    assert r.status_code == 200
    body = r.json()
    assert body["tool"] == "analyze_codebase_structure"
    assert body["result"]["architecture_pattern"] == "Service Layer Architecture"

    r = client.post("/tools/track_technical_debt")
    assert r.status_code == 200


def test_tool_errors_map_to_status_codes(client):
    r = client.post("/tools/get_related_files", json={})
    assert r.status_code == 422
    assert r.json()["detail"][0]["field"] == "filePath"

    r = client.post("/tools/drop_tables", json={})
    assert r.status_code == 404
    assert r.json()["tool"] == "drop_tables"

    r = client.post("/tools/get_related_files", json={"filePath": "src/missing.ts"})
    assert r.status_code == 404
    assert r.json()["file"] == "src/missing.ts"


def test_memory_endpoints(client):
    client.post("/tools/analyze_codebase_structure", json={"depth": "shallow"})
    client.post("/tools/optimize_dependencies", json={"analysisType": "bundle-size"})

    r = client.get("/memory/stats")
    assert r.json()["total_entries"] == 2

    r = client.get("/memory/entries", params={"type": "dependency"})
    assert r.json()["count"] == 1
    assert r.json()["entries"][0]["data"]["potential_savings"] == "~40kB"

    r = client.get("/memory/evolution", params={"timespan": "7d"})
    assert r.json()["analyses"] == 1

    r = client.post("/memory/cleanup", json={})
    assert r.status_code == 422

    r = client.post("/memory/cleanup", json={"older_than": "2000-01-01T00:00:00Z"})
    assert r.json()["removed"] == 0


def test_context_endpoints(client):
    r = client.post("/context/refresh")
    assert r.status_code == 200
    assert r.json()["language"] == "typescript"

    r = client.get("/context/file", params={"path": "src/services/user.service.ts"})
    assert r.status_code == 200
    assert r.json()["dependencies"] == ["src/models/user.model.ts"]

    r = client.get("/recommendations")
    assert r.status_code == 200
    assert r.json()["count"] == len(r.json()["recommendations"])

    r = client.get("/dependencies/stats")
    assert r.json()["total"] == 5


def test_unknown_endpoint(client):
    r = client.get("/does-not-exist")
    assert r.status_code == 404
    assert r.json()["docs"] == "/docs"


def test_requests_before_startup_get_503(ts_project, memory_dir):
    app = create_app(Settings(project_root=str(ts_project), memory_dir=str(memory_dir)))
    client = TestClient(app)

    assert client.get("/health").json()["system_ready"] is False
    assert client.get("/status").status_code == 503
