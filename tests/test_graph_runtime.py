from fastapi.testclient import TestClient

from mindmesh.graph_runtime.app import app

client = TestClient(app)


def test_health():
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
