from formbuilder.core.serialization import FORMAT_VERSION


def test_health_ok(client):
    """Test health check endpoint"""
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_root_endpoint(client):
    """Test root endpoint"""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Form Builder Backend"
    assert data["status"] == "ok"
    assert data["format_version"] == FORMAT_VERSION
    assert "docs" in data
    assert "health" in data
