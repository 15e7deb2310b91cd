"""
Tests for health checks, Prometheus metrics and logging management
"""
import logging

import pytest

from quimica.services.result_service import ResultService


@pytest.fixture
def restore_level():
    """Put back the level of loggers changed by a test"""
    saved = {}

    def _remember(name):
        saved[name] = logging.getLogger(name).level

    yield _remember
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_detailed_health(client, student, auth_headers):
    auth_headers(student)

    response = client.get("/health/detailed")

    assert response.status_code == 200
    database = response.json()["components"]["database"]
    assert database["status"] == "healthy"
    assert database["active_sessions"] == 1
    assert "server_keys" in response.json()["components"]["generation"]


def test_api_root(client):
    data = client.get("/api").json()

    assert data["status"] == "running"
    assert data["environment"]


def test_liveness(client):
    assert client.get("/health/liveness").json()["status"] == "alive"


def test_prometheus_metrics(client):
    client.get("/health")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text


def test_learning_gauges_follow_the_database(client, db, quiz, student, auth_headers):
    auth_headers(student)
    ResultService(db).create_result(quiz.id, student.id)

    text = client.get("/metrics").text

    assert "active_sessions 1.0" in text
    assert "quiz_attempts_in_progress 1.0" in text


def test_request_id_is_echoed(client):
    response = client.get("/api", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"
    assert client.get("/api").headers["X-Request-ID"]


def test_logging_routes_are_admin_only(client, teacher, auth_headers):
    assert client.get("/api/logging/levels", headers=auth_headers(teacher)).status_code == 403
    assert client.get("/api/logging/metrics", headers=auth_headers(teacher)).status_code == 403


def test_get_log_levels(client, admin, auth_headers):
    response = client.get("/api/logging/levels", headers=auth_headers(admin))

    assert response.status_code == 200
    assert "quimica.services" in response.json()


def test_set_module_level(client, admin, auth_headers, restore_level):
    headers = auth_headers(admin)
    restore_level("quimica.services.quiz_service")

    response = client.put(
        "/api/logging/levels/quimica.services.quiz_service",
        headers=headers,
        json={"level": "debug"},
    )
    assert response.status_code == 200
    assert response.json() == {"module": "quimica.services.quiz_service", "level": "DEBUG"}

    response = client.get("/api/logging/levels/quimica.services.quiz_service", headers=headers)
    assert response.json()["level"] == "DEBUG"


def test_set_invalid_level(client, admin, auth_headers):
    response = client.put("/api/logging/levels/quimica", headers=auth_headers(admin), json={"level": "LOUD"})

    assert response.status_code == 400
    assert "Invalid log level" in response.json()["detail"]


def test_log_metrics(client, admin, auth_headers):
    headers = auth_headers(admin)

    assert client.post("/api/logging/metrics/reset", headers=headers).status_code == 200
    response = client.get("/api/logging/metrics", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == sum(data["metrics"].values())
    assert "ERROR" in data["metrics"]
