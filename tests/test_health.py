from fastapi import status

def test_health_check(client):
    """Test the /health endpoint returns 200 and up status."""
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "up"
    assert "version" in data
    assert "timestamp" in data

def test_readiness_check(client):
    """Test the /readiness endpoint returns 200 and database status."""
    response = client.get("/readiness")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "ready"
    assert data["components"]["database"] == "connected"

def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "Appraisal Lifecycle Orchestrator" in response.json()["message"]

def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert "X-Process-Time" in response.headers

def test_missing_actor_is_unauthenticated(client):
    response = client.get("/api/evaluations")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["code"] == "AUTH_FAILED"

def test_unknown_actor_is_unauthenticated(client):
    response = client.get("/api/evaluations", headers={"X-User-Id": "9999"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

def test_inactive_actor_is_forbidden(client, make_user, as_user):
    from appraisal.models.user import UserStatus
    user = make_user(status=UserStatus.INACTIVE)
    response = client.get("/api/evaluations", headers=as_user(user))
    assert response.status_code == status.HTTP_403_FORBIDDEN

def test_log_lines_carry_request_and_actor():
    import json
    import logging
    from appraisal.core.logging import AppraisalJsonFormatter, actor_id_var, request_id_var

    request_token = request_id_var.set("req-42")
    actor_token = actor_id_var.set("7")
    try:
        record = logging.LogRecord("appraisal.test", logging.INFO, __file__, 1, "hello", None, None)
        line = json.loads(AppraisalJsonFormatter("%(timestamp) %(level) %(name) %(message)").format(record))
    finally:
        actor_id_var.reset(actor_token)
        request_id_var.reset(request_token)

    assert line["message"] == "hello"
    assert line["level"] == "INFO"
    assert line["request_id"] == "req-42"
    assert line["actor_id"] == "7"
    assert line["timestamp"]
