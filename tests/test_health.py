# tests/test_health.py
# mypy: ignore-errors
from typing import Any

from fastapi import status


def test_root_responds(client: Any) -> None:
    """Verify that the root endpoint describes the API."""
    r = client.get("/")
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["docs"] == "/docs"


def test_health_check(client: Any) -> None:
    r = client.get("/health")
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"status": "ok"}


def test_validation_errors_are_bad_requests(client: Any, auth_token) -> None:
    """Body validation failures map to 400 with the field errors attached."""
    r = client.post("/api/communities", json={"name": "x"}, headers=auth_token)
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    body = r.json()
    assert body["detail"] == "Validation failed"
    assert body["errors"]
