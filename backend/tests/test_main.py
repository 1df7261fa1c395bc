"""Tests for app-level endpoints and the global error handler."""

from billing_sync.infrastructure.exceptions import ConfigurationError


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_unmapped_application_error(app, client):
    from billing_sync.api.dependencies import get_webhook_router

    def broken_router():
        raise ConfigurationError("DATABASE_URL missing", missing_keys=["DATABASE_URL"])

    app.dependency_overrides[get_webhook_router] = broken_router

    response = client.post(
        "/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "t=1,v1=x"}
    )

    assert response.status_code == 500
    assert response.json() == {
        "error": "ConfigurationError",
        "message": "DATABASE_URL missing",
        "details": {"missing_keys": ["DATABASE_URL"]},
    }
