"""
Tests for error shapes and ErrorHandlerMiddleware.
"""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from neto_history.platform.errors import (
    ErrorHandlerMiddleware,
    InvalidTenantError,
    OAuthError,
    StorageUnavailableError,
    UnauthorizedTenantError,
    UpstreamError,
)


@pytest.fixture
def client():
    app = FastAPI()
    app.add_middleware(ErrorHandlerMiddleware)

    @app.get("/unauthorized")
    async def unauthorized():
        raise UnauthorizedTenantError("mystore.neto.com.au")

    @app.get("/http")
    async def http_error():
        raise HTTPException(status_code=404, detail="Not here")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("internal detail that must not leak")

    @app.get("/ok")
    async def ok():
        return {"ok": True}

    return TestClient(app)


class TestErrorShapes:

    @pytest.mark.parametrize("error, status_code, code", [
        (InvalidTenantError(), 400, "INVALID_TENANT"),
        (UnauthorizedTenantError("mystore.neto.com.au"), 401, "UNAUTHORIZED_TENANT"),
        (UpstreamError("Neto API request failed: 500"), 502, "UPSTREAM_ERROR"),
        (StorageUnavailableError(), 503, "STORAGE_UNAVAILABLE"),
        (OAuthError("Invalid or expired OAuth state"), 400, "OAUTH_ERROR"),
    ])
    def test_status_and_code(self, error, status_code, code):
        assert error.status_code == status_code
        assert error.to_dict()["error"]["code"] == code

    def test_unauthorized_carries_tenant(self):
        error = UnauthorizedTenantError("mystore.neto.com.au")

        assert error.tenant == "mystore.neto.com.au"
        assert error.to_dict()["error"]["details"] == {"store_domain": "mystore.neto.com.au"}


class TestErrorHandlerMiddleware:

    def test_app_error_response(self, client):
        response = client.get("/unauthorized")

        assert response.status_code == 401
        assert response.json() == {
            "error": {
                "code": "UNAUTHORIZED_TENANT",
                "message": "Store has not completed authorization",
                "details": {"store_domain": "mystore.neto.com.au"},
            }
        }
        assert response.headers["X-Correlation-ID"]

    def test_http_exception_response(self, client):
        response = client.get("/http")

        assert response.status_code == 404
        assert response.headers["X-Correlation-ID"]

    def test_unhandled_exception_hides_detail(self, client):
        response = client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"]["code"] == "INTERNAL_ERROR"
        assert "must not leak" not in response.text
        assert body["error"]["details"]["correlation_id"] == response.headers["X-Correlation-ID"]

    def test_correlation_id_propagated(self, client):
        response = client.get("/ok", headers={"X-Correlation-ID": "corr-123"})

        assert response.status_code == 200
        assert response.headers["X-Correlation-ID"] == "corr-123"
