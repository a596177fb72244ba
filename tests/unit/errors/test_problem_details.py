"""Tests for RFC 7807 error rendering."""

import pytest
from fastapi import FastAPI, Query
from httpx import ASGITransport, AsyncClient

from stationtrack.core.errors import (
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    register_exception_handlers,
)


def build_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/missing")
    async def missing() -> None:
        raise NotFoundError("Audit log not found", resource="audit_event", resource_id="42")

    @app.get("/invalid")
    async def invalid() -> None:
        raise ValidationError(
            "Invalid date range",
            errors=[{"field": "startDate", "message": "must not be after endDate"}],
        )

    @app.get("/forbidden")
    async def forbidden() -> None:
        raise ForbiddenError(details={"required_roles": ["admin"]})

    @app.get("/paged")
    async def paged(limit: int = Query(10, ge=1, le=100)) -> dict:
        return {"limit": limit}

    @app.get("/crash")
    async def crash() -> None:
        raise RuntimeError("secret internals")

    return app


@pytest.fixture
async def error_client():
    async with AsyncClient(
        transport=ASGITransport(app=build_app(), raise_app_exceptions=False),
        base_url="http://test",
    ) as client:
        yield client


class TestProblemDetails:
    """Tests for the exception handlers."""

    @pytest.mark.asyncio
    async def test_not_found(self, error_client):
        response = await error_client.get("/missing")
        body = response.json()

        assert response.status_code == 404
        assert body["status"] == 404
        assert body["title"] == "Not Found"
        assert body["detail"] == "Audit log not found"
        assert body["instance"] == "/missing"
        assert body["type"].endswith("/errors/not_found")
        assert body["resource"] == "audit_event"
        assert body["resource_id"] == "42"

    @pytest.mark.asyncio
    async def test_domain_validation_lists_field_errors(self, error_client):
        response = await error_client.get("/invalid")
        body = response.json()

        assert response.status_code == 422
        assert body["errors"] == [
            {"field": "startDate", "message": "must not be after endDate"}
        ]

    @pytest.mark.asyncio
    async def test_request_validation_strips_location(self, error_client):
        response = await error_client.get("/paged", params={"limit": 500})
        body = response.json()

        assert response.status_code == 422
        assert body["title"] == "Validation Error"
        assert body["errors"][0]["field"] == "limit"

    @pytest.mark.asyncio
    async def test_forbidden_carries_details(self, error_client):
        response = await error_client.get("/forbidden")

        assert response.status_code == 403
        assert response.json()["required_roles"] == ["admin"]

    @pytest.mark.asyncio
    async def test_unhandled_error_is_generic(self, error_client):
        response = await error_client.get("/crash")
        body = response.json()

        assert response.status_code == 500
        assert body["detail"] == "An unexpected error occurred"
        assert "secret" not in response.text


class TestExceptions:
    """Tests for exception defaults."""

    def test_persistence_error_defaults(self):
        exc = PersistenceError()

        assert exc.status_code == 503
        assert exc.error_code == "persistence_error"

    def test_not_found_without_resource(self):
        assert NotFoundError().details == {}
