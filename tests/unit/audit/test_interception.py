"""Tests for route interception (``audited`` + ``AuditedRoute``)."""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from fastapi import APIRouter, FastAPI, HTTPException, status
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from stationtrack.core.audit import AuditAction, AuditedRoute, TargetType, audited
from stationtrack.core.audit.recorder import AuditRecorder, PendingAuditEvent
from stationtrack.core.auth import PrincipalContextMiddleware
from stationtrack.core.constants import MAX_AUDIT_TARGET_ID_LENGTH
from tests.conftest import bearer


CREATED_ID = "2b0c5a43-2a57-4a3b-9d0f-0f6c1f3b8e11"


def build_app(recorder: AuditRecorder | MagicMock | None) -> FastAPI:
    """Small app exercising each resolution path."""
    router = APIRouter(prefix="/stations", route_class=AuditedRoute)

    @router.post("", status_code=status.HTTP_201_CREATED)
    @audited(AuditAction.STATION_CREATED, TargetType.STATION)
    async def create_station(body: dict[str, str]) -> dict:
        return {"success": True, "data": {"station": {"id": CREATED_ID, **body}}}

    @router.put("/{station_id}")
    @audited(AuditAction.STATION_UPDATED, TargetType.STATION)
    async def update_station(station_id: str) -> dict:
        return {"success": True, "data": {"station": {"id": "from-payload"}}}

    @router.delete("/{station_id}")
    @audited(AuditAction.STATION_DELETED, TargetType.STATION)
    async def delete_station(station_id: str) -> dict:
        raise HTTPException(status_code=404, detail="Station not found")

    @router.post("/{station_id}/firmware")
    @audited(
        "FIRMWARE_FLASHED",
        "Firmware",
        resolver=lambda ctx: ctx.request_body["version"],
    )
    async def flash_firmware(station_id: str, body: dict[str, str]) -> dict:
        return {"success": True}

    @router.get("/{station_id}")
    async def get_station(station_id: str) -> dict:
        return {"success": True, "data": {"station": {"id": station_id}}}

    app = FastAPI()
    app.state.audit_recorder = recorder
    app.add_middleware(PrincipalContextMiddleware)
    app.include_router(router)
    return app


@pytest.fixture
def spy_recorder() -> MagicMock:
    recorder = MagicMock(spec=AuditRecorder)
    recorder.submit.return_value = True
    return recorder


@pytest.fixture
async def spy_client(spy_recorder):
    async with AsyncClient(
        transport=ASGITransport(app=build_app(spy_recorder)),
        base_url="http://test",
    ) as client:
        yield client


def submitted(recorder: MagicMock) -> PendingAuditEvent:
    recorder.submit.assert_called_once()
    return recorder.submit.call_args[0][0]


class TestInterception:
    """Tests for what gets recorded."""

    @pytest.mark.asyncio
    async def test_create_records_id_from_payload(self, spy_client, spy_recorder):
        """Station creation resolves the new id from data.station.id."""
        actor_id = uuid4()

        response = await spy_client.post(
            "/stations", json={"name": "North"}, headers=bearer(actor_id)
        )

        assert response.status_code == 201
        entry = submitted(spy_recorder)
        assert entry.actor_id == actor_id
        assert entry.action == "STATION_CREATED"
        assert entry.target_type == "Station"
        assert entry.target_id == CREATED_ID

    @pytest.mark.asyncio
    async def test_path_param_wins_over_payload(self, spy_client, spy_recorder):
        response = await spy_client.put("/stations/st-7", headers=bearer(uuid4()))

        assert response.status_code == 200
        assert submitted(spy_recorder).target_id == "st-7"

    @pytest.mark.asyncio
    async def test_custom_resolver_reads_request_body(self, spy_client, spy_recorder):
        response = await spy_client.post(
            "/stations/st-7/firmware",
            json={"version": "4.2.0"},
            headers=bearer(uuid4()),
        )

        assert response.status_code == 200
        entry = submitted(spy_recorder)
        assert entry.action == "FIRMWARE_FLASHED"
        assert entry.target_type == "Firmware"
        assert entry.target_id == "4.2.0"

    @pytest.mark.asyncio
    async def test_source_address_from_forwarded_for(self, spy_client, spy_recorder):
        headers = {**bearer(uuid4()), "X-Forwarded-For": "203.0.113.9, 10.0.0.1"}

        await spy_client.put("/stations/st-7", headers=headers)

        assert submitted(spy_recorder).source_address == "203.0.113.9"

    @pytest.mark.asyncio
    async def test_source_address_from_peer(self, spy_client, spy_recorder):
        await spy_client.put("/stations/st-7", headers=bearer(uuid4()))

        assert submitted(spy_recorder).source_address == "127.0.0.1"

    @pytest.mark.asyncio
    async def test_oversized_forwarded_for_falls_back_to_peer(
        self, spy_client, spy_recorder
    ):
        headers = {**bearer(uuid4()), "X-Forwarded-For": "x" * 200}

        response = await spy_client.put("/stations/st-7", headers=headers)

        assert response.status_code == 200
        entry = submitted(spy_recorder)
        assert entry.source_address == "127.0.0.1"
        assert entry.target_id == "st-7"

    @pytest.mark.asyncio
    async def test_oversized_target_id_is_clipped(self, spy_client, spy_recorder):
        response = await spy_client.post(
            "/stations/st-7/firmware",
            json={"version": "v" * 300},
            headers=bearer(uuid4()),
        )

        assert response.status_code == 200
        assert submitted(spy_recorder).target_id == "v" * MAX_AUDIT_TARGET_ID_LENGTH


class TestSkipped:
    """Tests for requests that produce no event."""

    @pytest.mark.asyncio
    async def test_anonymous_request_not_recorded(self, spy_client, spy_recorder):
        response = await spy_client.post("/stations", json={"name": "North"})

        assert response.status_code == 201
        spy_recorder.submit.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_token_not_recorded(self, spy_client, spy_recorder):
        response = await spy_client.put(
            "/stations/st-7", headers={"Authorization": "Bearer nope"}
        )

        assert response.status_code == 200
        spy_recorder.submit.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_operation_not_recorded(self, spy_client, spy_recorder):
        response = await spy_client.delete("/stations/st-7", headers=bearer(uuid4()))

        assert response.status_code == 404
        spy_recorder.submit.assert_not_called()

    @pytest.mark.asyncio
    async def test_unmarked_endpoint_not_recorded(self, spy_client, spy_recorder):
        response = await spy_client.get("/stations/st-7", headers=bearer(uuid4()))

        assert response.status_code == 200
        spy_recorder.submit.assert_not_called()


class TestResponseUnchanged:
    """Audit problems never change the business response."""

    @pytest.mark.asyncio
    async def test_submit_error_is_swallowed(self, spy_client, spy_recorder):
        spy_recorder.submit.side_effect = RuntimeError("queue exploded")

        response = await spy_client.post(
            "/stations", json={"name": "North"}, headers=bearer(uuid4())
        )

        assert response.status_code == 201
        assert response.json()["data"]["station"]["id"] == CREATED_ID

    @pytest.mark.asyncio
    async def test_store_unavailable_still_returns_created(
        self, session_factory, mock_session
    ):
        mock_session.commit.side_effect = OperationalError(
            "INSERT", {}, Exception("connection refused")
        )
        recorder = AuditRecorder(session_factory)

        try:
            async with AsyncClient(
                transport=ASGITransport(app=build_app(recorder)),
                base_url="http://test",
            ) as client:
                response = await client.post(
                    "/stations", json={"name": "North"}, headers=bearer(uuid4())
                )
            await recorder.drain()
        finally:
            await recorder.stop()

        assert response.status_code == 201
        assert response.json()["data"]["station"] == {"id": CREATED_ID, "name": "North"}
        assert recorder.stats.failed == 1
        assert recorder.stats.written == 0

    @pytest.mark.asyncio
    async def test_missing_recorder_is_tolerated(self):
        app = build_app(None)
        del app.state.audit_recorder

        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            response = await client.put("/stations/st-7", headers=bearer(uuid4()))

        assert response.status_code == 200
