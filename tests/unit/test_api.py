"""
Unit tests for the HTTP API.
"""

from datetime import datetime

import pytest
from aiohttp.test_utils import TestClient, TestServer, make_mocked_request

from api import HeaderPermissionEvaluator, create_app, health_check
from scheduling.service import AppointmentService
from tests.fakes import CLIENT_ID, EMPLOYEE_ID, ORG_ID, make_appointment
from utils.exceptions import PermissionDeniedError

ADMIN_HEADERS = {
    "X-Organization-Id": ORG_ID,
    "X-User-Id": "user_admin",
    "X-Permissions": "appointments:view_all,appointments:create,appointments:update,appointments:delete",
}

SERIES_BODY = {
    "organizationId": ORG_ID,
    "services": [{"_id": "svc_1"}],
    "employee": {"_id": EMPLOYEE_ID},
    "client": CLIENT_ID,
    "startDate": "2026-01-05T08:00:00",
    "recurrencePattern": {
        "type": "weekly",
        "intervalWeeks": 1,
        "weekdays": [1, 3, 5],
        "endType": "count",
        "count": 6,
    },
}


@pytest.fixture
def app(store, mock_dispatcher):
    return create_app(AppointmentService(store, mock_dispatcher))


async def call(app, method, path, **kwargs):
    async with TestClient(TestServer(app)) as client:
        response = await client.request(method, path, **kwargs)
        return response.status, await response.json(), response.headers


class TestHealthCheck:
    """Test health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_check(self):
        """Test health check returns OK."""
        request = make_mocked_request("GET", "/health")
        response = await health_check(request)

        assert response.status == 200


class TestHeaderPermissionEvaluator:
    @pytest.mark.asyncio
    async def test_resolves_context(self):
        request = make_mocked_request("GET", "/", headers=ADMIN_HEADERS)

        context = await HeaderPermissionEvaluator().resolve(request)

        assert context.tenant_id == ORG_ID
        assert context.can_view_all
        assert "appointments:delete" in context.permissions

    @pytest.mark.asyncio
    async def test_missing_tenant_denied(self):
        request = make_mocked_request("GET", "/")

        with pytest.raises(PermissionDeniedError):
            await HeaderPermissionEvaluator().resolve(request)


class TestSeriesRoutes:
    @pytest.mark.asyncio
    async def test_preview(self, app, store):
        status, body, headers = await call(
            app, "POST", "/appointments/series", json={**SERIES_BODY, "previewOnly": True}, headers=ADMIN_HEADERS
        )

        assert status == 200
        assert body["data"]["preview"]["totalOccurrences"] == 6
        assert body["data"]["preview"]["occurrences"][0]["startDate"] == "2026-01-05T08:00:00"
        assert store.appointments == {}
        assert headers["X-Content-Type-Options"] == "nosniff"

    @pytest.mark.asyncio
    async def test_preview_of_empty_pattern(self, app, store):
        pattern = {"type": "weekly", "weekdays": [3], "endType": "date", "endDate": "2026-01-06"}

        status, body, _ = await call(
            app,
            "POST",
            "/appointments/series",
            json={**SERIES_BODY, "recurrencePattern": pattern, "previewOnly": True},
            headers=ADMIN_HEADERS,
        )

        assert status == 200
        assert body["data"]["preview"] == {"totalOccurrences": 0, "availableCount": 0, "occurrences": []}

    @pytest.mark.asyncio
    async def test_create(self, app, store):
        status, body, _ = await call(
            app, "POST", "/appointments/series", json=SERIES_BODY, headers=ADMIN_HEADERS
        )

        assert status == 201
        assert body["code"] == 201
        assert body["status"] == "success"
        assert body["data"]["createdCount"] == 6
        assert body["data"]["summary"] == {"total": 6, "created": 6, "skipped": 0}
        assert len(store.appointments) == 6

    @pytest.mark.asyncio
    async def test_overflow_is_422(self, app):
        body = {**SERIES_BODY, "recurrencePattern": {**SERIES_BODY["recurrencePattern"], "count": 1000}}

        status, payload, _ = await call(app, "POST", "/appointments/series", json=body, headers=ADMIN_HEADERS)

        assert status == 422
        assert payload["error"] == "too_many_occurrences"

    @pytest.mark.asyncio
    async def test_invalid_pattern_is_400(self, app):
        body = {**SERIES_BODY, "recurrencePattern": {**SERIES_BODY["recurrencePattern"], "weekdays": []}}

        status, payload, _ = await call(app, "POST", "/appointments/series", json=body, headers=ADMIN_HEADERS)

        assert status == 400
        assert payload["status"] == "error"

    @pytest.mark.asyncio
    async def test_missing_permission_is_403(self, app):
        headers = {"X-Organization-Id": ORG_ID, "X-Permissions": "appointments:view_all"}

        status, _, _ = await call(app, "POST", "/appointments/series", json=SERIES_BODY, headers=headers)

        assert status == 403


class TestBatchRoutes:
    @pytest.mark.asyncio
    async def test_batch_booking_conflict_is_409(self, app, store):
        store.add(make_appointment(datetime(2026, 1, 5, 8), datetime(2026, 1, 5, 9), "busy"))
        body = {k: v for k, v in SERIES_BODY.items() if k != "recurrencePattern"}

        status, payload, _ = await call(app, "POST", "/appointments/batch", json=body, headers=ADMIN_HEADERS)

        assert status == 409
        assert payload["error"] == "booking_rejected"

    @pytest.mark.asyncio
    async def test_batch_confirm(self, app, store):
        store.add(make_appointment(datetime(2026, 1, 5, 8), datetime(2026, 1, 5, 9), "a1"))

        status, payload, _ = await call(
            app,
            "PUT",
            "/appointments/batch/confirm",
            json={"appointmentIds": ["a1", "missing"]},
            headers=ADMIN_HEADERS,
        )

        assert status == 200
        assert payload["data"]["confirmed"][0]["appointmentId"] == "a1"
        assert payload["data"]["failed"][0]["appointmentId"] == "missing"


class TestAppointmentRoutes:
    @pytest.mark.asyncio
    async def test_cancel_twice_is_409(self, app, store):
        store.add(make_appointment(datetime(2026, 1, 5, 8), datetime(2026, 1, 5, 9), "a1", status="cancelled"))

        status, payload, _ = await call(
            app, "POST", "/appointments/a1/cancel", json={"action": "cancel_by_admin"}, headers=ADMIN_HEADERS
        )

        assert status == 409
        assert payload["error"] == "invalid_transition"

    @pytest.mark.asyncio
    async def test_update_unknown_is_404(self, app):
        status, _, _ = await call(
            app, "PUT", "/appointments/missing", json={"customPrice": 10}, headers=ADMIN_HEADERS
        )

        assert status == 404

    @pytest.mark.asyncio
    async def test_delete(self, app, store):
        store.add(make_appointment(datetime(2026, 1, 5, 8), datetime(2026, 1, 5, 9), "a1"))

        status, _, _ = await call(app, "DELETE", "/appointments/a1", headers=ADMIN_HEADERS)

        assert status == 200
        assert store.appointments == {}

    @pytest.mark.asyncio
    async def test_organization_dates(self, app, store):
        store.add(make_appointment(datetime(2026, 1, 5, 8), datetime(2026, 1, 5, 9), "a1"))

        status, payload, _ = await call(
            app,
            "GET",
            f"/appointments/organization/{ORG_ID}/dates",
            params={"startDate": "2026-01-05T00:00:00", "endDate": "2026-01-06T00:00:00"},
            headers=ADMIN_HEADERS,
        )

        assert status == 200
        assert [item["id"] for item in payload["data"]] == ["a1"]

    @pytest.mark.asyncio
    async def test_organization_dates_rejects_offset(self, app):
        status, _, _ = await call(
            app,
            "GET",
            f"/appointments/organization/{ORG_ID}/dates",
            params={"startDate": "2026-01-05T00:00:00Z", "endDate": "2026-01-06T00:00:00"},
            headers=ADMIN_HEADERS,
        )

        assert status == 400

    @pytest.mark.asyncio
    async def test_update_onto_occupied_slot_is_409(self, app, store):
        store.add(make_appointment(datetime(2026, 1, 5, 8), datetime(2026, 1, 5, 9), "a1"))
        store.add(make_appointment(datetime(2026, 1, 5, 10), datetime(2026, 1, 5, 11), "a2"))
        move = {"startDate": "2026-01-05T10:30:00", "endDate": "2026-01-05T11:30:00"}

        status, payload, _ = await call(app, "PUT", "/appointments/a1", json=move, headers=ADMIN_HEADERS)
        assert status == 409
        assert payload["error"] == "booking_rejected"

        status, payload, _ = await call(
            app, "PUT", "/appointments/a1", json={**move, "allowOverbooking": True}, headers=ADMIN_HEADERS
        )
        assert status == 200
        assert payload["data"]["startDate"] == "2026-01-05T10:30:00"


class TestReadRoutes:
    @pytest.fixture
    def seeded(self, store):
        store.add(make_appointment(datetime(2026, 1, 5, 8), datetime(2026, 1, 5, 9), "a1", service_price=50000))
        store.add(
            make_appointment(
                datetime(2026, 1, 5, 10),
                datetime(2026, 1, 5, 11),
                "a2",
                employee_id="emp_2",
                client_id="client_2",
                service_price=30000,
            )
        )
        store.add(make_appointment(datetime(2026, 1, 7, 8), datetime(2026, 1, 7, 9), "a3", service_price=50000))
        return store

    @pytest.mark.asyncio
    async def test_get_appointment(self, app, seeded):
        status, payload, _ = await call(app, "GET", "/appointments/a2", headers=ADMIN_HEADERS)

        assert status == 200
        assert payload["data"]["employeeId"] == "emp_2"

    @pytest.mark.asyncio
    async def test_get_other_employees_appointment_is_404_for_restricted_caller(self, app, seeded):
        headers = {
            "X-Organization-Id": ORG_ID,
            "X-Employee-Id": EMPLOYEE_ID,
            "X-Permissions": "appointments:view_own",
        }

        status, _, _ = await call(app, "GET", "/appointments/a2", headers=headers)

        assert status == 404

    @pytest.mark.asyncio
    async def test_by_employee(self, app, seeded):
        status, payload, _ = await call(app, "GET", f"/appointments/employee/{EMPLOYEE_ID}", headers=ADMIN_HEADERS)

        assert status == 200
        assert [item["id"] for item in payload["data"]] == ["a1", "a3"]

    @pytest.mark.asyncio
    async def test_by_employee_restricted_to_self(self, app, seeded):
        headers = {
            "X-Organization-Id": ORG_ID,
            "X-Employee-Id": EMPLOYEE_ID,
            "X-Permissions": "appointments:view_own",
        }

        status, _, _ = await call(app, "GET", "/appointments/employee/emp_2", headers=headers)

        assert status == 403

    @pytest.mark.asyncio
    async def test_by_client(self, app, seeded):
        status, payload, _ = await call(app, "GET", "/appointments/client/client_2", headers=ADMIN_HEADERS)

        assert status == 200
        assert [item["id"] for item in payload["data"]] == ["a2"]

    @pytest.mark.asyncio
    async def test_aggregated_by_day(self, app, seeded):
        status, payload, _ = await call(
            app,
            "GET",
            f"/appointments/organization/{ORG_ID}/aggregated",
            params={
                "startDate": "2026-01-01T00:00:00",
                "endDate": "2026-02-01T00:00:00",
                "granularity": "day",
            },
            headers=ADMIN_HEADERS,
        )

        assert status == 200
        assert [(b["key"], b["income"], b["appointments"]) for b in payload["data"]] == [
            ("2026-01-05", 80000, 2),
            ("2026-01-07", 50000, 1),
        ]

    @pytest.mark.asyncio
    async def test_aggregated_by_month_for_selected_employees(self, app, seeded):
        status, payload, _ = await call(
            app,
            "GET",
            f"/appointments/organization/{ORG_ID}/aggregated",
            params={
                "startDate": "2026-01-01T00:00:00",
                "endDate": "2026-02-01T00:00:00",
                "granularity": "month",
                "employeeIds": "emp_2",
            },
            headers=ADMIN_HEADERS,
        )

        assert status == 200
        assert payload["data"] == [
            {"key": "2026-01", "bucketStart": "2026-01-01T00:00:00", "income": 30000, "appointments": 1}
        ]

    @pytest.mark.asyncio
    async def test_aggregated_unknown_granularity_is_400(self, app, seeded):
        status, _, _ = await call(
            app,
            "GET",
            f"/appointments/organization/{ORG_ID}/aggregated",
            params={
                "startDate": "2026-01-01T00:00:00",
                "endDate": "2026-02-01T00:00:00",
                "granularity": "year",
            },
            headers=ADMIN_HEADERS,
        )

        assert status == 400
