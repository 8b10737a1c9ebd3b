"""
API tests.

Temporal and MKG are replaced through FastAPI dependency overrides.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import FakeERPClient


@pytest.fixture
def temporal():
    client = MagicMock()
    client.start_workflow = AsyncMock(side_effect=lambda *args, **kwargs: MagicMock(id=kwargs["id"]))
    return client


@pytest.fixture
def app(temporal):
    from api.routes.injections import get_temporal
    from api.server import create_app

    app = create_app()
    app.dependency_overrides[get_temporal] = lambda: temporal
    return app


@pytest.fixture
def api(app):
    return TestClient(app)


def workflow_handle(status, progress=None, result=None):
    handle = MagicMock()
    handle.describe = AsyncMock(return_value=MagicMock(status=status))
    handle.query = AsyncMock(return_value=progress or {"status": status.name})
    handle.result = AsyncMock(return_value=result)
    handle.cancel = AsyncMock()
    return handle


class TestHealth:

    def test_health(self, api):
        response = api.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"

    def test_probes(self, api):
        assert api.get("/ready").json() == {"status": "ready"}
        assert api.get("/live").json() == {"status": "alive"}

    def test_erp_connected(self, app, api):
        from api.routes.health import get_erp_client

        app.dependency_overrides[get_erp_client] = lambda: FakeERPClient()
        response = api.get("/health/erp")

        assert response.status_code == 200
        assert response.json()["status"] == "CONNECTED"
        assert response.json()["success"] is True

    def test_erp_failed(self, app, api):
        from api.routes.health import get_erp_client
        from connectors.erp_base import ERPConnectionStatus

        class DownClient(FakeERPClient):
            async def test_connection(self):
                return ERPConnectionStatus.FAILED

        app.dependency_overrides[get_erp_client] = lambda: DownClient()
        response = api.get("/health/erp")

        assert response.status_code == 503
        assert response.json()["success"] is False
        assert response.json()["message"] == "MKG connection test failed"

    def test_erp_not_configured(self, api, monkeypatch, tmp_path):
        import connectors.mkg.mkg_config as mkg_config

        monkeypatch.setattr(mkg_config, "ENV_PATH", tmp_path / ".env")
        for name in ("MKG_BASE_URL", "MKG_USERNAME", "MKG_PASSWORD", "MKG_API_KEY"):
            monkeypatch.delenv(name, raising=False)

        response = api.get("/health/erp")
        assert response.status_code == 503
        assert "Missing MKG configuration" in response.json()["detail"]


class TestStartInjection:

    def test_start(self, api, temporal, monkeypatch):
        from workflows.injection_workflow import InjectionRunInput, InjectionRunWorkflow

        monkeypatch.delenv("TEMPORAL_TASK_QUEUE", raising=False)
        response = api.post("/injections", json={
            "run_id": "run-1",
            "orders": [{"article_code": "ART-100", "po_number": "PO-1001", "quantity": 2}],
            "revisions": [{"article_code": "BOM-7", "current_revision": "01", "new_revision": "02"}],
            "max_concurrent_groups": 3,
        })

        assert response.status_code == 202
        assert response.json() == {
            "workflow_id": "injection-run-1",
            "run_id": "run-1",
            "status": "RUNNING",
            "line_counts": {"orders": 1, "quotes": 0, "revisions": 1},
        }

        args, kwargs = temporal.start_workflow.call_args
        assert args[0] is InjectionRunWorkflow.run
        run_input = args[1]
        assert isinstance(run_input, InjectionRunInput)
        assert run_input.orders[0]["po_number"] == "PO-1001"
        assert run_input.orders[0]["quantity"] == "2"
        assert run_input.quotes == []
        assert run_input.max_concurrent_groups == 3
        assert kwargs == {"id": "injection-run-1", "task_queue": "erp-injection"}

    def test_generated_run_id(self, api):
        response = api.post("/injections", json={"quotes": [{"article_code": "ART-200", "rfq_number": "RFQ-5"}]})
        data = response.json()
        assert response.status_code == 202
        assert data["workflow_id"] == f"injection-{data['run_id']}"

    def test_no_lines(self, api, temporal):
        response = api.post("/injections", json={"orders": []})
        assert response.status_code == 400
        temporal.start_workflow.assert_not_called()

    def test_concurrency_bounds(self, api):
        response = api.post("/injections", json={
            "orders": [{"article_code": "ART-100", "po_number": "PO-1"}],
            "max_concurrent_groups": 0,
        })
        assert response.status_code == 422

    def test_temporal_unavailable(self, monkeypatch):
        from api.routes import injections
        from api.server import create_app

        monkeypatch.setattr(injections, "_client", None)
        monkeypatch.setattr(
            injections, "get_temporal_client", AsyncMock(side_effect=ValueError("TEMPORAL_ENDPOINT not set"))
        )

        response = TestClient(create_app()).post("/injections", json={
            "orders": [{"article_code": "ART-100", "po_number": "PO-1"}],
        })
        assert response.status_code == 503
        assert response.json()["detail"] == "TEMPORAL_ENDPOINT not set"


class TestInjectionStatus:

    def test_running(self, api, temporal):
        from temporalio.client import WorkflowExecutionStatus

        progress = {"status": "RUNNING", "current_kind": "quote", "completed_kinds": ["order"]}
        handle = workflow_handle(WorkflowExecutionStatus.RUNNING, progress)
        temporal.get_workflow_handle = MagicMock(return_value=handle)

        response = api.get("/injections/injection-run-1")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "RUNNING"
        assert data["progress"]["current_kind"] == "quote"
        assert data["result"] is None
        handle.result.assert_not_called()

    def test_completed_includes_result(self, api, temporal):
        from temporalio.client import WorkflowExecutionStatus

        result = {"status": "COMPLETED", "summaries": {"order": {"successful_injections": 2}}}
        handle = workflow_handle(WorkflowExecutionStatus.COMPLETED, result=result)
        temporal.get_workflow_handle = MagicMock(return_value=handle)

        data = api.get("/injections/injection-run-1").json()
        assert data["status"] == "COMPLETED"
        assert data["result"] == result

    def test_unknown_run(self, api, temporal):
        from temporalio.service import RPCError, RPCStatusCode

        handle = MagicMock()
        handle.describe = AsyncMock(side_effect=RPCError("workflow not found", RPCStatusCode.NOT_FOUND, b""))
        temporal.get_workflow_handle = MagicMock(return_value=handle)

        response = api.get("/injections/injection-missing")
        assert response.status_code == 404

    def test_cancel(self, api, temporal):
        from temporalio.client import WorkflowExecutionStatus

        handle = workflow_handle(WorkflowExecutionStatus.RUNNING)
        temporal.get_workflow_handle = MagicMock(return_value=handle)

        response = api.post("/injections/injection-run-1/cancel")

        assert response.status_code == 202
        assert response.json() == {"workflow_id": "injection-run-1", "status": "CANCEL_REQUESTED"}
        handle.cancel.assert_awaited_once()
