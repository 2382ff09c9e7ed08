import json

import pytest

from sui_invariant_monitor.api import MonitorApi
from sui_invariant_monitor.config import Config
from sui_invariant_monitor.errors import LlmError
from sui_invariant_monitor.fetcher import SuiFetcher
from sui_invariant_monitor.models import AnalysisResult, SuggestedInvariant
from sui_invariant_monitor.service import MonitorService

from fakes import rpc

PKG = "0x" + "c" * 64
OBJ = "0x" + "ab" * 32
POOL_MODULE = {"structs": {"Pool": {"abilities": {"abilities": ["Key"]}, "fields": [{"name": "fee", "type": "U64"}]}}}


class StubLlm:
    def __init__(self, fail_modules=()):
        self.fail_modules = fail_modules
        self.configs = []

    def __call__(self, config):
        self.configs.append(config)
        return self

    def analyze_module(self, metadata):
        if metadata.module_name in self.fail_modules:
            raise LlmError("model unavailable")
        return AnalysisResult(
            package_id=metadata.package_id,
            module_name=metadata.module_name,
            suggested_invariants=(SuggestedInvariant("INV-101", "Fee Cap", "Fees bounded", "fee <= 100"),),
            analysis_notes="notes",
        )


@pytest.fixture
def api_factory(make_session):
    def factory(*responses, llm=None):
        fetcher = SuiFetcher("http://node", session=make_session(*responses))
        service = MonitorService(Config(), fetcher=fetcher, alerters=[], quiet=True)
        return MonitorApi(service, llm_factory=llm or StubLlm())

    return factory


def _post(api, path, body):
    return api.handle("POST", path, json.dumps(body).encode())


def test_health_and_status(api_factory):
    api = api_factory()

    code, body = api.handle("GET", "/health")
    assert code == 200
    assert body["status"] == "ok"

    api.service.run_cycle()
    code, status = api.handle("GET", "/api/status")
    assert code == 200
    assert status["total_invariants"] == 5
    assert status["all_ok"] is True


def test_list_and_get_invariants(api_factory):
    api = api_factory()
    api.service.run_cycle()

    code, listing = api.handle("GET", "/api/invariants")
    assert code == 200
    assert [r["id"] for r in listing] == ["INV-001", "INV-002", "INV-003", "INV-004", "INV-005"]
    assert listing[0]["status"] == "Ok"

    code, one = api.handle("GET", "/api/invariants/INV-004")
    assert code == 200
    assert one["computation"]["inputs"]["previous_index"] == "N/A (first check)"

    code, _ = api.handle("GET", "/api/invariants/INV-404")
    assert code == 404


def test_dashboard_is_html(api_factory):
    api = api_factory()
    api.service.run_cycle()

    code, page = api.handle("GET", "/")
    assert code == 200
    assert page.startswith("<!DOCTYPE html>")
    assert "Total Supply Conservation" in page


def test_unknown_route_and_bad_json(api_factory):
    api = api_factory()
    assert api.handle("GET", "/nope")[0] == 404
    assert api.handle("DELETE", "/api/status")[0] == 405

    code, body = api.handle("POST", "/api/monitor", b"{not json")
    assert code == 400
    assert body["success"] is False


def test_add_monitored_object(api_factory):
    api = api_factory()

    code, body = _post(api, "/api/monitor", {"object_id": OBJ})
    assert code == 200
    assert body["success"] is True
    assert api.service.state.monitored_objects == [OBJ]

    _, body = _post(api, "/api/monitor", {"object_id": "0x12"})
    assert body["success"] is False


def test_module_metadata_route(api_factory):
    api = api_factory(rpc(POOL_MODULE))

    code, body = api.handle("GET", f"/api/metadata/{PKG}/pool")
    assert code == 200
    assert body["structs"][0]["fields"] == [{"name": "fee", "type_": "U64"}]


def test_analyze_whole_package(api_factory):
    llm = StubLlm(fail_modules=("math",))
    api = api_factory(rpc({"math": {}, "pool": {}}), rpc({}), rpc(POOL_MODULE), llm=llm)

    code, body = _post(api, "/api/analyze", {"package_id": PKG, "llm_provider": "ollama", "model": "llama3.2"})

    assert code == 200
    assert body["success"] is True
    assert [m["module_name"] for m in body["modules"]] == ["math", "pool"]
    assert [r["module_name"] for r in body["analysis_results"]] == ["pool"]
    assert llm.configs[0].model == "llama3.2"


def test_analyze_requires_package_and_known_provider(api_factory):
    api = api_factory()
    assert _post(api, "/api/analyze", {})[0] == 400
    assert _post(api, "/api/analyze", {"package_id": PKG, "llm_provider": "gpt"})[0] == 400


def test_add_and_remove_suggested_invariants(api_factory):
    api = api_factory()
    api.service.run_cycle()
    suggestions = [
        {"id": "INV-101", "name": "Fee Cap", "description": "Fees bounded", "formula": "fee <= 100"},
        {"id": "INV-001", "name": "Duplicate"},
        {"name": "no id"},
    ]

    code, body = _post(api, "/api/invariants/add", {"invariants": suggestions, "package_id": PKG, "module_name": "pool"})
    assert code == 200
    assert body["added_count"] == 1

    _, pending = api.handle("GET", "/api/invariants/INV-101")
    assert pending["computation"]["result"] == "Pending evaluation"
    # Advisory entries never affect the health summary.
    assert api.handle("GET", "/api/status")[1]["total_invariants"] == 5

    _, body = _post(api, "/api/invariants/remove", {"invariant_id": "INV-101"})
    assert body["success"] is True
    _, body = _post(api, "/api/invariants/remove", {"invariant_id": "INV-101"})
    assert body["success"] is False

    _, body = _post(api, "/api/invariants/remove", {"invariant_id": "INV-001"})
    assert body["success"] is True
    assert "INV-001" not in [r["id"] for r in api.handle("GET", "/api/invariants")[1]]


def test_unexpected_route_failure_returns_500(api_factory, monkeypatch, capsys):
    api = api_factory()

    def explode():
        raise KeyError("last_check")

    monkeypatch.setattr(api.service, "status", explode)
    code, body = api.handle("GET", "/api/status")

    assert code == 500
    assert body["success"] is False
    assert "GET /api/status failed: KeyError" in capsys.readouterr().err
