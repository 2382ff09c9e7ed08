"""HTTP query and management surface."""

import http.server
import json
import socketserver
import sys
import threading
from collections.abc import Callable
from typing import Any
from urllib.parse import unquote, urlsplit

from sui_invariant_monitor.config import get_rpc_url
from sui_invariant_monitor.errors import MonitorError
from sui_invariant_monitor.fetcher import SuiFetcher
from sui_invariant_monitor.html_report import generate_dashboard_html
from sui_invariant_monitor.llm import LlmClient, LlmConfig, LlmProvider, create_llm_client, parse_suggestion
from sui_invariant_monitor.metadata import MetadataFetcher
from sui_invariant_monitor.service import MonitorService

Response = tuple[int, Any]


def _json_body(body: bytes | None) -> dict[str, Any]:
    try:
        data = json.loads(body or b"{}")
    except (ValueError, UnicodeDecodeError) as ex:
        raise ValueError(f"Invalid JSON body: {ex}") from ex
    if not isinstance(data, dict):
        raise ValueError("JSON body must be an object")
    return data


class MonitorApi:
    """Routes requests to the monitor service. Transport-independent so it can be exercised directly."""

    def __init__(
        self,
        service: MonitorService,
        *,
        use_cache: bool = True,
        llm_factory: Callable[[LlmConfig], LlmClient] = create_llm_client,
    ):
        self.service = service
        self.use_cache = use_cache
        self.llm_factory = llm_factory

    def handle(self, method: str, path: str, body: bytes | None = None) -> Response:
        parts = [unquote(p) for p in urlsplit(path).path.strip("/").split("/") if p]
        try:
            if method == "GET":
                return self._get(parts)
            if method == "POST":
                return self._post(parts, _json_body(body))
        except ValueError as ex:
            return 400, {"success": False, "message": str(ex)}
        except Exception as ex:  # pylint: disable=broad-exception-caught
            print(f"❌ {method} {path} failed: {type(ex).__name__}: {ex}", file=sys.stderr)
            return 500, {"success": False, "message": f"Internal error: {ex}"}
        return 405, {"success": False, "message": f"Method {method} not allowed"}

    def _get(self, parts: list[str]) -> Response:
        if not parts:
            return 200, generate_dashboard_html(self.service.status(), self.service.listing())
        if parts == ["health"]:
            return 200, {"status": "ok", "uptime_secs": self.service.state.uptime_secs()}
        if parts == ["api", "status"]:
            return 200, self.service.status()
        if parts == ["api", "invariants"]:
            return 200, [r.to_dict() for r in self.service.listing()]
        if len(parts) == 3 and parts[:2] == ["api", "invariants"]:
            result = self.service.find(parts[2])
            if result is None:
                return 404, {"success": False, "message": f"Invariant {parts[2]} not found"}
            return 200, result.to_dict()
        if len(parts) == 4 and parts[:2] == ["api", "metadata"]:
            return self.get_module_metadata(parts[2], parts[3])
        return 404, {"success": False, "message": "Not found"}

    def _post(self, parts: list[str], body: dict[str, Any]) -> Response:
        if parts == ["api", "monitor"]:
            return self.add_monitored_object(body)
        if parts == ["api", "analyze"]:
            return self.analyze_package(body)
        if parts == ["api", "invariants", "add"]:
            return self.add_suggested_invariants(body)
        if parts == ["api", "invariants", "remove"]:
            return self.remove_invariant(body)
        return 404, {"success": False, "message": "Not found"}

    def _metadata_fetcher(self, network: str | None = None) -> MetadataFetcher:
        fetcher = self.service.fetcher
        if network:
            fetcher = SuiFetcher(get_rpc_url(network), timeout=fetcher.timeout)
        return MetadataFetcher(fetcher, use_cache=self.use_cache)

    def add_monitored_object(self, body: dict[str, Any]) -> Response:
        object_id = str(body.get("object_id", "")).strip()
        success, message = self.service.add_monitored_object(object_id)
        return 200, {"success": success, "message": message, "object_id": object_id, "object_type": None}

    def get_module_metadata(self, package_id: str, module_name: str) -> Response:
        try:
            metadata = self._metadata_fetcher().fetch_module_metadata(package_id, module_name)
        except MonitorError as ex:
            return 404, {"success": False, "message": str(ex)}
        return 200, metadata.to_dict()

    def analyze_package(self, body: dict[str, Any]) -> Response:
        package_id = str(body.get("package_id", "")).strip()
        if not package_id:
            raise ValueError("package_id is required")
        try:
            provider = LlmProvider(str(body.get("llm_provider", LlmProvider.OLLAMA.value)).lower())
        except ValueError as ex:
            raise ValueError(f"Unknown llm_provider: {body.get('llm_provider')}") from ex

        def failure(message: str, modules: list | None = None) -> Response:
            return 200, {"success": False, "message": message, "modules": modules or [], "analysis_results": []}

        fetcher = self._metadata_fetcher(body.get("network"))
        if body.get("module_name"):
            module_names = [str(body["module_name"])]
        else:
            try:
                module_names = fetcher.fetch_package_modules(package_id)
            except MonitorError as ex:
                return failure(f"Failed to fetch package modules: {ex}")
        if not module_names:
            return failure("No modules found in package")

        modules = []
        for name in module_names:
            try:
                modules.append(fetcher.fetch_module_metadata(package_id, name))
            except MonitorError as ex:
                print(f"⚠️  Failed to fetch module {name}: {ex}", file=sys.stderr)
        if not modules:
            return failure("Failed to fetch any module metadata")
        module_dicts = [m.to_dict() for m in modules]

        config = LlmConfig(
            provider=provider,
            model=str(body.get("model") or LlmConfig.model),
            api_key=body.get("api_key"),
            base_url=body.get("ollama_url"),
        )
        try:
            client = self.llm_factory(config)
        except MonitorError as ex:
            return failure(f"Failed to create LLM client: {ex}", module_dicts)

        analysis_results = []
        for module in modules:
            try:
                analysis_results.append(client.analyze_module(module))
            except MonitorError as ex:
                print(f"⚠️  Failed to analyze module {module.module_name}: {ex}", file=sys.stderr)

        found = sum(len(r.suggested_invariants) for r in analysis_results)
        return 200, {
            "success": True,
            "message": f"Analyzed {len(analysis_results)} module(s), found {found} invariants",
            "modules": module_dicts,
            "analysis_results": [r.to_dict() for r in analysis_results],
        }

    def add_suggested_invariants(self, body: dict[str, Any]) -> Response:
        entries = body.get("invariants")
        if not isinstance(entries, list):
            raise ValueError("invariants must be a list")
        suggestions = [s for s in (parse_suggestion(e) for e in entries) if s is not None]
        with self.service.lock:
            added = self.service.engine.add_suggested(
                suggestions,
                package_id=str(body.get("package_id", "")),
                module_name=str(body.get("module_name", "")),
            )
        return 200, {
            "success": True,
            "message": f"Added {added} advisory invariant(s); {len(entries) - added} skipped",
            "added_count": added,
        }

    def remove_invariant(self, body: dict[str, Any]) -> Response:
        invariant_id = str(body.get("invariant_id", "")).strip()
        with self.service.lock:
            removed = self.service.engine.remove(invariant_id)
            if removed:
                self.service.state.results = [r for r in self.service.state.results if r.id != invariant_id]
        if not removed:
            return 200, {"success": False, "message": f"Invariant {invariant_id} not found"}
        return 200, {"success": True, "message": f"Removed invariant {invariant_id}"}


class ApiServer(socketserver.ThreadingMixIn, http.server.HTTPServer):
    daemon_threads = True
    allow_reuse_address = True


def make_handler(api: MonitorApi) -> type[http.server.BaseHTTPRequestHandler]:
    class Handler(http.server.BaseHTTPRequestHandler):
        def _send(self, status: int, payload: Any) -> None:
            if isinstance(payload, str):
                data = payload.encode("utf-8")
                content_type = "text/html; charset=utf-8"
            else:
                data = json.dumps(payload).encode("utf-8")
                content_type = "application/json"
            self.send_response(status)
            self.send_header("Content-type", content_type)
            self.send_header("Content-Length", str(len(data)))
            self.send_header("Access-Control-Allow-Origin", "*")
            self.end_headers()
            self.wfile.write(data)

        def do_GET(self) -> None:
            self._send(*api.handle("GET", self.path))

        def do_POST(self) -> None:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            self._send(*api.handle("POST", self.path, body))

        def do_OPTIONS(self) -> None:
            self.send_response(204)
            self.send_header("Access-Control-Allow-Origin", "*")
            self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
            self.send_header("Access-Control-Allow-Headers", "*")
            self.end_headers()

        def log_message(self, fmt: str, *args: Any) -> None:
            pass  # Suppress per-request logging

    return Handler


def start_api_server(api: MonitorApi, port: int, host: str = "0.0.0.0") -> ApiServer:
    """Serve the API on a daemon thread and return the server (call shutdown() to stop)."""
    server = ApiServer((host, port), make_handler(api))
    threading.Thread(target=server.serve_forever, name="api-server", daemon=True).start()
    print(f"🌐 Serving API at: http://{host}:{server.server_address[1]}/", file=sys.stderr)
    return server
