"""Periodic monitoring loop and shared service state."""

import string
import sys
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sui_invariant_monitor.aggregator import aggregate
from sui_invariant_monitor.alerting import Alerter, DiscordAlerter, WebhookAlerter, dispatch_alerts
from sui_invariant_monitor.config import Config
from sui_invariant_monitor.console import print_cycle_summary
from sui_invariant_monitor.constants import OBJECT_ID_LENGTH
from sui_invariant_monitor.engine import InvariantEngine
from sui_invariant_monitor.errors import MonitorError
from sui_invariant_monitor.fetcher import SuiFetcher
from sui_invariant_monitor.models import InvariantResult, ProtocolState


def is_valid_object_id(object_id: str) -> bool:
    """0x followed by 64 hex characters."""
    return (
        object_id.startswith("0x")
        and len(object_id) == OBJECT_ID_LENGTH
        and all(c in string.hexdigits for c in object_id[2:])
    )


@dataclass
class MonitorState:
    """Latest published cycle output plus the monitored-object list."""

    rpc_url: str
    monitored_objects: list[str] = field(default_factory=list)
    results: list[InvariantResult] = field(default_factory=list)
    last_snapshot: ProtocolState | None = None
    last_check: datetime | None = None
    pending_evaluation: bool = False
    start_time: float = field(default_factory=time.monotonic)

    def update(self, results: list[InvariantResult], snapshot: ProtocolState) -> None:
        self.results = results
        self.last_snapshot = snapshot
        self.last_check = datetime.now(timezone.utc)
        self.pending_evaluation = False

    def uptime_secs(self) -> int:
        return int(time.monotonic() - self.start_time)


def build_alerters(config: Config) -> list[Alerter]:
    alerters: list[Alerter] = []
    if config.webhook_url:
        alerters.append(WebhookAlerter(config.webhook_url, timeout=config.request_timeout_secs))
    if config.discord_webhook_url:
        alerters.append(DiscordAlerter(config.discord_webhook_url, timeout=config.request_timeout_secs))
    return alerters


class MonitorService:
    """
    Owns the invariant engine exclusively.

    `lock` serializes evaluation with registry and monitored-object mutation coming from the HTTP
    surface. Published results are immutable and may be read after copying the list under the lock.
    """

    def __init__(
        self,
        config: Config,
        *,
        engine: InvariantEngine | None = None,
        fetcher: SuiFetcher | None = None,
        alerters: list[Alerter] | None = None,
        show_progress: bool = False,
        quiet: bool = False,
    ):
        self.config = config
        self.engine = engine if engine is not None else InvariantEngine()
        self.fetcher = fetcher or SuiFetcher(config.rpc_url, timeout=config.request_timeout_secs)
        self.alerters = alerters if alerters is not None else build_alerters(config)
        self.state = MonitorState(rpc_url=config.rpc_url, monitored_objects=list(config.monitored_object_ids))
        self.lock = threading.Lock()
        self.show_progress = show_progress
        self.quiet = quiet

    # Monitored objects

    def add_monitored_object(self, object_id: str) -> tuple[bool, str]:
        object_id = object_id.strip()
        if not is_valid_object_id(object_id):
            return False, "Invalid object ID format. Should be 0x followed by 64 hex characters."
        with self.lock:
            if object_id in self.state.monitored_objects:
                return True, "Object is already being monitored."
            self.state.monitored_objects.append(object_id)
            self.state.pending_evaluation = True
        return True, f"Added object {object_id} to monitoring. Will evaluate on next cycle."

    # Read side

    def listing(self) -> list[InvariantResult]:
        """Latest results followed by placeholders for advisory entries."""
        with self.lock:
            return [*self.state.results, *self.engine.pending_results()]

    def find(self, invariant_id: str) -> InvariantResult | None:
        for result in self.listing():
            if result.id == invariant_id:
                return result
        return None

    def status(self) -> dict[str, Any]:
        with self.lock:
            results = list(self.state.results)
            last_check = self.state.last_check
            monitored = list(self.state.monitored_objects)
        return {
            "last_check": last_check.isoformat() if last_check else None,
            "violations": InvariantEngine.violation_count(results),
            "errors": InvariantEngine.error_count(results),
            "total_invariants": len(results),
            "all_ok": InvariantEngine.all_ok(results),
            "monitored_objects": monitored,
        }

    # Cycle

    def resolve_on_chain_balance(self) -> int:
        """Balance of the configured address, or 0 when none is configured or the lookup fails."""
        if not self.config.balance_address:
            return 0
        try:
            return self.fetcher.fetch_balance(self.config.balance_address, self.config.balance_coin_type)
        except MonitorError as ex:
            print(f"⚠️  Balance lookup failed for {self.config.balance_address}: {ex}", file=sys.stderr)
            return 0

    def run_cycle(self) -> list[InvariantResult]:
        """Fetch, aggregate, evaluate, publish and alert. Returns the cycle's results."""
        with self.lock:
            object_ids = list(self.state.monitored_objects)

        if object_ids:
            records = self.fetcher.fetch_records(object_ids, show_progress=self.show_progress)
        else:
            print("ℹ️  No monitored object IDs configured, using empty state", file=sys.stderr)
            records = []

        snapshot = aggregate(records, self.resolve_on_chain_balance())

        with self.lock:
            results = self.engine.evaluate_all(snapshot)
            self.state.update(results, snapshot)

        if not self.quiet:
            print_cycle_summary(results, snapshot)
        dispatch_alerts(results, self.alerters)
        return results

    def run_forever(self, interval_secs: int, *, stop_event: threading.Event | None = None) -> None:
        """Tick every `interval_secs` until `stop_event` is set. A failed cycle never stops the loop."""
        stop = stop_event or threading.Event()
        print(f"ℹ️  Starting service loop (every {interval_secs}s)", file=sys.stderr)
        while not stop.is_set():
            started = time.monotonic()
            try:
                self.run_cycle()
            except MonitorError as ex:
                print(f"❌ Evaluation failed: {ex}", file=sys.stderr)
            except Exception as ex:  # pylint: disable=broad-exception-caught
                print(f"❌ Evaluation failed unexpectedly: {type(ex).__name__}: {ex}", file=sys.stderr)
            stop.wait(max(0.0, interval_secs - (time.monotonic() - started)))
