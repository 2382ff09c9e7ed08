"""Alert dispatch to webhook and Discord sinks."""

import sys
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

import requests

from sui_invariant_monitor.constants import (
    DEFAULT_TIMEOUT,
    DISCORD_COLOR_ERROR,
    DISCORD_COLOR_OK,
    DISCORD_COLOR_VIOLATED,
    MAX_ALERT_WORKERS,
)
from sui_invariant_monitor.errors import AlertError
from sui_invariant_monitor.models import InvariantResult, InvariantStatus

_STATUS_EMOJI = {
    InvariantStatus.OK: "✅",
    InvariantStatus.VIOLATED: "🚨",
    InvariantStatus.ERROR: "⚠️",
}
_STATUS_COLOR = {
    InvariantStatus.OK: DISCORD_COLOR_OK,
    InvariantStatus.VIOLATED: DISCORD_COLOR_VIOLATED,
    InvariantStatus.ERROR: DISCORD_COLOR_ERROR,
}


def build_webhook_payload(result: InvariantResult) -> dict[str, Any]:
    """Generic webhook body: the full result including its computation trace."""
    return {
        "invariant_id": result.id,
        "invariant_name": result.name,
        "status": result.status.value.lower(),
        "violation_reason": result.violation_reason,
        "timestamp": result.evaluated_at.isoformat(),
        "computation": result.computation.to_dict(),
    }


def build_discord_message(result: InvariantResult) -> dict[str, Any]:
    """Discord webhook body with one rich embed."""
    emoji = _STATUS_EMOJI[result.status]
    fields = [
        {"name": "Status", "value": f"{emoji} {result.status.value.upper()}", "inline": True},
        {"name": "Invariant ID", "value": result.id, "inline": True},
        {"name": "Formula", "value": f"`{result.computation.formula}`", "inline": False},
        {"name": "Result", "value": f"`{result.computation.result}`", "inline": False},
    ]
    if result.violation_reason:
        fields.append({"name": "Violation Reason", "value": result.violation_reason, "inline": False})
    if result.computation.inputs:
        inputs = "\n".join(f"• **{k}**: {v}" for k, v in result.computation.inputs.items())
        fields.append({"name": "Computation Inputs", "value": inputs, "inline": False})

    return {
        "content": "🚨 **Invariant Violation Detected**" if result.status is InvariantStatus.VIOLATED else None,
        "embeds": [
            {
                "title": f"{emoji} {result.name}",
                "description": result.description,
                "color": _STATUS_COLOR[result.status],
                "fields": fields,
                "timestamp": result.evaluated_at.isoformat(),
            }
        ],
    }


class Alerter:
    """Base class for alert sinks."""

    name = "alerter"

    def __init__(self, url: str, *, timeout: int = DEFAULT_TIMEOUT, session: requests.Session | None = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def build_payload(self, result: InvariantResult) -> dict[str, Any]:
        raise NotImplementedError

    def send_alert(self, result: InvariantResult) -> None:
        """Post one result. Raises AlertError on transport failure or a non-2xx status."""
        try:
            resp = self.session.post(self.url, json=self.build_payload(result), timeout=self.timeout)
        except requests.RequestException as ex:
            raise AlertError(f"{self.name} request failed: {ex}") from ex
        if not 200 <= resp.status_code < 300:
            raise AlertError(f"{self.name} returned status {resp.status_code}")


class WebhookAlerter(Alerter):
    name = "webhook"

    def build_payload(self, result: InvariantResult) -> dict[str, Any]:
        return build_webhook_payload(result)


class DiscordAlerter(Alerter):
    name = "discord"

    def build_payload(self, result: InvariantResult) -> dict[str, Any]:
        return build_discord_message(result)


@dataclass(frozen=True)
class DeliveryFailure:
    alerter: str
    invariant_id: str
    error: str


def _deliver(alerter: Alerter, result: InvariantResult) -> DeliveryFailure | None:
    try:
        alerter.send_alert(result)
    except Exception as ex:  # pylint: disable=broad-exception-caught
        return DeliveryFailure(alerter=alerter.name, invariant_id=result.id, error=str(ex))
    return None


def dispatch_alerts(results: Sequence[InvariantResult], alerters: Sequence[Alerter]) -> list[DeliveryFailure]:
    """
    Send every violated result to every sink.

    Deliveries run concurrently and independently: one sink failing never blocks or cancels another.
    Returns the failed deliveries (also reported on stderr).
    """
    jobs = [(a, r) for r in results if r.status is InvariantStatus.VIOLATED for a in alerters]
    if not jobs:
        return []

    with ThreadPoolExecutor(max_workers=min(len(jobs), MAX_ALERT_WORKERS)) as pool:
        outcomes = list(pool.map(lambda job: _deliver(*job), jobs))

    failures = [f for f in outcomes if f is not None]
    for failure in failures:
        print(f"❌ Failed to send {failure.alerter} alert for {failure.invariant_id}: {failure.error}", file=sys.stderr)
    return failures
