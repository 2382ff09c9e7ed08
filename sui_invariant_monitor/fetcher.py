"""Sui JSON-RPC data fetching."""

import sys
from collections.abc import Iterable
from typing import Any

import requests
from tqdm import tqdm

from sui_invariant_monitor.constants import DEFAULT_TIMEOUT, SUI_COIN_TYPE
from sui_invariant_monitor.errors import MonitorError, ObjectNotFoundError, ParseError, RpcError
from sui_invariant_monitor.formatters import as_uint
from sui_invariant_monitor.models import RawRecord


def object_fields(response: Any) -> RawRecord | None:
    """Unwrap `data.content.fields` of a sui_getObject response into a raw record (None if any level is missing)."""
    node = response
    for key in ("data", "content", "fields"):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    if isinstance(node, dict):
        return node
    return None


class SuiFetcher:
    """Thin JSON-RPC client for a Sui fullnode."""

    def __init__(self, rpc_url: str, *, timeout: int = DEFAULT_TIMEOUT, session: requests.Session | None = None):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self._request_id = 0

    def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Send one JSON-RPC request and return its `result` (None if the node sent none)."""
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        try:
            resp = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as ex:
            raise RpcError(f"{method} failed: {ex}") from ex

        try:
            body = resp.json()
        except ValueError as ex:
            raise ParseError(f"{method}: invalid JSON response") from ex
        if not isinstance(body, dict):
            raise ParseError(f"{method}: unexpected response type {type(body).__name__}")

        error = body.get("error")
        if error:
            message = error.get("message", error) if isinstance(error, dict) else error
            raise RpcError(f"{method}: {message}")
        return body.get("result")

    def check_connection(self) -> int:
        """Verify the node answers; returns the latest checkpoint sequence number."""
        checkpoint = self.rpc_call("sui_getLatestCheckpointSequenceNumber", [])
        value = as_uint(checkpoint)
        if value is None:
            raise ParseError(f"Unexpected checkpoint value: {checkpoint!r}")
        return value

    def fetch_object(self, object_id: str) -> dict[str, Any]:
        """Fetch a single object with type, content and owner."""
        result = self.rpc_call(
            "sui_getObject",
            [object_id, {"showType": True, "showContent": True, "showOwner": True}],
        )
        if not isinstance(result, dict):
            raise ObjectNotFoundError(object_id)
        if result.get("data") is None and result.get("error") is not None:
            raise ObjectNotFoundError(f"{object_id}: {result['error']}")
        return result

    def fetch_objects(self, object_ids: Iterable[str], *, show_progress: bool = False) -> list[dict[str, Any]]:
        """
        Fetch several objects. An object that cannot be fetched is reported and skipped,
        never aborting the batch.
        """
        out: list[dict[str, Any]] = []
        ids = list(object_ids)
        with tqdm(ids, desc="📥 Fetching objects", unit="obj", file=sys.stderr, disable=not show_progress) as pbar:
            for object_id in pbar:
                try:
                    out.append(self.fetch_object(object_id))
                except MonitorError as ex:
                    tqdm.write(f"⚠️  Failed to fetch object {object_id}: {ex}", file=sys.stderr)
        return out

    def fetch_records(self, object_ids: Iterable[str], *, show_progress: bool = False) -> list[RawRecord]:
        """Fetch objects and keep the field payload of those that have one."""
        records: list[RawRecord] = []
        for response in self.fetch_objects(object_ids, show_progress=show_progress):
            fields = object_fields(response)
            if fields is None:
                print("⚠️  Skipping object without a Move fields payload", file=sys.stderr)
                continue
            records.append(fields)
        return records

    def fetch_balance(self, address: str, coin_type: str | None = None) -> int:
        """Total balance of `address` for `coin_type` (default SUI)."""
        result = self.rpc_call("suix_getBalance", [address, coin_type or SUI_COIN_TYPE])
        if not isinstance(result, dict):
            raise ParseError("No balance result")
        balance = as_uint(result.get("totalBalance"))
        if balance is None:
            raise ParseError(f"Invalid balance: {result.get('totalBalance')!r}")
        return balance
