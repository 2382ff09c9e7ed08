import threading

import pytest

from sui_invariant_monitor.config import Config
from sui_invariant_monitor.errors import RpcError
from sui_invariant_monitor.models import InvariantStatus, SuggestedInvariant
from sui_invariant_monitor.service import MonitorService, build_alerters, is_valid_object_id

OBJ = "0x" + "ab" * 32


class FakeFetcher:
    rpc_url = "http://node"
    timeout = 5

    def __init__(self, records=None, balance=400, fail_balance=False):
        self.records = records if records is not None else []
        self.balance = balance
        self.fail_balance = fail_balance
        self.requested = []

    def fetch_records(self, object_ids, *, show_progress=False):
        self.requested.append(list(object_ids))
        return self.records

    def fetch_balance(self, address, coin_type=None):
        if self.fail_balance:
            raise RpcError("balance unavailable")
        return self.balance


class RecordingAlerter:
    name = "recording"

    def __init__(self):
        self.sent = []

    def send_alert(self, result):
        self.sent.append(result.id)


HEALTHY = {
    "total_supply": "1000",
    "total_reserves": "400",
    "total_borrowed": "600",
    "collateral_value": "900",
}


def _service(fetcher, alerters=None, **config):
    return MonitorService(Config(**config), fetcher=fetcher, alerters=alerters or [], quiet=True)


def test_is_valid_object_id():
    assert is_valid_object_id(OBJ)
    assert not is_valid_object_id("0x123")
    assert not is_valid_object_id("ab" * 33)
    assert not is_valid_object_id("0x" + "zz" * 32)


def test_build_alerters():
    assert build_alerters(Config()) == []
    names = [a.name for a in build_alerters(Config(webhook_url="http://a", discord_webhook_url="http://b"))]
    assert names == ["webhook", "discord"]


def test_cycle_publishes_results_and_status():
    fetcher = FakeFetcher([HEALTHY])
    service = _service(fetcher, monitored_object_ids=(OBJ,), balance_address="0xabc")

    results = service.run_cycle()

    assert fetcher.requested == [[OBJ]]
    assert all(r.status is InvariantStatus.OK for r in results)
    status = service.status()
    assert status["all_ok"] is True
    assert status["total_invariants"] == 5
    assert status["violations"] == 0
    assert status["last_check"] is not None
    assert service.state.last_snapshot.total_supply == 1000


def test_status_before_first_cycle_is_not_all_ok():
    status = _service(FakeFetcher()).status()
    assert status["all_ok"] is False
    assert status["last_check"] is None


def test_empty_object_list_uses_default_state(capsys):
    fetcher = FakeFetcher()
    results = _service(fetcher).run_cycle()

    assert fetcher.requested == []
    assert len(results) == 5
    assert "No monitored object IDs" in capsys.readouterr().err


def test_balance_lookup_failure_falls_back_to_zero(capsys):
    service = _service(FakeFetcher(fail_balance=True), balance_address="0xabc")
    assert service.resolve_on_chain_balance() == 0
    assert "Balance lookup failed" in capsys.readouterr().err
    assert _service(FakeFetcher(balance=7)).resolve_on_chain_balance() == 0


def test_violations_are_alerted():
    alerter = RecordingAlerter()
    service = _service(FakeFetcher([{**HEALTHY, "collateral_value": "800"}]), [alerter], balance_address="0xabc")

    service.run_cycle()

    assert alerter.sent == ["INV-002"]
    assert service.status()["violations"] == 1


def test_add_monitored_object():
    service = _service(FakeFetcher())

    ok, message = service.add_monitored_object("0x1")
    assert not ok
    assert "Invalid object ID" in message

    assert service.add_monitored_object(OBJ)[0]
    assert service.state.pending_evaluation is True
    assert service.add_monitored_object(OBJ) == (True, "Object is already being monitored.")
    assert service.state.monitored_objects == [OBJ]


def test_listing_includes_pending_advisory_entries():
    service = _service(FakeFetcher())
    service.run_cycle()
    service.engine.add_suggested([SuggestedInvariant("INV-101", "Fee Cap", "Fees bounded", "fee <= 100")])

    listing = service.listing()
    assert [r.id for r in listing][-1] == "INV-101"
    assert service.find("INV-101").computation.result == "Pending evaluation"
    assert service.find("INV-404") is None
    assert service.status()["total_invariants"] == 5


@pytest.mark.parametrize(
    ("error", "message"),
    [
        (RpcError("node down"), "Evaluation failed: node down"),
        (KeyError("content"), "Evaluation failed unexpectedly: KeyError"),
    ],
)
def test_run_forever_survives_failed_cycles(capsys, error, message):
    class FlakyFetcher(FakeFetcher):
        def fetch_records(self, object_ids, *, show_progress=False):
            super().fetch_records(object_ids)
            if len(self.requested) == 1:
                raise error
            stop.set()
            return []

    stop = threading.Event()
    fetcher = FlakyFetcher()
    service = _service(fetcher, monitored_object_ids=(OBJ,))

    service.run_forever(0, stop_event=stop)

    assert len(fetcher.requested) == 2
    assert message in capsys.readouterr().err
    assert service.state.last_check is not None
