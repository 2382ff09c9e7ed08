import pytest

from sui_invariant_monitor import cli
from sui_invariant_monitor.constants import SUI_RPC_TESTNET
from sui_invariant_monitor.errors import RpcError

OBJ = "0x" + "ab" * 32


class OfflineFetcher:
    """Replaces SuiFetcher inside the CLI."""

    records: list = []
    connected = True

    def __init__(self, rpc_url, *, timeout=30, session=None):
        self.rpc_url = rpc_url
        self.timeout = timeout

    def check_connection(self):
        if not self.connected:
            raise RpcError("connection refused")
        return 1234

    def fetch_records(self, object_ids, *, show_progress=False):
        return self.records

    def fetch_balance(self, address, coin_type=None):
        return 400


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "SUI_RPC_URL",
        "SUI_NETWORK",
        "POLLING_INTERVAL_SECS",
        "WEBHOOK_URL",
        "DISCORD_WEBHOOK_URL",
        "MONITORED_OBJECT_IDS",
        "BALANCE_ADDRESS",
        "PORT",
        "BALANCE_COIN_TYPE",
        "REQUEST_TIMEOUT_SECS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def offline(monkeypatch):
    monkeypatch.setattr(cli, "SuiFetcher", OfflineFetcher)
    monkeypatch.setattr(OfflineFetcher, "records", [])
    monkeypatch.setattr(OfflineFetcher, "connected", True)
    return OfflineFetcher


def test_flags_override_environment(monkeypatch):
    monkeypatch.setenv("MONITORED_OBJECT_IDS", "0x1")
    monkeypatch.setenv("POLLING_INTERVAL_SECS", "60")

    config = cli.build_config(cli.parse_args(["--network", "testnet", "--object", OBJ, "--interval", "5"]))

    assert config.rpc_url == SUI_RPC_TESTNET
    assert config.monitored_object_ids == (OBJ,)
    assert config.polling_interval_secs == 5


def test_rpc_url_flag_wins_over_network():
    config = cli.build_config(cli.parse_args(["--rpc-url", "http://local:9000", "--network", "testnet"]))
    assert config.rpc_url == "http://local:9000"


def test_invalid_interval_flag_exits():
    with pytest.raises(SystemExit):
        cli.parse_args(["--interval", "0"])


def test_invalid_env_config_returns_2(monkeypatch, capsys):
    monkeypatch.setenv("PORT", "http")
    assert cli.main(["--once"]) == 2
    assert "Invalid value for PORT" in capsys.readouterr().err


def test_invalid_object_id_returns_2(offline, capsys):
    assert cli.main(["--once", "--object", "0x12"]) == 2
    assert "invalid object ID" in capsys.readouterr().err


def test_connection_failure_returns_2(offline, capsys):
    offline.connected = False
    assert cli.main(["--once"]) == 2
    assert "failed to connect" in capsys.readouterr().err


def test_once_exit_codes(offline, capsys):
    healthy = {"total_supply": "1000", "total_reserves": "400", "total_borrowed": "600", "collateral_value": "900"}

    offline.records = [healthy]
    assert cli.main(["--once", "--object", OBJ, "--balance-address", "0xabc"]) == 0

    offline.records = [{**healthy, "collateral_value": "800"}]
    assert cli.main(["--once", "--object", OBJ, "--balance-address", "0xabc"]) == 1
    assert "INV-002" in capsys.readouterr().out
