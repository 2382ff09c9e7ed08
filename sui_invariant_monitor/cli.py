"""CLI and main logic."""

import argparse
import sys
import threading
from dataclasses import replace

from sui_invariant_monitor.api import MonitorApi, start_api_server
from sui_invariant_monitor.config import Config, get_rpc_url
from sui_invariant_monitor.constants import NETWORK_RPC_URLS
from sui_invariant_monitor.engine import InvariantEngine
from sui_invariant_monitor.errors import ConfigError, MonitorError
from sui_invariant_monitor.fetcher import SuiFetcher
from sui_invariant_monitor.service import MonitorService, is_valid_object_id


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as ex:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}") from ex
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return parsed


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(description="Continuous safety-invariant monitor for a Sui lending protocol.")
    p.add_argument(
        "--rpc-url",
        default=None,
        help="Sui JSON-RPC URL. Overrides --network and the SUI_RPC_URL environment variable.",
    )
    p.add_argument(
        "--network",
        choices=sorted(NETWORK_RPC_URLS),
        default=None,
        help="Named Sui network whose public fullnode to use (default: SUI_NETWORK, then mainnet).",
    )
    p.add_argument(
        "--object",
        dest="objects",
        action="append",
        default=None,
        metavar="OBJECT_ID",
        help="Protocol object ID to monitor (repeatable). Overrides MONITORED_OBJECT_IDS.",
    )
    p.add_argument("--interval", type=_positive_int, default=None, help="Polling interval in seconds.")
    p.add_argument("--port", type=_positive_int, default=None, help="Port for the HTTP API and dashboard.")
    p.add_argument("--webhook-url", default=None, help="Generic JSON webhook for violation alerts.")
    p.add_argument("--discord-webhook-url", default=None, help="Discord webhook for violation alerts.")
    p.add_argument(
        "--balance-address",
        default=None,
        help="Address whose coin balance is compared against internal reserves.",
    )
    p.add_argument("--coin-type", default=None, help="Coin type for --balance-address (default: SUI).")
    p.add_argument(
        "--once",
        action="store_true",
        help="Run a single evaluation cycle and exit (exit code 1 if any invariant is not Ok).",
    )
    p.add_argument("--no-api", action="store_true", help="Do not start the HTTP API and dashboard.")
    p.add_argument(
        "--no-cache",
        action="store_true",
        help="Disable caching of Move module metadata for this run.",
    )
    return p.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    """Environment configuration with command-line overrides applied."""
    config = Config.from_env()
    overrides = {}
    if args.rpc_url:
        overrides["rpc_url"] = args.rpc_url
    elif args.network:
        overrides["rpc_url"] = get_rpc_url(args.network)
    if args.objects is not None:
        overrides["monitored_object_ids"] = tuple(o.strip() for o in args.objects if o.strip())
    if args.interval is not None:
        overrides["polling_interval_secs"] = args.interval
    if args.port is not None:
        overrides["port"] = args.port
    if args.webhook_url:
        overrides["webhook_url"] = args.webhook_url
    if args.discord_webhook_url:
        overrides["discord_webhook_url"] = args.discord_webhook_url
    if args.balance_address:
        overrides["balance_address"] = args.balance_address
    if args.coin_type:
        overrides["balance_coin_type"] = args.coin_type
    return replace(config, **overrides)


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = build_config(args)
    except ConfigError as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 2

    invalid = [o for o in config.monitored_object_ids if not is_valid_object_id(o)]
    if invalid:
        print(f"Error: invalid object ID(s): {', '.join(invalid)}", file=sys.stderr)
        return 2

    fetcher = SuiFetcher(config.rpc_url, timeout=config.request_timeout_secs)
    try:
        checkpoint = fetcher.check_connection()
    except MonitorError as ex:
        print(f"Error: failed to connect to Sui RPC at {config.rpc_url}: {ex}", file=sys.stderr)
        return 2
    print(f"ℹ️  Connected to {config.rpc_url} (checkpoint {checkpoint})", file=sys.stderr)
    print(
        f"ℹ️  Monitoring {len(config.monitored_object_ids)} object(s); "
        f"alerts: webhook={'on' if config.webhook_url else 'off'}, "
        f"discord={'on' if config.discord_webhook_url else 'off'}",
        file=sys.stderr,
    )

    service = MonitorService(config, engine=InvariantEngine(), fetcher=fetcher, show_progress=args.once)

    if args.once:
        try:
            results = service.run_cycle()
        except MonitorError as ex:
            print(f"❌ Evaluation failed: {ex}", file=sys.stderr)
            return 2
        return 0 if InvariantEngine.all_ok(results) else 1

    server = None
    if not args.no_api:
        try:
            server = start_api_server(MonitorApi(service, use_cache=not args.no_cache), config.port)
        except OSError as ex:
            print(f"Error: failed to bind API server on port {config.port}: {ex}", file=sys.stderr)
            return 2

    stop = threading.Event()
    try:
        service.run_forever(config.polling_interval_secs, stop_event=stop)
    except KeyboardInterrupt:
        stop.set()
        print("\n\n🛑 Monitor stopped.", file=sys.stderr)
    finally:
        if server is not None:
            server.shutdown()
            server.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
