"""Safety-invariant monitoring for a Sui lending protocol."""

from typing import NoReturn

__version__ = "0.1.0"


def _entry_point() -> NoReturn:
    """Entry point for the sui-invariant-monitor script."""
    import sys

    from sui_invariant_monitor.cli import main

    raise SystemExit(main(sys.argv[1:]))


def _clear_cache_entry_point() -> NoReturn:
    """Entry point for the sui-invariant-monitor-clear-cache script."""
    from sui_invariant_monitor.cache import clear_cache

    clear_cache()
    raise SystemExit(0)
