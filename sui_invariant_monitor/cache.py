"""On-disk JSON cache for immutable RPC data (published Move package layouts).

Entries live under `$SUI_MONITOR_CACHE_DIR` when set, else `$XDG_CACHE_HOME` (or ~/.cache)
joined with CACHE_DIR_NAME. Keys embed CACHE_VERSION so a layout change invalidates old files.
"""

import hashlib
import json
import os
import sys
from pathlib import Path
from typing import Any

from sui_invariant_monitor.constants import CACHE_DIR_NAME, CACHE_VERSION


def get_cache_dir(root: Path | None = None) -> Path:
    """Resolve (and create) the cache directory."""
    if root is None:
        override = os.getenv("SUI_MONITOR_CACHE_DIR")
        if override:
            root = Path(override)
        else:
            root = Path(os.getenv("XDG_CACHE_HOME") or Path.home() / ".cache") / CACHE_DIR_NAME
    root.mkdir(parents=True, exist_ok=True)
    return root


def clear_cache(root: Path | None = None) -> int:
    """Delete every cached entry. Returns the number of entries removed."""
    removed = 0
    for entry in get_cache_dir(root).glob("*.json"):
        entry.unlink(missing_ok=True)
        removed += 1
    if removed:
        print(f"✅ Cache cleared ({removed} entries).", file=sys.stderr)
    else:
        print("ℹ️  Cache is already empty.", file=sys.stderr)
    return removed


def cache_key(prefix: str, *parts: Any) -> str:
    """Deterministic key: SHA-256 over prefix, cache version and parts."""
    material = ":".join([prefix, CACHE_VERSION, *(str(p) for p in parts)])
    return hashlib.sha256(material.encode()).hexdigest()


def get_cached(key: str, root: Path | None = None) -> Any | None:
    """Cached value for `key`, or None on a miss. A corrupted entry counts as a miss."""
    path = get_cache_dir(root) / f"{key}.json"
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None


def set_cached(key: str, data: Any, root: Path | None = None) -> None:
    """Store `data` under `key`. Written via a temp file so readers never see a partial entry."""
    path = get_cache_dir(root) / f"{key}.json"
    tmp = path.with_suffix(".tmp")
    try:
        tmp.write_text(json.dumps(data, ensure_ascii=False, separators=(",", ":")), encoding="utf-8")
        os.replace(tmp, path)
    except (OSError, TypeError, ValueError) as ex:
        print(f"⚠️  Failed to write cache entry {key[:12]}: {ex}", file=sys.stderr)
