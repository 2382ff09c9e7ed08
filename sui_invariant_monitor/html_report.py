"""HTML dashboard generation."""

import html
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from sui_invariant_monitor.models import InvariantResult, InvariantStatus

_HTML_CONTENT_PLACEHOLDER = "<!--CONTENT-->"

_HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta http-equiv="refresh" content="10">
    <title>Sui Invariant Monitor</title>
    <style>
        :root {
            --bg-primary: #0a0e14;
            --bg-secondary: #12171f;
            --bg-card: #171d26;
            --accent-cyan: #39bae6;
            --accent-green: #7fd962;
            --accent-yellow: #ffb454;
            --accent-red: #f07178;
            --text-primary: #e6e1cf;
            --text-secondary: #959da5;
            --border-color: #1f2733;
            --shadow: 0 4px 24px rgba(0, 0, 0, 0.4);
        }
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, sans-serif;
            background: var(--bg-primary);
            color: var(--text-primary);
            line-height: 1.6;
        }
        .container { max-width: 1200px; margin: 0 auto; padding: 2rem; }
        header {
            text-align: center;
            padding: 2rem 0;
            border-bottom: 1px solid var(--border-color);
            margin-bottom: 2rem;
        }
        header h1 { color: var(--accent-cyan); font-size: 2rem; }
        header .timestamp { font-family: monospace; color: var(--text-secondary); }
        .summary { display: flex; gap: 1rem; justify-content: center; margin-bottom: 2rem; }
        .summary .box {
            background: var(--bg-card);
            border: 1px solid var(--border-color);
            border-radius: 12px;
            padding: 1rem 1.5rem;
            box-shadow: var(--shadow);
            text-align: center;
        }
        .summary .value { font-size: 1.6rem; font-weight: 700; }
        .card {
            background: var(--bg-card);
            border: 1px solid var(--border-color);
            border-left: 4px solid var(--accent-green);
            border-radius: 12px;
            padding: 1.25rem;
            margin-bottom: 1rem;
            box-shadow: var(--shadow);
        }
        .card.violated { border-left-color: var(--accent-red); }
        .card.error { border-left-color: var(--accent-yellow); }
        .card h3 { font-size: 1.1rem; }
        .card .id { font-family: monospace; color: var(--text-secondary); }
        .card .reason { color: var(--accent-red); margin-top: 0.5rem; }
        .card code { font-family: monospace; color: var(--accent-cyan); }
        table { width: 100%; margin-top: 0.75rem; border-collapse: collapse; font-family: monospace; }
        td { padding: 0.2rem 0.5rem; border-bottom: 1px solid var(--border-color); word-break: break-all; }
        td.key { color: var(--text-secondary); width: 30%; }
        footer { text-align: center; color: var(--text-secondary); padding: 2rem 0; }
    </style>
</head>
<body>
<div class="container">
<!--CONTENT-->
</div>
</body>
</html>
"""

_STATUS_CLASS = {
    InvariantStatus.OK: "ok",
    InvariantStatus.VIOLATED: "violated",
    InvariantStatus.ERROR: "error",
}
_STATUS_LABEL = {
    InvariantStatus.OK: "✅ OK",
    InvariantStatus.VIOLATED: "🚨 VIOLATED",
    InvariantStatus.ERROR: "⚠️ ERROR",
}


def _render_result(r: InvariantResult) -> str:
    rows = "".join(
        f'<tr><td class="key">{html.escape(k)}</td><td>{html.escape(v)}</td></tr>'
        for k, v in r.computation.inputs.items()
    )
    reason = f'<div class="reason">{html.escape(r.violation_reason)}</div>' if r.violation_reason else ""
    return f"""
    <div class="card {_STATUS_CLASS[r.status]}">
        <h3>{_STATUS_LABEL[r.status]} &nbsp; {html.escape(r.name)} <span class="id">{html.escape(r.id)}</span></h3>
        <p>{html.escape(r.description)}</p>
        <p>Formula: <code>{html.escape(r.computation.formula)}</code></p>
        <p>Result: <code>{html.escape(r.computation.result)}</code></p>
        {reason}
        <table>{rows}</table>
    </div>"""


def generate_dashboard_html(status: dict[str, Any], results: Sequence[InvariantResult]) -> str:
    """Render a self-contained dashboard page for the latest cycle."""
    now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    last_check = status.get("last_check") or "never"
    overall = "✅ All invariants hold" if status.get("all_ok") else "🚨 Attention required"

    parts = [
        f"""
    <header>
        <h1>🛡️ Sui Invariant Monitor</h1>
        <div class="timestamp">Last check: {html.escape(str(last_check))} • Rendered: {now}</div>
        <p>{overall}</p>
    </header>
    <div class="summary">
        <div class="box"><div class="value">{int(status.get("total_invariants", 0))}</div>Invariants</div>
        <div class="box"><div class="value">{int(status.get("violations", 0))}</div>Violations</div>
        <div class="box"><div class="value">{int(status.get("errors", 0))}</div>Errors</div>
        <div class="box"><div class="value">{len(status.get("monitored_objects", []))}</div>Objects</div>
    </div>"""
    ]
    if not results:
        parts.append('<p style="text-align:center">No evaluation results yet.</p>')
    parts.extend(_render_result(r) for r in results)
    parts.append("<footer><p>Generated by sui-invariant-monitor</p></footer>")

    return _HTML_TEMPLATE.replace(_HTML_CONTENT_PLACEHOLDER, "\n".join(parts))
