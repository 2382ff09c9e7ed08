"""Exception hierarchy for the invariant monitor."""


class MonitorError(Exception):
    """Base class for all monitor errors."""


class RpcError(MonitorError):
    """RPC request failed or the node returned a JSON-RPC error."""


class ParseError(MonitorError):
    """A response could not be decoded."""


class ObjectNotFoundError(MonitorError):
    """The node returned no data for an object id."""


class AggregationError(MonitorError):
    """Snapshot aggregation received structurally invalid input."""


class AlertError(MonitorError):
    """An alert sink rejected or failed to receive a notification."""


class ConfigError(MonitorError):
    """Invalid configuration value."""


class LlmError(MonitorError):
    """LLM provider request failed."""
