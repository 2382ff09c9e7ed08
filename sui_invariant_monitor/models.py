"""Data models for invariant monitoring."""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sui_invariant_monitor.constants import INTEREST_INDEX_SCALE

# One on-chain object's field payload (field name -> textual or numeric value).
RawRecord = Mapping[str, Any]


@dataclass(frozen=True)
class ProtocolState:
    """Normalized protocol state at one point in time.

    A default instance (all zero, interest index 1.0) means "no data yet", not "empty protocol".
    """

    # Unix timestamp (seconds) when the state was sampled.
    timestamp: int = 0
    total_supply: int = 0
    total_borrowed: int = 0
    total_reserves: int = 0
    collateral_value: int = 0
    # Outstanding LP shares.
    outstanding_shares: int = 0
    # Fixed-point, scaled by 1e9.
    interest_index: int = INTEREST_INDEX_SCALE
    last_update_epoch: int = 0
    # Supplied from outside the object graph, used for accounting cross-checks.
    on_chain_balance: int = 0

    def to_dict(self) -> dict[str, str]:
        """Serialize with integers as decimal strings (values routinely exceed 64 bits)."""
        return {f.name: str(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProtocolState":
        known = {f.name for f in fields(cls)}
        return cls(**{k: int(v) for k, v in data.items() if k in known})


class InvariantStatus(Enum):
    """Status of an invariant check."""

    OK = "Ok"
    VIOLATED = "Violated"
    ERROR = "Error"


@dataclass(frozen=True)
class InvariantComputation:
    """Explainability payload: inputs used, the formula, and the rendered comparison."""

    formula: str = ""
    inputs: dict[str, str] = field(default_factory=dict)
    result: str = ""

    def with_input(self, key: str, value: Any) -> "InvariantComputation":
        return replace(self, inputs={**self.inputs, key: str(value)})

    def with_result(self, result: Any) -> "InvariantComputation":
        return replace(self, result=str(result))

    def to_dict(self) -> dict[str, Any]:
        return {"inputs": dict(self.inputs), "formula": self.formula, "result": self.result}


@dataclass(frozen=True)
class InvariantResult:
    """Outcome of evaluating one invariant."""

    id: str
    name: str
    description: str
    status: InvariantStatus
    evaluated_at: datetime
    computation: InvariantComputation
    violation_reason: str | None = None

    @classmethod
    def ok(cls, id: str, name: str, description: str, computation: InvariantComputation) -> "InvariantResult":  # pylint: disable=redefined-builtin
        return cls(
            id=id,
            name=name,
            description=description,
            status=InvariantStatus.OK,
            evaluated_at=datetime.now(timezone.utc),
            computation=computation,
        )

    @classmethod
    def violated(
        cls, id: str, name: str, description: str, computation: InvariantComputation, reason: str  # pylint: disable=redefined-builtin
    ) -> "InvariantResult":
        return cls(
            id=id,
            name=name,
            description=description,
            status=InvariantStatus.VIOLATED,
            evaluated_at=datetime.now(timezone.utc),
            computation=computation,
            violation_reason=reason,
        )

    @classmethod
    def error(cls, id: str, name: str, description: str, error_msg: str) -> "InvariantResult":  # pylint: disable=redefined-builtin
        return cls(
            id=id,
            name=name,
            description=description,
            status=InvariantStatus.ERROR,
            evaluated_at=datetime.now(timezone.utc),
            computation=InvariantComputation(result=f"Error: {error_msg}"),
            violation_reason=error_msg,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "evaluated_at": self.evaluated_at.isoformat(),
            "computation": self.computation.to_dict(),
            "violation_reason": self.violation_reason,
        }


@dataclass(frozen=True)
class SuggestedInvariant:
    """Invariant description proposed by LLM analysis. Descriptive only, never executed."""

    id: str
    name: str
    description: str
    formula: str
    severity: str = "medium"  # "critical", "high", "medium", "low"
    fields_used: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "formula": self.formula,
            "severity": self.severity,
            "fields_used": list(self.fields_used),
        }


@dataclass(frozen=True)
class FieldMetadata:
    name: str
    type_: str


@dataclass(frozen=True)
class StructMetadata:
    name: str
    abilities: tuple[str, ...]
    fields: tuple[FieldMetadata, ...]


@dataclass(frozen=True)
class FunctionMetadata:
    name: str
    visibility: str
    is_entry: bool
    parameters: tuple[str, ...]
    return_types: tuple[str, ...]


@dataclass(frozen=True)
class ModuleMetadata:
    """Normalized Move module layout fetched from a Sui node."""

    package_id: str
    module_name: str
    structs: tuple[StructMetadata, ...]
    functions: tuple[FunctionMetadata, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "package_id": self.package_id,
            "module_name": self.module_name,
            "structs": [
                {
                    "name": s.name,
                    "abilities": list(s.abilities),
                    "fields": [{"name": f.name, "type_": f.type_} for f in s.fields],
                }
                for s in self.structs
            ],
            "functions": [
                {
                    "name": fn.name,
                    "visibility": fn.visibility,
                    "is_entry": fn.is_entry,
                    "parameters": list(fn.parameters),
                    "return_types": list(fn.return_types),
                }
                for fn in self.functions
            ],
        }


@dataclass(frozen=True)
class AnalysisResult:
    """LLM analysis output for one module."""

    package_id: str
    module_name: str
    suggested_invariants: tuple[SuggestedInvariant, ...]
    analysis_notes: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "package_id": self.package_id,
            "module_name": self.module_name,
            "suggested_invariants": [s.to_dict() for s in self.suggested_invariants],
            "analysis_notes": self.analysis_notes,
        }
