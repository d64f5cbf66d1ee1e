"""Violation model for rejected operations."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Violation:
    """Represents one reason a batch cannot be applied.

    Violations are returned by the validator and tell the caller which
    operation is at fault and why. Any violation rejects the whole batch.

    Attributes:
        id: Reason code, "<category>.<CODE>" (e.g., "address.DAY_NOT_FOUND")
        message: Human-readable description of the violation
        index: Position of the offending operation in the input batch
               (None for batch-level problems)
        path: Location path (e.g., ["operations", "2", "sets"])
        severity: Severity level - "error", "warning", or "info"
        evidence: Supporting data such as the operation's composite key
    """

    id: str
    message: str
    index: Optional[int] = None
    path: List[str] = field(default_factory=list)
    severity: str = "error"
    evidence: Dict[str, Any] = field(default_factory=dict)

    @property
    def category(self) -> str:
        """Violation family: "schema", "address", "catalog" or "batch"."""
        return self.id.split(".", 1)[0]

    @property
    def code(self) -> str:
        return self.id.split(".", 1)[-1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "message": self.message,
            "index": self.index,
            "path": list(self.path),
            "severity": self.severity,
            "evidence": dict(self.evidence),
        }

    def __str__(self) -> str:
        where = f"operation {self.index}" if self.index is not None else "batch"
        return f"{where}: {self.id}: {self.message}"
