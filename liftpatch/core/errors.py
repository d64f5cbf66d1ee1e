"""LiftPatch exceptions for error handling."""

from typing import Any, List, Optional


class LiftpatchError(Exception):
    """Base class for all LiftPatch errors."""


class OperationSchemaError(LiftpatchError):
    """Raised when a single operation does not match any allowed shape.

    Attributes:
        message: Description of the failure
        code: Reason code (e.g., "schema.MISSING_FIELD")
        field: Name of the offending field, if any
    """

    def __init__(self, message: str, code: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
        self.field = field


class PatchApplyError(LiftpatchError):
    """Raised when an operation cannot be applied to the snapshot.

    Validation is expected to catch every case that raises this; the applier
    checks again so that an inconsistent batch aborts instead of leaving a
    partially mutated program behind.

    Attributes:
        message: Description of the failure
        operation: The Operation that failed (optional)
        index: Position of the operation in the input batch (optional)
    """

    def __init__(
        self, message: str, operation: Optional[Any] = None, index: Optional[int] = None
    ) -> None:
        """Initialize PatchApplyError exception.

        Args:
            message: Error message describing the failure
            operation: The Operation that failed (optional)
            index: Input position of the failing operation (optional)
        """
        super().__init__(message)
        self.operation = operation
        self.index = index


class BatchRejectedError(LiftpatchError):
    """Raised when a batch fails validation and must not be applied.

    Attributes:
        violations: Every violation found in the batch
    """

    def __init__(self, message: str, violations: List[Any]) -> None:
        super().__init__(message)
        self.violations = violations


class UpstreamFormatError(LiftpatchError):
    """Raised when the text-generation service returns an unusable reply.

    Covers invalid JSON and any top-level shape other than a question or a
    program reply.

    Attributes:
        message: Description of the failure
        raw: The raw response text (optional, for debugging)
    """

    def __init__(self, message: str, raw: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw = raw


class ProgramNotFoundError(LiftpatchError):
    """Raised when a store has no program with the requested id."""


class StaleSnapshotError(LiftpatchError):
    """Raised when a save is attempted against an outdated snapshot version.

    Attributes:
        program_id: Program being saved
        expected_version: Version the caller read
        actual_version: Version currently stored (None if unknown)
    """

    def __init__(
        self, program_id: str, expected_version: int, actual_version: Optional[int] = None
    ) -> None:
        super().__init__(
            f"Program {program_id} changed since version {expected_version}"
            + (f" (now at version {actual_version})" if actual_version is not None else "")
        )
        self.program_id = program_id
        self.expected_version = expected_version
        self.actual_version = actual_version
