"""Turn orchestration for the program-builder chat.

One coach message is one turn:

    load snapshot -> ask model -> validate batch -> apply -> save (version checked)

The turn either saves exactly one new snapshot or saves nothing. Every
failure is caught here and turned into a user-visible result; nothing is
retried, and a rejected or unreadable reply is never repaired behind the
coach's back. They send a new message instead.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence

from liftpatch.core.applier import apply_program_patch
from liftpatch.core.config import get_float
from liftpatch.core.errors import (
    BatchRejectedError,
    ProgramNotFoundError,
    StaleSnapshotError,
    UpstreamFormatError,
)
from liftpatch.core.schema.program import Program
from liftpatch.core.schema.violation import Violation
from liftpatch.core.store import ProgramStore
from liftpatch.core.validator import validate_batch

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Sorry, I couldn't process that change. Your program was not modified; please try again."
REJECTED_FAILURE = (
    "I couldn't apply those changes safely, so your program was left as it was. "
    "Try rephrasing or being more specific."
)
STALE_FAILURE = (
    "The program changed while I was working on it, so nothing was saved. "
    "Please review the latest version and try again."
)
NOT_FOUND_FAILURE = "That program could not be found."


@dataclass
class TurnResult:
    """Outcome of one chat turn.

    Attributes:
        kind: "question" (model asked back), "program" (edit saved) or "error"
        message: Text to show the coach
        program: Snapshot after the turn (the unchanged one unless kind == "program")
        version: Stored version after the turn
        violations: Validator findings when a batch was rejected
        error: Internal error description for logs (never shown verbatim)
    """

    kind: str
    message: str
    program: Optional[Program] = None
    version: Optional[int] = None
    violations: List[Violation] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind != "error"

    def to_dict(self) -> dict:
        data = {"type": self.kind, "message": self.message, "version": self.version}
        if self.program is not None:
            data["program"] = self.program.to_serializable()
        if self.violations:
            data["violations"] = [v.to_dict() for v in self.violations]
        return data


def modify_program(
    program: Program, raw_operations: Any, catalog: Iterable[str]
) -> Program:
    """Validate and apply a batch without any storage or model involved.

    Args:
        program: Current snapshot
        raw_operations: Decoded JSON list of operations
        catalog: Allowed exercise names

    Returns:
        The patched snapshot

    Raises:
        BatchRejectedError: If the validator finds any violation
        PatchApplyError: If application hits an inconsistency
    """
    result = validate_batch(raw_operations, program, catalog)
    if not result.accepted:
        raise BatchRejectedError(
            f"Batch rejected with {len(result.violations)} violations", result.violations
        )
    applied = apply_program_patch(program, result.operations)
    if applied.error is not None:
        raise applied.error
    return applied.program


class ProgramBuilder:
    """Drives one program-builder turn end to end.

    Example:
        >>> builder = ProgramBuilder(store, LLMAdapter(), catalog)
        >>> result = builder.run_turn("prog-1", "Move squats to the start of each day")
        >>> result.kind
        'program'
    """

    def __init__(
        self,
        store: ProgramStore,
        adapter: Any,
        catalog: Iterable[str],
        timeout: Optional[float] = None,
    ):
        """Initialize the builder.

        Args:
            store: Snapshot persistence
            adapter: Object with ``propose_reply(...)`` (normally LLMAdapter)
            catalog: Allowed exercise names for this builder's requests
            timeout: Deadline for the model call in seconds
                     (default: llm.timeout_seconds from config, else 30)
        """
        self.store = store
        self.adapter = adapter
        self.catalog = frozenset(catalog)
        self.timeout = timeout if timeout is not None else get_float(["llm", "timeout_seconds"], 30.0)

    def run_turn(
        self,
        program_id: str,
        instruction: str,
        history: Sequence[Any] = (),
        summary: Optional[str] = None,
    ) -> TurnResult:
        """Handle one coach instruction.

        Args:
            program_id: Program to modify
            instruction: The coach's message
            history: Prior turns, oldest first
            summary: Optional conversation summary

        Returns:
            TurnResult; the store was written only if ``kind == "program"``
        """
        logger.info(f"Starting turn for program {program_id}")

        try:
            stored = self.store.load(program_id)
        except ProgramNotFoundError as e:
            logger.warning(str(e))
            return TurnResult(kind="error", message=NOT_FOUND_FAILURE, error=str(e))
        except Exception as e:
            logger.error(f"Could not load program {program_id}: {type(e).__name__}: {e}")
            return TurnResult(kind="error", message=GENERIC_FAILURE, error=str(e))

        try:
            reply = self.adapter.propose_reply(
                stored.program,
                self.catalog,
                history,
                instruction,
                summary=summary,
                timeout=self.timeout,
            )
        except UpstreamFormatError as e:
            logger.warning(f"Unusable model reply: {e}")
            return self._unchanged("error", GENERIC_FAILURE, stored, error=str(e))
        except Exception as e:
            logger.error(f"Model call failed: {type(e).__name__}: {e}")
            return self._unchanged("error", GENERIC_FAILURE, stored, error=str(e))

        if reply.is_question:
            return self._unchanged("question", reply.message, stored)

        validation = validate_batch(reply.operations, stored.program, self.catalog)
        if not validation.accepted:
            for v in validation.violations:
                logger.warning(f"  {v}")
            return self._unchanged(
                "error",
                REJECTED_FAILURE,
                stored,
                violations=validation.violations,
                error=f"{len(validation.violations)} violations",
            )

        applied = apply_program_patch(stored.program, validation.operations)
        if applied.error is not None:
            return self._unchanged("error", GENERIC_FAILURE, stored, error=str(applied.error))

        try:
            version = self.store.save(program_id, applied.program, stored.version)
        except StaleSnapshotError as e:
            logger.warning(str(e))
            return self._unchanged("error", STALE_FAILURE, stored, error=str(e))
        except ProgramNotFoundError as e:
            logger.warning(str(e))
            return self._unchanged("error", NOT_FOUND_FAILURE, stored, error=str(e))
        except Exception as e:
            logger.error(f"Could not save program {program_id}: {type(e).__name__}: {e}")
            return self._unchanged("error", GENERIC_FAILURE, stored, error=str(e))

        logger.info(
            f"Turn saved program {program_id} at version {version} "
            f"({applied.applied} operations)"
        )
        return TurnResult(
            kind="program", message=reply.message, program=applied.program, version=version
        )

    def _unchanged(
        self,
        kind: str,
        message: str,
        stored: Any,
        violations: Optional[List[Violation]] = None,
        error: Optional[str] = None,
    ) -> TurnResult:
        return TurnResult(
            kind=kind,
            message=message,
            program=stored.program,
            version=stored.version,
            violations=violations or [],
            error=error,
        )

