"""Batch validator for program patches.

Checks a batch before anything is mutated. The batch is accepted only if
every operation passes; one violation rejects all of it.

Checks, in order:

1. Schema: each operation matches one allowed (op, target) shape, with
   required fields present, no extra fields, and well-formed ranges.
2. Addressing: every edit/delete/reorder resolves to an existing entity and
   every add targets a free key. Resolution runs against a shadow of the
   snapshot, replaying the batch in applied order (deletes first, see
   ``partition_deletes_first``), so earlier operations are accounted for.
   Skipped when any operation failed the schema check.
3. Catalog: every exercise named by an add or edit is in the catalog.

The validator cannot tell whether a "start over" batch deleted every week
the user meant to clear. It rejects only batches it can prove are malformed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple, TypeVar

from liftpatch.core.errors import OperationSchemaError
from liftpatch.core.schema.operation import Operation, parse_operation
from liftpatch.core.schema.program import Program
from liftpatch.core.schema.violation import Violation

logger = logging.getLogger(__name__)

T = TypeVar("T")


def partition_deletes_first(items: Sequence[Tuple[int, T]], is_delete) -> List[Tuple[int, T]]:
    """Stable two-pass partition: all deletes, then everything else.

    Relative order inside each group is preserved.

    Args:
        items: (input index, operation) pairs in input order
        is_delete: Predicate on the operation

    Returns:
        Reordered list of the same pairs
    """
    deletes = [item for item in items if is_delete(item[1])]
    others = [item for item in items if not is_delete(item[1])]
    return deletes + others


@dataclass
class ValidationResult:
    """Outcome of validating one batch.

    Attributes:
        operations: Parsed operations in input order (only complete when accepted)
        violations: Every violation found, sorted by operation index
    """

    operations: List[Operation] = field(default_factory=list)
    violations: List[Violation] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return not self.violations


class _AddressShadow:
    """Key-only copy of a snapshot used to replay a batch.

    Tracks which weeks, days and exercises exist without touching the real
    program.
    """

    def __init__(self, program: Program):
        self.weeks: Dict[int, Dict[str, List[str]]] = {
            week.week_number: {
                day.day_name: [e.exercise_name for e in day.exercises] for day in week.days
            }
            for week in program.weeks
        }

    def check(self, op: Operation) -> Optional[Tuple[str, str]]:
        """Return (code, message) if ``op`` cannot resolve, else record its effect."""
        week = self.weeks.get(op.week_number)

        if op.target == "week":
            if op.op == "add":
                if week is not None:
                    return "address.WEEK_EXISTS", f"Week {op.week_number} already exists"
                self.weeks[op.week_number] = {}
                return None
            if week is None:
                return "address.WEEK_NOT_FOUND", f"Week {op.week_number} does not exist"
            del self.weeks[op.week_number]
            return None

        if week is None:
            return "address.WEEK_NOT_FOUND", f"Week {op.week_number} does not exist"
        day = week.get(op.day_name)

        if op.target == "day":
            if op.op == "add":
                if day is not None:
                    return (
                        "address.DAY_EXISTS",
                        f"Day {op.day_name!r} already exists in week {op.week_number}",
                    )
                week[op.day_name] = []
                return None
            if day is None:
                return (
                    "address.DAY_NOT_FOUND",
                    f"Day {op.day_name!r} does not exist in week {op.week_number}",
                )
            del week[op.day_name]
            return None

        if day is None:
            return (
                "address.DAY_NOT_FOUND",
                f"Day {op.day_name!r} does not exist in week {op.week_number}",
            )
        exists = op.exercise_name in day

        if op.op == "add":
            if exists:
                return (
                    "address.EXERCISE_EXISTS",
                    f"{op.exercise_name!r} is already in week {op.week_number} {op.day_name!r}",
                )
            day.append(op.exercise_name)
            return None
        if not exists:
            return (
                "address.EXERCISE_NOT_FOUND",
                f"{op.exercise_name!r} is not in week {op.week_number} {op.day_name!r}",
            )
        if op.op == "delete":
            day.remove(op.exercise_name)
        elif op.op == "reorder" and op.order > len(day):
            return (
                "address.ORDER_OUT_OF_RANGE",
                f"Cannot move {op.exercise_name!r} to position {op.order}; "
                f"{op.day_name!r} has {len(day)} exercises",
            )
        return None


def parse_batch(raw_operations: Any) -> Tuple[List[Tuple[int, Operation]], List[Violation]]:
    """Schema-check every operation in a raw batch.

    Returns:
        (index, Operation) pairs for the well-formed operations, and a
        violation for each malformed one
    """
    if not isinstance(raw_operations, list):
        return [], [
            Violation(
                id="batch.NOT_A_LIST",
                message=f"Operations must be a list, got {type(raw_operations).__name__}",
                path=["operations"],
            )
        ]

    parsed: List[Tuple[int, Operation]] = []
    violations: List[Violation] = []
    for index, raw in enumerate(raw_operations):
        try:
            parsed.append((index, parse_operation(raw)))
        except OperationSchemaError as e:
            path = ["operations", str(index)] + ([e.field] if e.field else [])
            violations.append(
                Violation(id=e.code, message=str(e), index=index, path=path, evidence={"raw": raw})
            )
    return parsed, violations


def validate_batch(
    raw_operations: Any, program: Program, catalog: Iterable[str]
) -> ValidationResult:
    """Validate a raw batch against a snapshot and exercise catalog.

    Args:
        raw_operations: Decoded JSON list of operations (as produced by the model)
        program: Current snapshot (not modified)
        catalog: Exercise names allowed for this request

    Returns:
        ValidationResult; ``accepted`` is True only if no violations were found

    Example:
        >>> result = validate_batch(
        ...     [{"op": "delete", "target": "week", "week_number": 9}], program, catalog
        ... )
        >>> [v.id for v in result.violations]
        ['address.WEEK_NOT_FOUND']
    """
    allowed: Set[str] = set(catalog)
    parsed, violations = parse_batch(raw_operations)

    # Later operations may address keys a rejected operation would have created
    if parsed and not violations:
        input_order = [index for index, _ in parsed]
        applied = partition_deletes_first(parsed, lambda op: op.is_delete)
        if [index for index, _ in applied] != input_order:
            logger.info("Batch has deletes after adds/edits; validating in deletes-first order")

        shadow = _AddressShadow(program)
        for index, op in applied:
            failure = shadow.check(op)
            if failure is not None:
                code, message = failure
                violations.append(
                    Violation(
                        id=code,
                        message=message,
                        index=index,
                        path=["operations", str(index)],
                        evidence={"op": op.op, "target": op.target, "key": list(op.key)},
                    )
                )

    for index, op in parsed:
        if op.target == "exercise" and op.op in ("add", "edit"):
            if op.exercise_name not in allowed:
                violations.append(
                    Violation(
                        id="catalog.UNKNOWN_EXERCISE",
                        message=f"{op.exercise_name!r} is not in the exercise catalog",
                        index=index,
                        path=["operations", str(index), "exercise_name"],
                        evidence={"exercise_name": op.exercise_name},
                    )
                )

    violations.sort(key=lambda v: (v.index if v.index is not None else -1))
    result = ValidationResult(
        operations=[op for _, op in parsed] if not violations else [],
        violations=violations,
    )
    if result.accepted:
        logger.info(f"Batch accepted ({len(result.operations)} operations)")
    else:
        logger.warning(f"Batch rejected with {len(violations)} violations")
        for v in violations:
            logger.debug(f"  {v}")
    return result
