"""Patch applier: executes a validated batch against a program snapshot.

The applier is a pure transform. It copies the snapshot, runs every
operation against the copy, and hands back either the new snapshot or the
untouched original together with the error. A caller never sees a half
applied program.

Deletes always run before adds, edits and reorders. Within each group the
input order is kept.
"""

import copy
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from liftpatch.core.errors import PatchApplyError
from liftpatch.core.schema.operation import Operation
from liftpatch.core.schema.program import Day, Exercise, Program, ProgramIndex, Week
from liftpatch.core.validator import partition_deletes_first

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Outcome of applying a batch.

    Attributes:
        program: The new snapshot on success, the original object on failure
        error: The failure, if any
        applied: Number of operations applied (0 on failure)
    """

    program: Program
    error: Optional[PatchApplyError] = None
    applied: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


def apply_program_patch(program: Program, operations: Sequence[Operation]) -> ApplyResult:
    """Apply a batch of operations to a snapshot.

    Args:
        program: Snapshot to patch (never modified)
        operations: Parsed operations in input order

    Returns:
        ApplyResult holding the patched copy, or the original plus the error

    Example:
        >>> ops = [parse_operation({"op": "add", "target": "week", "week_number": 4})]
        >>> result = apply_program_patch(program, ops)
        >>> result.program.week_numbers()
        [1, 2, 3, 4]
    """
    working = copy.deepcopy(program)
    index = ProgramIndex(working)
    ordered = partition_deletes_first(list(enumerate(operations)), lambda op: op.is_delete)

    for position, op in ordered:
        try:
            apply_program_op(index, op)
        except PatchApplyError as e:
            e.index = position
            logger.error(f"Apply aborted at operation {position} ({op.describe()}): {e}")
            return ApplyResult(program=program, error=e)

    logger.info(f"Applied {len(ordered)} operations")
    return ApplyResult(program=working, applied=len(ordered))


def apply_program_op(index: ProgramIndex, op: Operation) -> None:
    """Apply a single operation through the index.

    Args:
        index: Composite-key index over the working snapshot
        op: Operation to apply

    Raises:
        PatchApplyError: If the target cannot be resolved or the
            (op, target) pair is unknown
    """
    if op.target == "week" and op.op == "delete":
        _delete_week(index, op)
    elif op.target == "week" and op.op == "add":
        _add_week(index, op)
    elif op.target == "day" and op.op == "delete":
        _delete_day(index, op)
    elif op.target == "day" and op.op == "add":
        _add_day(index, op)
    elif op.target == "exercise" and op.op == "delete":
        _delete_exercise(index, op)
    elif op.target == "exercise" and op.op == "add":
        _add_exercise(index, op)
    elif op.target == "exercise" and op.op == "edit":
        _edit_exercise(index, op)
    elif op.target == "exercise" and op.op == "reorder":
        _reorder_exercise(index, op)
    else:
        raise PatchApplyError(f"Unsupported operation: {op.op} {op.target}", operation=op)


def _resolve_week(index: ProgramIndex, op: Operation) -> Week:
    week = index.week(op.week_number)
    if week is None:
        raise PatchApplyError(f"Week {op.week_number} not found", operation=op)
    return week


def _resolve_day(index: ProgramIndex, op: Operation) -> Day:
    _resolve_week(index, op)
    day = index.day(op.week_number, op.day_name)
    if day is None:
        raise PatchApplyError(
            f"Day {op.day_name!r} not found in week {op.week_number}", operation=op
        )
    return day


def _resolve_exercise(index: ProgramIndex, op: Operation) -> Exercise:
    _resolve_day(index, op)
    exercise = index.exercise(op.week_number, op.day_name, op.exercise_name)
    if exercise is None:
        raise PatchApplyError(
            f"{op.exercise_name!r} not found in week {op.week_number} {op.day_name!r}",
            operation=op,
        )
    return exercise


def _delete_week(index: ProgramIndex, op: Operation) -> None:
    _resolve_week(index, op)
    index.remove_week(op.week_number)


def _add_week(index: ProgramIndex, op: Operation) -> None:
    if index.week(op.week_number) is not None:
        raise PatchApplyError(f"Week {op.week_number} already exists", operation=op)
    index.insert_week(Week(week_number=op.week_number))


def _delete_day(index: ProgramIndex, op: Operation) -> None:
    _resolve_day(index, op)
    index.remove_day(op.week_number, op.day_name)


def _add_day(index: ProgramIndex, op: Operation) -> None:
    _resolve_week(index, op)
    if index.day(op.week_number, op.day_name) is not None:
        raise PatchApplyError(
            f"Day {op.day_name!r} already exists in week {op.week_number}", operation=op
        )
    index.append_day(op.week_number, Day(day_name=op.day_name))


def _delete_exercise(index: ProgramIndex, op: Operation) -> None:
    # Siblings keep their order values; only reorder re-densifies a day.
    _resolve_exercise(index, op)
    index.remove_exercise(op.week_number, op.day_name, op.exercise_name)


def _add_exercise(index: ProgramIndex, op: Operation) -> None:
    day = _resolve_day(index, op)
    if index.exercise(op.week_number, op.day_name, op.exercise_name) is not None:
        raise PatchApplyError(
            f"{op.exercise_name!r} already exists in week {op.week_number} {op.day_name!r}",
            operation=op,
        )
    fields = op.supplied_fields()
    missing = [name for name in ("sets", "reps", "rir", "rpe", "notes") if name not in fields]
    if missing:
        raise PatchApplyError(f"Add is missing fields: {', '.join(missing)}", operation=op)

    index.append_exercise(
        op.week_number,
        op.day_name,
        Exercise(
            exercise_name=op.exercise_name,
            sets=fields["sets"],
            reps=fields["reps"],
            rir=fields["rir"],
            rpe=fields["rpe"],
            notes=fields["notes"],
            order=day.max_order() + 1,
        ),
    )


def _edit_exercise(index: ProgramIndex, op: Operation) -> None:
    exercise = _resolve_exercise(index, op)
    for name, value in op.supplied_fields().items():
        setattr(exercise, name, value)


def _reorder_exercise(index: ProgramIndex, op: Operation) -> None:
    exercise = _resolve_exercise(index, op)
    day = index.day(op.week_number, op.day_name)
    if op.order > len(day.exercises):
        raise PatchApplyError(
            f"Position {op.order} is past the end of {op.day_name!r} "
            f"({len(day.exercises)} exercises)",
            operation=op,
        )

    others: List[Exercise] = [e for e in day.exercises if e is not exercise]
    others.insert(op.order - 1, exercise)
    for position, item in enumerate(others, start=1):
        item.order = position
    day.exercises[:] = others
