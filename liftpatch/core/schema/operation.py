"""Operation vocabulary for structured program edits.

An operation is a flat JSON object tagged with ``op`` and ``target``.
Only eight (op, target) pairs exist; anything else is rejected.

JSON Transport Format
---------------------

Example::

    [
      {"op": "delete", "target": "week", "week_number": 3},
      {"op": "add", "target": "day", "week_number": 1, "day_name": "Push"},
      {"op": "add", "target": "exercise", "week_number": 1, "day_name": "Push",
       "exercise_name": "Bench Press", "sets": "3-4", "reps": "6-8",
       "rir": "1-2", "rpe": null, "notes": ""},
      {"op": "edit", "target": "exercise", "week_number": 1, "day_name": "Push",
       "exercise_name": "Bench Press", "sets": "3"},
      {"op": "reorder", "target": "exercise", "week_number": 1, "day_name": "Push",
       "exercise_name": "Bench Press", "order": 1}
    ]

Adds carry every field of the new entity; edits carry only the fields that
change. An edit field that is present with value ``null`` clears it, one that
is absent is left alone, so omitted fields are tracked with the ``UNSET``
sentinel rather than ``None``.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional, Tuple, Union

from liftpatch.core.errors import OperationSchemaError
from liftpatch.core.schema.ranges import NumRange, parse_range


class _Unset:
    """Marker for an edit field that was not supplied."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()

OPS = ("add", "edit", "delete", "reorder")
TARGETS = ("week", "day", "exercise")
RANGE_FIELDS = ("sets", "reps", "rir", "rpe")
PAYLOAD_FIELDS = RANGE_FIELDS + ("notes",)

RangeField = Union[NumRange, None, _Unset]
NotesField = Union[str, _Unset]


@dataclass(frozen=True)
class OperationShape:
    """Required and optional fields for one (op, target) pair."""

    required: FrozenSet[str]
    optional: FrozenSet[str] = frozenset()

    @property
    def allowed(self) -> FrozenSet[str]:
        return self.required | self.optional | {"op", "target"}


_WEEK = frozenset({"week_number"})
_DAY = _WEEK | {"day_name"}
_EXERCISE = _DAY | {"exercise_name"}

SHAPES: Dict[Tuple[str, str], OperationShape] = {
    ("add", "week"): OperationShape(_WEEK),
    ("delete", "week"): OperationShape(_WEEK),
    ("add", "day"): OperationShape(_DAY),
    ("delete", "day"): OperationShape(_DAY),
    ("add", "exercise"): OperationShape(_EXERCISE | set(PAYLOAD_FIELDS)),
    ("edit", "exercise"): OperationShape(_EXERCISE, frozenset(PAYLOAD_FIELDS)),
    ("delete", "exercise"): OperationShape(_EXERCISE),
    ("reorder", "exercise"): OperationShape(_EXERCISE | {"order"}),
}


@dataclass(frozen=True)
class Operation:
    """Single parsed patch operation.

    Attributes:
        op: "add" | "edit" | "delete" | "reorder"
        target: "week" | "day" | "exercise"
        week_number: Target week (for add week, the new week's number)
        day_name: Target day (day and exercise targets)
        exercise_name: Target exercise (exercise targets)
        sets, reps, rir, rpe: Range payload, None to clear, UNSET if omitted
        notes: Notes payload, UNSET if omitted
        order: 1-based destination for reorder
    """

    op: str
    target: str
    week_number: int
    day_name: Optional[str] = None
    exercise_name: Optional[str] = None
    sets: RangeField = UNSET
    reps: RangeField = UNSET
    rir: RangeField = UNSET
    rpe: RangeField = UNSET
    notes: NotesField = UNSET
    order: Optional[int] = None

    @property
    def is_delete(self) -> bool:
        return self.op == "delete"

    @property
    def key(self) -> Tuple[Any, ...]:
        """Composite key of the targeted entity."""
        if self.target == "week":
            return (self.week_number,)
        if self.target == "day":
            return (self.week_number, self.day_name)
        return (self.week_number, self.day_name, self.exercise_name)

    def supplied_fields(self) -> Dict[str, Any]:
        """Payload fields that were present in the input (including nulls)."""
        return {
            name: getattr(self, name)
            for name in PAYLOAD_FIELDS
            if getattr(self, name) is not UNSET
        }

    def describe(self) -> str:
        """Short human-readable label, e.g. ``delete day (1, 'Push')``."""
        key = self.key if len(self.key) > 1 else self.key[0]
        return f"{self.op} {self.target} {key!r}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the JSON transport form."""
        data: Dict[str, Any] = {"op": self.op, "target": self.target, "week_number": self.week_number}
        if self.day_name is not None:
            data["day_name"] = self.day_name
        if self.exercise_name is not None:
            data["exercise_name"] = self.exercise_name
        for name, value in self.supplied_fields().items():
            if name == "notes":
                data[name] = value
            else:
                data[name] = value.to_display() if value is not None else None
        if self.order is not None:
            data["order"] = self.order
        return data


def _require_positive_int(data: Dict[str, Any], name: str) -> int:
    value = data[name]
    if isinstance(value, bool) or not isinstance(value, int):
        raise OperationSchemaError(
            f"'{name}' must be an integer, got {type(value).__name__}", "schema.BAD_TYPE", name
        )
    if value < 1:
        raise OperationSchemaError(f"'{name}' must be positive, got {value}", "schema.BAD_TYPE", name)
    return value


def _require_name(data: Dict[str, Any], name: str) -> str:
    value = data[name]
    if not isinstance(value, str):
        raise OperationSchemaError(
            f"'{name}' must be a string, got {type(value).__name__}", "schema.BAD_TYPE", name
        )
    if not value.strip():
        raise OperationSchemaError(f"'{name}' must not be blank", "schema.BAD_TYPE", name)
    return value


def _parse_range_field(data: Dict[str, Any], name: str) -> RangeField:
    if name not in data:
        return UNSET
    value = data[name]
    if isinstance(value, bool) or not (value is None or isinstance(value, (str, int, float))):
        raise OperationSchemaError(
            f"'{name}' must be a range string, a number or null", "schema.BAD_TYPE", name
        )
    try:
        return parse_range(value)
    except ValueError as e:
        raise OperationSchemaError(f"'{name}': {e}", "schema.BAD_RANGE", name) from e


def parse_operation(data: Any) -> Operation:
    """Parse and schema-check one operation.

    Args:
        data: Decoded JSON value for one operation

    Returns:
        Parsed Operation

    Raises:
        OperationSchemaError: If the value does not match one of the
            allowed (op, target) shapes exactly
    """
    if not isinstance(data, dict):
        raise OperationSchemaError(
            f"Operation must be an object, got {type(data).__name__}", "schema.NOT_AN_OBJECT"
        )

    op = data.get("op")
    target = data.get("target")
    if op not in OPS:
        raise OperationSchemaError(f"Unknown op {op!r}", "schema.UNKNOWN_OP", "op")
    if target not in TARGETS:
        raise OperationSchemaError(f"Unknown target {target!r}", "schema.UNKNOWN_TARGET", "target")

    shape = SHAPES.get((op, target))
    if shape is None:
        raise OperationSchemaError(
            f"'{op}' is not supported for target '{target}'", "schema.UNSUPPORTED_SHAPE"
        )

    for name in sorted(shape.required):
        if name not in data:
            raise OperationSchemaError(
                f"{op} {target} requires '{name}'", "schema.MISSING_FIELD", name
            )
    for name in sorted(data):
        if name not in shape.allowed:
            raise OperationSchemaError(
                f"{op} {target} does not accept '{name}'", "schema.UNEXPECTED_FIELD", name
            )

    week_number = _require_positive_int(data, "week_number")
    day_name = _require_name(data, "day_name") if "day_name" in shape.required else None
    exercise_name = (
        _require_name(data, "exercise_name") if "exercise_name" in shape.required else None
    )
    order = _require_positive_int(data, "order") if "order" in shape.required else None

    notes: NotesField = UNSET
    if "notes" in data:
        if not isinstance(data["notes"], str):
            raise OperationSchemaError("'notes' must be a string", "schema.BAD_TYPE", "notes")
        notes = data["notes"]

    return Operation(
        op=op,
        target=target,
        week_number=week_number,
        day_name=day_name,
        exercise_name=exercise_name,
        sets=_parse_range_field(data, "sets"),
        reps=_parse_range_field(data, "reps"),
        rir=_parse_range_field(data, "rir"),
        rpe=_parse_range_field(data, "rpe"),
        notes=notes,
        order=order,
    )
