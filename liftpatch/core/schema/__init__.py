"""
Core schema definitions for program snapshots, operations, ranges and violations.
"""

from liftpatch.core.schema.operation import UNSET, Operation, parse_operation
from liftpatch.core.schema.program import Day, Exercise, Program, ProgramIndex, Week
from liftpatch.core.schema.ranges import NumRange, parse_range
from liftpatch.core.schema.violation import Violation

__all__ = [
    "UNSET",
    "Operation",
    "parse_operation",
    "Day",
    "Exercise",
    "Program",
    "ProgramIndex",
    "Week",
    "NumRange",
    "parse_range",
    "Violation",
]
