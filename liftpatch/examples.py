"""Example programs, catalogs and batches for testing and demos."""

import copy
from typing import Any, Dict, List

from liftpatch.core.schema.program import Program

SAMPLE_CATALOG = [
    "Back Squat",
    "Bench Press",
    "Bulgarian Split Squat",
    "Cable Fly",
    "Deadlift",
    "Face Pull",
    "Lat Pulldown",
    "Overhead Press",
    "Pull Up",
    "Romanian Deadlift",
    "Seated Cable Row",
    "Tricep Pushdown",
]

# Single push day: the smallest useful program
PUSH_PROGRAM: Dict[str, Any] = {
    "id": "prog-push",
    "name": "Push Focus",
    "weeks": [
        {
            "week_number": 1,
            "days": [
                {
                    "day_name": "Push",
                    "exercises": [
                        {
                            "exercise_name": "Bench Press",
                            "sets": "[3,4]",
                            "reps": "[6,8]",
                            "rir": None,
                            "rpe": None,
                            "notes": "",
                            "order": 1,
                        }
                    ],
                }
            ],
        }
    ],
}

# Three-week upper/lower block
UPPER_LOWER_PROGRAM: Dict[str, Any] = {
    "id": "prog-ul",
    "name": "Upper / Lower Block",
    "weeks": [
        {
            "week_number": number,
            "days": [
                {
                    "day_name": "Upper",
                    "exercises": [
                        {"exercise_name": "Bench Press", "sets": "3-4", "reps": "6-8",
                         "rir": "1-2", "rpe": None, "notes": "", "order": 1},
                        {"exercise_name": "Seated Cable Row", "sets": "3", "reps": "10-12",
                         "rir": "2", "rpe": None, "notes": "", "order": 2},
                        {"exercise_name": "Face Pull", "sets": "2", "reps": "15",
                         "rir": None, "rpe": None, "notes": "Slow eccentric", "order": 3},
                    ],
                },
                {
                    "day_name": "Lower",
                    "exercises": [
                        {"exercise_name": "Romanian Deadlift", "sets": "3", "reps": "8-10",
                         "rir": "2", "rpe": None, "notes": "", "order": 1},
                        {"exercise_name": "Back Squat", "sets": "4", "reps": "5",
                         "rir": None, "rpe": "7-8", "notes": "", "order": 2},
                    ],
                },
            ],
        }
        for number in (1, 2, 3)
    ],
}

# Squats to the front of every lower day, accessory volume trimmed
DEMO_BATCH: List[Dict[str, Any]] = [
    *[
        {"op": "reorder", "target": "exercise", "week_number": n, "day_name": "Lower",
         "exercise_name": "Back Squat", "order": 1}
        for n in (1, 2, 3)
    ],
    *[
        {"op": "edit", "target": "exercise", "week_number": n, "day_name": "Upper",
         "exercise_name": "Face Pull", "sets": "2", "reps": "12-15"}
        for n in (1, 2, 3)
    ],
    {"op": "delete", "target": "exercise", "week_number": 3, "day_name": "Upper",
     "exercise_name": "Seated Cable Row"},
]

# Full rebuild of the three-week block into a single week
RESET_BATCH: List[Dict[str, Any]] = [
    {"op": "delete", "target": "week", "week_number": 1},
    {"op": "delete", "target": "week", "week_number": 2},
    {"op": "delete", "target": "week", "week_number": 3},
    {"op": "add", "target": "week", "week_number": 1},
    {"op": "add", "target": "day", "week_number": 1, "day_name": "Day 1"},
]


def load_example(data: Dict[str, Any]) -> Program:
    """Build a fresh Program from one of the example dicts."""
    return Program.from_dict(copy.deepcopy(data))
