"""Program snapshot model: Program -> Weeks -> Days -> Exercises.

Entities are addressed by composite key rather than surrogate id:

- a Week by ``week_number``
- a Day by ``(week_number, day_name)``
- an Exercise by ``(week_number, day_name, exercise_name)``

Surrogate ids from the backing store are carried through untouched so a
persisted snapshot can be mapped back to table rows, but nothing in the
patch protocol reads them.

JSON shape::

    {
      "id": "prog-1",
      "name": "Hypertrophy Block",
      "weeks": [
        {"week_number": 1, "days": [
          {"day_name": "Push", "exercises": [
            {"exercise_name": "Bench Press", "sets": "[3,4]", "reps": "[6,8]",
             "rir": null, "rpe": null, "notes": "", "order": 1}
          ]}
        ]}
      ]
    }
"""

import bisect
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from liftpatch.core.schema.ranges import NumRange, parse_range, range_to_json

WeekKey = int
DayKey = Tuple[int, str]
ExerciseKey = Tuple[int, str, str]


@dataclass
class Exercise:
    """One prescribed exercise line within a day.

    Attributes:
        exercise_name: Catalog name of the exercise
        sets: Set count range (or None)
        reps: Rep range (or None)
        rir: Reps-in-reserve range (or None)
        rpe: Rate-of-perceived-exertion range (or None)
        notes: Free-text coaching notes
        order: 1-based position within the day
        id: Optional surrogate id from the backing store
    """

    exercise_name: str
    sets: Optional[NumRange] = None
    reps: Optional[NumRange] = None
    rir: Optional[NumRange] = None
    rpe: Optional[NumRange] = None
    notes: str = ""
    order: int = 1
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "exercise_name": self.exercise_name,
            "sets": range_to_json(self.sets),
            "reps": range_to_json(self.reps),
            "rir": range_to_json(self.rir),
            "rpe": range_to_json(self.rpe),
            "notes": self.notes,
            "order": self.order,
        }
        if self.id is not None:
            data["id"] = self.id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_order: int = 1) -> "Exercise":
        order = data.get("order")
        if order is None:
            order = default_order
        elif isinstance(order, bool) or not isinstance(order, int) or order < 1:
            raise ValueError(
                f"order of {data.get('exercise_name')!r} must be a positive integer, got {order!r}"
            )
        return cls(
            exercise_name=data["exercise_name"],
            sets=parse_range(data.get("sets")),
            reps=parse_range(data.get("reps")),
            rir=parse_range(data.get("rir")),
            rpe=parse_range(data.get("rpe")),
            notes=data.get("notes") or "",
            order=order,
            id=data.get("id"),
        )


@dataclass
class Day:
    """Named training day holding exercises sorted by ``order``."""

    day_name: str
    exercises: List[Exercise] = field(default_factory=list)
    id: Optional[str] = None

    def max_order(self) -> int:
        return max((e.order for e in self.exercises), default=0)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "day_name": self.day_name,
            "exercises": [e.to_dict() for e in self.exercises],
        }
        if self.id is not None:
            data["id"] = self.id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Day":
        exercises = [
            Exercise.from_dict(e, default_order=i)
            for i, e in enumerate(data.get("exercises") or [], start=1)
        ]
        names = [e.exercise_name for e in exercises]
        if len(names) != len(set(names)):
            raise ValueError(f"Day {data['day_name']!r} lists the same exercise twice")
        exercises.sort(key=lambda e: e.order)
        return cls(day_name=data["day_name"], exercises=exercises, id=data.get("id"))


@dataclass
class Week:
    """Numbered week holding days in insertion order."""

    week_number: int
    days: List[Day] = field(default_factory=list)
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "week_number": self.week_number,
            "days": [d.to_dict() for d in self.days],
        }
        if self.id is not None:
            data["id"] = self.id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Week":
        week_number = data["week_number"]
        if isinstance(week_number, bool) or not isinstance(week_number, int) or week_number < 1:
            raise ValueError(f"week_number must be a positive integer, got {week_number!r}")
        days = [Day.from_dict(d) for d in data.get("days") or []]
        names = [d.day_name for d in days]
        if len(names) != len(set(names)):
            raise ValueError(f"Week {week_number} has duplicate day names")
        return cls(week_number=week_number, days=days, id=data.get("id"))


@dataclass
class Program:
    """Full snapshot of one training program.

    Attributes:
        id: Program identifier
        name: Display name
        weeks: Weeks sorted by week_number
    """

    id: Optional[str] = None
    name: str = ""
    weeks: List[Week] = field(default_factory=list)

    def to_serializable(self) -> Dict[str, Any]:
        """Convert the snapshot to its JSON form."""
        return {
            "id": self.id,
            "name": self.name,
            "weeks": [w.to_dict() for w in self.weeks],
        }

    def to_dict(self) -> Dict[str, Any]:
        return self.to_serializable()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Program":
        """Build a snapshot from its JSON form.

        Raises:
            ValueError: If composite keys are not unique
            KeyError: If a required key is missing
        """
        weeks = [Week.from_dict(w) for w in data.get("weeks") or []]
        numbers = [w.week_number for w in weeks]
        if len(numbers) != len(set(numbers)):
            raise ValueError("Program has duplicate week numbers")
        weeks.sort(key=lambda w: w.week_number)
        return cls(id=data.get("id"), name=data.get("name") or "", weeks=weeks)

    def week_numbers(self) -> List[int]:
        return [w.week_number for w in self.weeks]


class ProgramIndex:
    """Composite-key index over a live Program.

    Built once per request, then kept in step with every structural change
    made through it, so each operation resolves its target with a dict
    lookup instead of walking the tree.

    Example:
        >>> index = ProgramIndex(program)
        >>> index.exercise(1, "Push", "Bench Press").sets
        NumRange(lower=3, upper=4, lower_inc=True, upper_inc=True)
    """

    def __init__(self, program: Program):
        self.program = program
        self.weeks: Dict[WeekKey, Week] = {}
        self.days: Dict[DayKey, Day] = {}
        self.exercises: Dict[ExerciseKey, Exercise] = {}
        for week in program.weeks:
            self._index_week(week)

    def _index_week(self, week: Week) -> None:
        self.weeks[week.week_number] = week
        for day in week.days:
            self._index_day(week.week_number, day)

    def _index_day(self, week_number: int, day: Day) -> None:
        self.days[(week_number, day.day_name)] = day
        for exercise in day.exercises:
            self.exercises[(week_number, day.day_name, exercise.exercise_name)] = exercise

    def week(self, week_number: int) -> Optional[Week]:
        return self.weeks.get(week_number)

    def day(self, week_number: int, day_name: str) -> Optional[Day]:
        return self.days.get((week_number, day_name))

    def exercise(self, week_number: int, day_name: str, exercise_name: str) -> Optional[Exercise]:
        return self.exercises.get((week_number, day_name, exercise_name))

    def insert_week(self, week: Week) -> None:
        """Insert a week keeping the program sorted by week_number."""
        numbers = self.program.week_numbers()
        self.program.weeks.insert(bisect.bisect_left(numbers, week.week_number), week)
        self._index_week(week)

    def remove_week(self, week_number: int) -> Week:
        """Remove a week and everything under it."""
        week = self.weeks.pop(week_number)
        self.program.weeks.remove(week)
        for day in week.days:
            self._forget_day(week_number, day)
        return week

    def append_day(self, week_number: int, day: Day) -> None:
        self.weeks[week_number].days.append(day)
        self._index_day(week_number, day)

    def remove_day(self, week_number: int, day_name: str) -> Day:
        """Remove a day and its exercises."""
        day = self.days[(week_number, day_name)]
        self.weeks[week_number].days.remove(day)
        self._forget_day(week_number, day)
        return day

    def _forget_day(self, week_number: int, day: Day) -> None:
        self.days.pop((week_number, day.day_name), None)
        for exercise in day.exercises:
            self.exercises.pop((week_number, day.day_name, exercise.exercise_name), None)

    def append_exercise(self, week_number: int, day_name: str, exercise: Exercise) -> None:
        self.days[(week_number, day_name)].exercises.append(exercise)
        self.exercises[(week_number, day_name, exercise.exercise_name)] = exercise

    def remove_exercise(self, week_number: int, day_name: str, exercise_name: str) -> Exercise:
        exercise = self.exercises.pop((week_number, day_name, exercise_name))
        self.days[(week_number, day_name)].exercises.remove(exercise)
        return exercise
