"""Tests for the patch applier."""

import pytest

from liftpatch.core.applier import apply_program_op, apply_program_patch
from liftpatch.core.errors import PatchApplyError
from liftpatch.core.schema import NumRange, Program, ProgramIndex, parse_operation
from liftpatch.examples import (
    DEMO_BATCH,
    PUSH_PROGRAM,
    RESET_BATCH,
    UPPER_LOWER_PROGRAM,
    load_example,
)


def _ops(raw):
    return [parse_operation(op) for op in raw]


def _day(program, week_number, day_name):
    return ProgramIndex(program).day(week_number, day_name)


def _orders(day):
    return [(e.exercise_name, e.order) for e in day.exercises]


@pytest.fixture
def push_program():
    return load_example(PUSH_PROGRAM)


@pytest.fixture
def block_program():
    return load_example(UPPER_LOWER_PROGRAM)


@pytest.fixture
def abc_program():
    return Program.from_dict({"id": "abc", "weeks": [{"week_number": 1, "days": [
        {"day_name": "Day A", "exercises": [
            {"exercise_name": "A", "order": 1},
            {"exercise_name": "B", "order": 2},
            {"exercise_name": "C", "order": 3},
        ]},
    ]}]})


class TestApplyProgramPatch:
    """Tests for apply_program_patch()."""

    def test_empty_batch_returns_unchanged_snapshot(self, block_program):
        before = block_program.to_serializable()
        result = apply_program_patch(block_program, [])
        assert result.ok
        assert result.applied == 0
        assert result.program.to_serializable() == before

    def test_edit_narrows_sets_and_keeps_reps(self, push_program):
        result = apply_program_patch(push_program, _ops([
            {"op": "edit", "target": "exercise", "week_number": 1, "day_name": "Push",
             "exercise_name": "Bench Press", "sets": "3"},
        ]))
        bench = _day(result.program, 1, "Push").exercises[0]
        assert bench.sets == NumRange(3, 3)
        assert bench.reps == NumRange(6, 8)
        assert result.program.to_serializable()["weeks"][0]["days"][0]["exercises"][0]["sets"] == "[3,3]"

    def test_edit_null_clears_field(self, block_program):
        result = apply_program_patch(block_program, _ops([
            {"op": "edit", "target": "exercise", "week_number": 1, "day_name": "Upper",
             "exercise_name": "Bench Press", "rir": None, "notes": "Paused"},
        ]))
        bench = _day(result.program, 1, "Upper").exercises[0]
        assert bench.rir is None
        assert bench.notes == "Paused"
        assert bench.sets == NumRange(3, 4)

    def test_original_snapshot_not_mutated(self, push_program):
        before = push_program.to_serializable()
        result = apply_program_patch(push_program, _ops([
            {"op": "delete", "target": "week", "week_number": 1},
        ]))
        assert result.program.weeks == []
        assert push_program.to_serializable() == before

    def test_untouched_entities_identical(self, block_program):
        before = block_program.to_serializable()
        result = apply_program_patch(block_program, _ops([
            {"op": "delete", "target": "exercise", "week_number": 2, "day_name": "Upper",
             "exercise_name": "Face Pull"},
        ]))
        after = result.program.to_serializable()
        assert after["weeks"][0] == before["weeks"][0]
        assert after["weeks"][2] == before["weeks"][2]
        assert after["weeks"][1]["days"][1] == before["weeks"][1]["days"][1]
        assert after["weeks"][1]["days"][0]["exercises"] == before["weeks"][1]["days"][0]["exercises"][:2]

    def test_delete_week_cascades(self, block_program):
        result = apply_program_patch(block_program, _ops([
            {"op": "delete", "target": "week", "week_number": 2},
        ]))
        assert result.program.week_numbers() == [1, 3]
        assert _day(result.program, 2, "Upper") is None

    def test_add_week_keeps_weeks_sorted(self, block_program):
        result = apply_program_patch(block_program, _ops([
            {"op": "delete", "target": "week", "week_number": 2},
            {"op": "add", "target": "week", "week_number": 5},
            {"op": "add", "target": "week", "week_number": 2},
        ]))
        assert result.program.week_numbers() == [1, 2, 3, 5]
        assert result.program.weeks[1].days == []

    def test_add_day_appends(self, block_program):
        result = apply_program_patch(block_program, _ops([
            {"op": "add", "target": "day", "week_number": 1, "day_name": "Arms"},
        ]))
        assert [d.day_name for d in result.program.weeks[0].days] == ["Upper", "Lower", "Arms"]

    def test_add_exercise_gets_next_order(self, push_program):
        result = apply_program_patch(push_program, _ops([
            {"op": "add", "target": "exercise", "week_number": 1, "day_name": "Push",
             "exercise_name": "Cable Fly", "sets": "2-3", "reps": "12-15", "rir": "1",
             "rpe": None, "notes": "Stretch at the bottom"},
        ]))
        day = _day(result.program, 1, "Push")
        assert _orders(day) == [("Bench Press", 1), ("Cable Fly", 2)]
        fly = day.exercises[1]
        assert fly.sets == NumRange(2, 3)
        assert fly.notes == "Stretch at the bottom"

    def test_add_after_delete_uses_max_order(self, abc_program):
        result = apply_program_patch(abc_program, _ops([
            {"op": "add", "target": "exercise", "week_number": 1, "day_name": "Day A",
             "exercise_name": "D", "sets": None, "reps": None, "rir": None, "rpe": None,
             "notes": ""},
            {"op": "delete", "target": "exercise", "week_number": 1, "day_name": "Day A",
             "exercise_name": "B"},
        ]))
        assert _orders(_day(result.program, 1, "Day A")) == [("A", 1), ("C", 3), ("D", 4)]

    def test_reorder_is_dense(self, abc_program):
        result = apply_program_patch(abc_program, _ops([
            {"op": "reorder", "target": "exercise", "week_number": 1, "day_name": "Day A",
             "exercise_name": "C", "order": 1},
        ]))
        assert _orders(_day(result.program, 1, "Day A")) == [("C", 1), ("A", 2), ("B", 3)]

    def test_reorder_to_end(self, abc_program):
        result = apply_program_patch(abc_program, _ops([
            {"op": "reorder", "target": "exercise", "week_number": 1, "day_name": "Day A",
             "exercise_name": "A", "order": 3},
        ]))
        assert _orders(_day(result.program, 1, "Day A")) == [("B", 1), ("C", 2), ("A", 3)]

    def test_reorder_closes_gaps_left_by_delete(self, abc_program):
        result = apply_program_patch(abc_program, _ops([
            {"op": "delete", "target": "exercise", "week_number": 1, "day_name": "Day A",
             "exercise_name": "A"},
            {"op": "reorder", "target": "exercise", "week_number": 1, "day_name": "Day A",
             "exercise_name": "B", "order": 1},
        ]))
        assert _orders(_day(result.program, 1, "Day A")) == [("B", 1), ("C", 2)]

    def test_reset_scenario(self, block_program):
        result = apply_program_patch(block_program, _ops(RESET_BATCH))
        assert result.ok
        assert result.program.week_numbers() == [1]
        assert [d.day_name for d in result.program.weeks[0].days] == ["Day 1"]
        assert result.program.weeks[0].days[0].exercises == []

    def test_deletes_run_first_regardless_of_input_order(self, block_program):
        result = apply_program_patch(block_program, _ops([
            {"op": "add", "target": "week", "week_number": 1},
            {"op": "delete", "target": "week", "week_number": 1},
        ]))
        assert result.ok
        assert result.program.week_numbers() == [1, 2, 3]
        assert result.program.weeks[0].days == []

    def test_demo_batch(self, block_program):
        result = apply_program_patch(block_program, _ops(DEMO_BATCH))
        assert result.ok
        assert result.applied == len(DEMO_BATCH)
        for week_number in (1, 2, 3):
            lower = _day(result.program, week_number, "Lower")
            assert _orders(lower) == [("Back Squat", 1), ("Romanian Deadlift", 2)]
        upper = _day(result.program, 3, "Upper")
        assert [e.exercise_name for e in upper.exercises] == ["Bench Press", "Face Pull"]
        assert upper.exercises[1].reps == NumRange(12, 15)


class TestAtomicity:
    """A failing batch leaves the snapshot untouched."""

    def test_failure_returns_original(self, push_program):
        before = push_program.to_serializable()
        result = apply_program_patch(push_program, _ops([
            {"op": "add", "target": "day", "week_number": 1, "day_name": "Pull"},
            {"op": "delete", "target": "exercise", "week_number": 1, "day_name": "Push",
             "exercise_name": "Deadlift"},
        ]))
        assert not result.ok
        assert result.program is push_program
        assert result.applied == 0
        assert push_program.to_serializable() == before

    def test_error_carries_input_index(self, push_program):
        result = apply_program_patch(push_program, _ops([
            {"op": "add", "target": "day", "week_number": 1, "day_name": "Pull"},
            {"op": "add", "target": "day", "week_number": 4, "day_name": "Legs"},
        ]))
        assert isinstance(result.error, PatchApplyError)
        assert result.error.index == 1
        assert result.error.operation.day_name == "Legs"

    def test_late_failure_discards_earlier_changes(self, block_program):
        before = block_program.to_serializable()
        result = apply_program_patch(block_program, _ops([
            {"op": "edit", "target": "exercise", "week_number": 1, "day_name": "Upper",
             "exercise_name": "Bench Press", "sets": "5"},
            {"op": "reorder", "target": "exercise", "week_number": 1, "day_name": "Lower",
             "exercise_name": "Back Squat", "order": 9},
        ]))
        assert not result.ok
        assert block_program.to_serializable() == before

    def test_add_existing_week_fails(self, push_program):
        result = apply_program_patch(push_program, _ops([
            {"op": "add", "target": "week", "week_number": 1},
        ]))
        assert "already exists" in str(result.error)


class TestApplyProgramOp:
    """Tests for apply_program_op() used directly through an index."""

    def test_edit_through_index(self, push_program):
        index = ProgramIndex(push_program)
        apply_program_op(index, parse_operation({
            "op": "edit", "target": "exercise", "week_number": 1, "day_name": "Push",
            "exercise_name": "Bench Press", "rpe": "8",
        }))
        assert push_program.weeks[0].days[0].exercises[0].rpe == NumRange(8, 8)

    def test_missing_day_raises(self, push_program):
        with pytest.raises(PatchApplyError, match="not found"):
            apply_program_op(ProgramIndex(push_program), parse_operation({
                "op": "delete", "target": "day", "week_number": 1, "day_name": "Pull",
            }))
