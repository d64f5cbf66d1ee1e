"""Tests for program-builder prompt construction."""

import json

from liftpatch.core.store import Turn
from liftpatch.examples import SAMPLE_CATALOG, UPPER_LOWER_PROGRAM, load_example
from liftpatch.llm.prompts.program_builder import (
    build_messages,
    build_system_prompt,
    format_catalog,
    program_context,
)


class TestProgramBuilderPrompts:
    """Tests for the program-builder prompt."""

    def test_prompt_lists_operations_and_rules(self):
        prompt = build_system_prompt(load_example(UPPER_LOWER_PROGRAM), SAMPLE_CATALOG)

        assert '"type": "question"' in prompt
        assert '"op": "reorder"' in prompt
        assert "delete EVERY week" in prompt
        assert "## AVAILABLE EXERCISES" in prompt
        assert "- Bulgarian Split Squat" in prompt

    def test_prompt_embeds_snapshot_with_shorthand_ranges(self):
        prompt = build_system_prompt(load_example(UPPER_LOWER_PROGRAM), SAMPLE_CATALOG)
        state = prompt.split("## CURRENT PROGRAM STATE\n\n", 1)[1]
        context = json.loads(state)

        assert [w["week_number"] for w in context["weeks"]] == [1, 2, 3]
        bench = context["weeks"][0]["days"][0]["exercises"][0]
        assert bench["sets"] == "3-4"
        assert bench["rpe"] is None
        assert "id" not in bench

    def test_empty_program(self):
        prompt = build_system_prompt(None, SAMPLE_CATALOG)
        assert "(empty program - no weeks yet)" in prompt

    def test_summary_included_only_when_present(self):
        program = load_example(UPPER_LOWER_PROGRAM)
        assert "CONVERSATION SUMMARY" not in build_system_prompt(program, SAMPLE_CATALOG, "  ")
        prompt = build_system_prompt(program, SAMPLE_CATALOG, "Coach avoids deadlifts")
        assert "## CONVERSATION SUMMARY" in prompt
        assert "Coach avoids deadlifts" in prompt

    def test_format_catalog(self):
        assert format_catalog(["Pull Up", "Deadlift"]) == "- Deadlift\n- Pull Up"
        assert "empty" in format_catalog([])

    def test_program_context_none(self):
        assert program_context(None) is None


class TestBuildMessages:
    """Tests for build_messages()."""

    def test_history_order_and_roles(self):
        history = [
            Turn("user", "Add face pulls"),
            {"role": "assistant", "content": "Done."},
            {"role": "system", "content": "ignored"},
        ]
        messages = build_messages(None, SAMPLE_CATALOG, history, "Now move them first")

        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[1]["content"] == "Add face pulls"
        assert messages[-1]["content"] == "Now move them first"
