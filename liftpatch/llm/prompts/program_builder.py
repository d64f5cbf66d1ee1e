"""Program-builder prompt engineering for the LLM adapter.

This module contains the domain knowledge handed to the model:
- The operation vocabulary and response contract
- The reset and ordering rules the server will not repair
- Context blocks: exercise catalog, current snapshot, conversation summary

Layer 3 of LLM architecture: Domain-specific prompt logic.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from liftpatch.core.schema.program import Program

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """
You are a strength and conditioning coach's assistant. You change training
programs by emitting small, deterministic edit operations.

Each request gives you:
- AVAILABLE EXERCISES: the only exercise names you may use
- CURRENT PROGRAM STATE: the program as it exists right now
- CONVERSATION SUMMARY (optional): context from earlier sessions

## Response format

Return ONLY a JSON object, in exactly one of these two shapes:

{"type": "question", "message": "<clarifying question>"}

{"type": "program", "message": "<one or two sentence summary>", "operations": [ ... ]}

## Modification model

- Return operations only, never the whole program.
- Anything you do not reference is kept as it is.
- Nothing is deleted unless you delete it explicitly.
"""

OPERATION_DOCS = """
## Operations

Every operation has "op" (add | edit | delete | reorder) and
"target" (week | day | exercise). Only these combinations exist:

1. {"op": "add", "target": "week", "week_number": 1}
2. {"op": "delete", "target": "week", "week_number": 3}
3. {"op": "add", "target": "day", "week_number": 1, "day_name": "Push Day"}
4. {"op": "delete", "target": "day", "week_number": 2, "day_name": "Recovery"}
5. add exercise - every field is required:
   {"op": "add", "target": "exercise", "week_number": 1, "day_name": "Push Day",
    "exercise_name": "Bench Press", "sets": "3-4", "reps": "6-8",
    "rir": "1-2", "rpe": null, "notes": ""}
6. edit exercise - only the fields that change:
   {"op": "edit", "target": "exercise", "week_number": 1, "day_name": "Push Day",
    "exercise_name": "Bench Press", "sets": "3"}
7. {"op": "delete", "target": "exercise", "week_number": 1, "day_name": "Push Day",
    "exercise_name": "Cable Fly"}
8. reorder exercise - move to a 1-based position within its day:
   {"op": "reorder", "target": "exercise", "week_number": 1, "day_name": "Push Day",
    "exercise_name": "Back Squat", "order": 1}

sets, reps, rir and rpe are a range "low-high", a single number "3", or null.
Do not add fields that are not listed for an operation.
"""

RULES = """
## Rules

- Deletes are applied before every add, edit and reorder. Do not add to or
  edit anything that the same batch deletes.
- To clear, reset or rebuild the program, delete EVERY week listed in
  CURRENT PROGRAM STATE, then add the new structure. The server never infers
  missing deletes. If you cannot list every week, ask a question instead.
- To move exercises, use reorder. Do not delete and re-add.
- Never invent exercises; names must match AVAILABLE EXERCISES exactly.
- Never add a week or day that already exists.
- Apply a change to every relevant week unless the user limits the scope.
- If the request is ambiguous, ask a question instead of guessing.
- Use the smallest number of operations that does the job.
"""


def format_catalog(catalog: Iterable[str]) -> str:
    """Render the exercise catalog as a bullet list."""
    names = sorted(catalog)
    if not names:
        return "(the catalog is empty - no exercises can be added)"
    return "\n".join(f"- {name}" for name in names)


def program_context(program: Optional[Program]) -> Optional[Dict[str, Any]]:
    """Snapshot as shown to the model: weeks -> days -> exercises, shorthand ranges.

    Surrogate ids are left out; the model addresses entities by name.
    """
    if program is None:
        return None
    return {
        "weeks": [
            {
                "week_number": week.week_number,
                "days": [
                    {
                        "day_name": day.day_name,
                        "exercises": [
                            {
                                "exercise_name": e.exercise_name,
                                "order": e.order,
                                "sets": e.sets.to_display() if e.sets else None,
                                "reps": e.reps.to_display() if e.reps else None,
                                "rir": e.rir.to_display() if e.rir else None,
                                "rpe": e.rpe.to_display() if e.rpe else None,
                                "notes": e.notes,
                            }
                            for e in day.exercises
                        ],
                    }
                    for day in week.days
                ],
            }
            for week in program.weeks
        ]
    }


def build_system_prompt(
    program: Optional[Program],
    catalog: Iterable[str],
    summary: Optional[str] = None,
) -> str:
    """Build the system prompt with catalog, snapshot and summary context.

    Args:
        program: Current snapshot (None for a program with no stored state)
        catalog: Allowed exercise names
        summary: Optional conversation summary

    Returns:
        Prompt string for the system message
    """
    sections = [SYSTEM_PROMPT.strip(), OPERATION_DOCS.strip(), RULES.strip()]

    sections.append(
        "## AVAILABLE EXERCISES\n\n"
        + format_catalog(catalog)
        + "\n\nUse the EXACT names above (case-sensitive)."
    )

    context = program_context(program)
    if context is not None:
        sections.append(
            "## CURRENT PROGRAM STATE\n\n" + json.dumps(context, indent=2)
        )
    else:
        sections.append("## CURRENT PROGRAM STATE\n\n(empty program - no weeks yet)")

    if summary and summary.strip():
        sections.append(
            "## CONVERSATION SUMMARY\n\n"
            + summary.strip()
            + "\n\nUse this to remember the coach's preferences and earlier decisions."
        )

    prompt = "\n\n".join(sections)
    logger.debug(f"Built program-builder system prompt ({len(prompt)} chars)")
    return prompt


def build_messages(
    program: Optional[Program],
    catalog: Iterable[str],
    history: Iterable[Any],
    instruction: str,
    summary: Optional[str] = None,
) -> List[Dict[str, str]]:
    """Assemble the full chat message list for one turn.

    Args:
        program: Current snapshot
        catalog: Allowed exercise names
        history: Prior turns, oldest first (objects with role/content,
                 or dicts with those keys)
        instruction: The coach's new message
        summary: Optional conversation summary

    Returns:
        Messages for the chat completion request
    """
    messages = [{"role": "system", "content": build_system_prompt(program, catalog, summary)}]
    for turn in history:
        role = turn["role"] if isinstance(turn, dict) else turn.role
        content = turn["content"] if isinstance(turn, dict) else turn.content
        if role not in ("user", "assistant"):
            continue
        messages.append({"role": role, "content": content})
    messages.append({"role": "user", "content": instruction})
    return messages
