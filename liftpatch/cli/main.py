"""LiftPatch CLI - Command-line interface for program patches.

This module provides the main CLI entrypoint for LiftPatch, allowing
trainers to validate and apply operation batches to program files, and to
run program-builder chat turns against a stored program.
"""

import argparse
import json
import logging
import sys
from typing import Any, List

from liftpatch.core.applier import apply_program_patch
from liftpatch.core.catalog import load_catalog
from liftpatch.core.config import get_config_value
from liftpatch.core.documents import dump_yaml, load_document, write_document
from liftpatch.core.schema.program import Program
from liftpatch.core.store import Turn
from liftpatch.core.validator import validate_batch

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = ".liftpatch-programs.json"


def main(argv: List[str] = None):
    """Main CLI entrypoint for LiftPatch."""
    parser = argparse.ArgumentParser(
        prog="liftpatch",
        description="LiftPatch - structured edits for training programs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check a batch against a program without applying it
  liftpatch validate program.json ops.json --catalog exercises.txt

  # Apply a batch and write the new snapshot
  liftpatch apply program.json ops.json --catalog exercises.txt --out program.v2.json

  # Store a program, then edit it through the chat
  liftpatch import program.json --store programs.json
  liftpatch chat prog-1 "Put squats first on every lower day" --store programs.json --catalog exercises.txt

  # Render a snapshot as YAML
  liftpatch show program.json

Note:
  The chat command needs an OpenAI key: {'openai': {'api_key': 'sk-...'}} in
  config.json, or OPENAI_API_KEY in the environment.
""",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    validate_parser = subparsers.add_parser("validate", help="Validate an operation batch")
    validate_parser.add_argument("program", help="Program snapshot file (.json or .yaml)")
    validate_parser.add_argument("operations", help="Operation batch file (.json or .yaml)")
    validate_parser.add_argument("--catalog", required=True, help="Exercise catalog file")
    validate_parser.add_argument("--json", action="store_true", help="Print violations as JSON")
    validate_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    apply_parser = subparsers.add_parser("apply", help="Validate and apply an operation batch")
    apply_parser.add_argument("program", help="Program snapshot file (.json or .yaml)")
    apply_parser.add_argument("operations", help="Operation batch file (.json or .yaml)")
    apply_parser.add_argument("--catalog", required=True, help="Exercise catalog file")
    apply_parser.add_argument("--out", help="Write the new snapshot here (default: print JSON)")
    apply_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    show_parser = subparsers.add_parser("show", help="Render a program snapshot as YAML")
    show_parser.add_argument("program", help="Program snapshot file (.json or .yaml)")
    show_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    import_parser = subparsers.add_parser("import", help="Store a program snapshot")
    import_parser.add_argument("program", help="Program snapshot file with an 'id'")
    import_parser.add_argument(
        "--store", help=f"Program store file (default: from config.json or {DEFAULT_STORE_PATH})"
    )
    import_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    chat_parser = subparsers.add_parser("chat", help="Run one program-builder chat turn")
    chat_parser.add_argument("program_id", help="Stored program id")
    chat_parser.add_argument("instruction", help="What to change, in plain words")
    chat_parser.add_argument(
        "--store", help=f"Program store file (default: from config.json or {DEFAULT_STORE_PATH})"
    )
    chat_parser.add_argument(
        "--supabase",
        action="store_true",
        help="Use the hosted Supabase tables instead of a store file",
    )
    chat_parser.add_argument(
        "--catalog", help="Exercise catalog file (required unless --supabase)"
    )
    chat_parser.add_argument("--openai-model", help="OpenAI model (overrides config.json)")
    chat_parser.add_argument("--timeout", type=float, help="Model call deadline in seconds")
    chat_parser.add_argument(
        "--no-history", action="store_true", help="Do not send or record conversation history"
    )
    chat_parser.add_argument("--json", action="store_true", help="Print the turn result as JSON")
    chat_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    demo_parser = subparsers.add_parser("demo", help="Apply a sample batch to a sample program")
    demo_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)

    # Setup logging
    if getattr(args, "verbose", False):
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    if args.command == "validate":
        return cmd_validate(args)
    elif args.command == "apply":
        return cmd_apply(args)
    elif args.command == "show":
        return cmd_show(args)
    elif args.command == "import":
        return cmd_import(args)
    elif args.command == "chat":
        return cmd_chat(args)
    elif args.command == "demo":
        return cmd_demo(args)
    else:
        parser.print_help()
        return 1


def load_operations(path: str) -> Any:
    """Read a batch file: a list, ``{"operations": [...]}`` or a full model reply."""
    data = load_document(path)
    if isinstance(data, dict) and "operations" in data:
        return data["operations"]
    return data


def _load_inputs(args):
    program = Program.from_dict(load_document(args.program))
    operations = load_operations(args.operations)
    catalog = load_catalog(args.catalog)
    return program, operations, catalog


def _print_violations(violations) -> None:
    for v in violations:
        print(f"  - {v}")


def cmd_validate(args):
    """Handle validate command."""
    try:
        program, operations, catalog = _load_inputs(args)
    except (OSError, ValueError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result = validate_batch(operations, program, catalog)
    if args.json:
        print(json.dumps(
            {"accepted": result.accepted, "violations": [v.to_dict() for v in result.violations]},
            indent=2,
            default=str,
        ))
    elif result.accepted:
        print(f"✓ Batch accepted ({len(result.operations)} operations)")
    else:
        print(f"❌ Batch rejected ({len(result.violations)} violations):")
        _print_violations(result.violations)
    return 0 if result.accepted else 1


def cmd_apply(args):
    """Handle apply command."""
    try:
        program, operations, catalog = _load_inputs(args)
    except (OSError, ValueError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result = validate_batch(operations, program, catalog)
    if not result.accepted:
        print(f"❌ Batch rejected ({len(result.violations)} violations):", file=sys.stderr)
        for v in result.violations:
            print(f"  - {v}", file=sys.stderr)
        return 1

    applied = apply_program_patch(program, result.operations)
    if not applied.ok:
        print(f"Error: {applied.error}", file=sys.stderr)
        return 1

    snapshot = applied.program.to_serializable()
    if args.out:
        write_document(args.out, snapshot)
        print(f"✓ Applied {applied.applied} operations; wrote {args.out}")
    else:
        print(json.dumps(snapshot, indent=2))
    return 0


def cmd_show(args):
    """Handle show command."""
    try:
        program = Program.from_dict(load_document(args.program))
    except (OSError, ValueError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(dump_yaml(program.to_serializable()), end="")
    return 0


def _file_store(path):
    from liftpatch.core.store import JsonFileProgramStore

    return JsonFileProgramStore(
        path or get_config_value(["store", "path"], default=DEFAULT_STORE_PATH)
    )


def cmd_import(args):
    """Handle import command."""
    try:
        program = Program.from_dict(load_document(args.program))
        store = _file_store(args.store)
        store.create(program)
    except (OSError, ValueError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"✓ Stored program {program.id} in {store.file_path}")
    return 0


def cmd_chat(args):
    """Handle chat command."""
    from liftpatch.core.orchestrator import ProgramBuilder
    from liftpatch.llm.adapter import LLMAdapter

    try:
        if args.supabase:
            from liftpatch.core.store import SupabaseProgramStore

            store = SupabaseProgramStore.from_config()
            catalog = load_catalog(args.catalog) if args.catalog else store.fetch_catalog()
        else:
            if not args.catalog:
                print("Error: --catalog is required without --supabase", file=sys.stderr)
                return 1
            store = _file_store(args.store)
            catalog = load_catalog(args.catalog)

        llm_config = {}
        if args.openai_model:
            llm_config["model"] = args.openai_model
        adapter = LLMAdapter(**llm_config)
    except (OSError, ValueError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    history = []
    summary = None
    if not args.no_history:
        try:
            conversation = store.load_conversation(args.program_id)
        except (OSError, ValueError, KeyError) as e:
            print(f"Error: could not read conversation: {e}", file=sys.stderr)
            return 1
        history = conversation.turns
        summary = conversation.summary

    builder = ProgramBuilder(store, adapter, catalog, timeout=args.timeout)
    result = builder.run_turn(args.program_id, args.instruction, history=history, summary=summary)

    if not args.no_history and result.version is not None:
        try:
            store.append_turns(
                args.program_id,
                [Turn("user", args.instruction), Turn("assistant", result.message)],
            )
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"Could not record conversation: {e}")

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        print(result.message)
        if result.kind == "program":
            print(f"\n✓ Saved version {result.version}")
        elif result.violations:
            print("\nRejected operations:")
            _print_violations(result.violations)
    return 0 if result.ok else 1


def cmd_demo(args):
    """Handle demo command."""
    from liftpatch.examples import DEMO_BATCH, SAMPLE_CATALOG, UPPER_LOWER_PROGRAM, load_example

    program = load_example(UPPER_LOWER_PROGRAM)
    print("Running LiftPatch demo with example program...")
    print(f"Program: {program.name} ({len(program.weeks)} weeks)")
    print(f"Batch: {len(DEMO_BATCH)} operations")
    print()

    result = validate_batch(DEMO_BATCH, program, SAMPLE_CATALOG)
    if not result.accepted:
        _print_violations(result.violations)
        return 1

    applied = apply_program_patch(program, result.operations)
    if not applied.ok:
        print(f"Error: {applied.error}", file=sys.stderr)
        return 1

    print(dump_yaml(applied.program.to_serializable()), end="")
    print(f"\n✓ Applied {applied.applied} operations")
    return 0


if __name__ == "__main__":
    sys.exit(main())
