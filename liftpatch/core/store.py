"""Program snapshot persistence with optimistic concurrency.

Every stored snapshot has an integer version. A save names the version it
was derived from; if another writer got there first the save fails with
StaleSnapshotError instead of silently overwriting their change.

Backends:
- InMemoryProgramStore: process-local, for tests and demos
- JsonFileProgramStore: one git-friendly JSON document on disk
- SupabaseProgramStore: the hosted Postgres tables the dashboard uses

Each backend also keeps a short conversation log per program so the chat
can send prior turns back to the model.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from liftpatch.core.errors import ProgramNotFoundError, StaleSnapshotError
from liftpatch.core.schema.program import Program

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 20


@dataclass
class StoredProgram:
    """A snapshot together with the version it was read at."""

    program: Program
    version: int


@dataclass
class Turn:
    """One chat message: role is "user" or "assistant"."""

    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Turn":
        return cls(role=data["role"], content=data["content"])


@dataclass
class Conversation:
    """Conversation log for one program.

    Attributes:
        turns: Most recent turns, oldest first
        summary: Optional compressed summary of older context
    """

    turns: List[Turn] = field(default_factory=list)
    summary: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"turns": [t.to_dict() for t in self.turns], "summary": self.summary}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Conversation":
        if not data:
            return cls()
        return cls(
            turns=[Turn.from_dict(t) for t in data.get("turns") or []],
            summary=data.get("summary"),
        )

    def extended(
        self, turns: Iterable[Turn], summary: Optional[str] = None, max_turns: int = DEFAULT_MAX_TURNS
    ) -> "Conversation":
        """Return a copy with ``turns`` appended, trimmed to the newest ``max_turns``."""
        combined = self.turns + list(turns)
        return Conversation(
            turns=combined[-max_turns:] if max_turns > 0 else combined,
            summary=summary if summary is not None else self.summary,
        )


class ProgramStore(Protocol):
    """Storage interface used by the orchestrator."""

    def load(self, program_id: str) -> StoredProgram:
        """Read the current snapshot and its version.

        Raises:
            ProgramNotFoundError: If the program does not exist
        """
        ...

    def save(self, program_id: str, program: Program, expected_version: int) -> int:
        """Write a new snapshot if the stored version still equals ``expected_version``.

        Returns:
            The new version

        Raises:
            StaleSnapshotError: If the stored version moved on
            ProgramNotFoundError: If the program does not exist
        """
        ...

    def load_conversation(self, program_id: str) -> Conversation:
        ...

    def append_turns(
        self, program_id: str, turns: Iterable[Turn], summary: Optional[str] = None
    ) -> Conversation:
        ...


class InMemoryProgramStore:
    """Dict-backed store for tests and demos.

    Example:
        >>> store = InMemoryProgramStore()
        >>> store.create(program)
        1
        >>> store.load(program.id).version
        1
    """

    def __init__(self, max_turns: int = DEFAULT_MAX_TURNS):
        self.max_turns = max_turns
        self._programs: Dict[str, Dict[str, Any]] = {}
        self._conversations: Dict[str, Conversation] = {}
        self.writes = 0

    def create(self, program: Program) -> int:
        if not program.id:
            raise ValueError("Program needs an id to be stored")
        self._programs[program.id] = {"version": 1, "snapshot": program.to_serializable()}
        return 1

    def load(self, program_id: str) -> StoredProgram:
        record = self._programs.get(program_id)
        if record is None:
            raise ProgramNotFoundError(f"Program {program_id} not found")
        return StoredProgram(Program.from_dict(record["snapshot"]), record["version"])

    def save(self, program_id: str, program: Program, expected_version: int) -> int:
        record = self._programs.get(program_id)
        if record is None:
            raise ProgramNotFoundError(f"Program {program_id} not found")
        if record["version"] != expected_version:
            raise StaleSnapshotError(program_id, expected_version, record["version"])
        record["version"] = expected_version + 1
        record["snapshot"] = program.to_serializable()
        self.writes += 1
        return record["version"]

    def load_conversation(self, program_id: str) -> Conversation:
        return self._conversations.get(program_id, Conversation())

    def append_turns(
        self, program_id: str, turns: Iterable[Turn], summary: Optional[str] = None
    ) -> Conversation:
        conversation = self.load_conversation(program_id).extended(turns, summary, self.max_turns)
        self._conversations[program_id] = conversation
        return conversation


class JsonFileProgramStore:
    """Store backed by a single pretty-printed JSON document.

    The file is re-read on every call so that two processes sharing it still
    see each other's writes and the version check stays meaningful.

    File layout::

        {
          "version": "1.0",
          "programs": {"<id>": {"version": 3, "updated_at": "...", "snapshot": {...}}},
          "conversations": {"<id>": {"turns": [...], "summary": null}}
        }
    """

    FORMAT_VERSION = "1.0"

    def __init__(self, file_path: str, max_turns: int = DEFAULT_MAX_TURNS):
        """Initialize the store.

        Args:
            file_path: Path to the JSON document (created on first write)
            max_turns: Conversation turns kept per program
        """
        self.file_path = file_path
        self.max_turns = max_turns

    def _read(self) -> Dict[str, Any]:
        path = Path(self.file_path)
        if not path.exists():
            return {"version": self.FORMAT_VERSION, "programs": {}, "conversations": {}}
        data = json.loads(path.read_text(encoding="utf-8"))
        data.setdefault("programs", {})
        data.setdefault("conversations", {})
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        # Pretty-print for git-friendly diffs
        json_str = json.dumps(data, indent=2, sort_keys=True)
        path = Path(self.file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json_str, encoding="utf-8")
        logger.debug(f"Saved program store to {self.file_path}")

    def program_ids(self) -> List[str]:
        return sorted(self._read()["programs"])

    def create(self, program: Program) -> int:
        """Insert a new program (or replace an existing one) at version 1."""
        if not program.id:
            raise ValueError("Program needs an id to be stored")
        data = self._read()
        data["programs"][program.id] = {
            "version": 1,
            "updated_at": datetime.now().isoformat(),
            "snapshot": program.to_serializable(),
        }
        self._write(data)
        logger.info(f"Stored program {program.id} in {self.file_path}")
        return 1

    def load(self, program_id: str) -> StoredProgram:
        record = self._read()["programs"].get(program_id)
        if record is None:
            raise ProgramNotFoundError(f"Program {program_id} not found in {self.file_path}")
        return StoredProgram(Program.from_dict(record["snapshot"]), record["version"])

    def save(self, program_id: str, program: Program, expected_version: int) -> int:
        data = self._read()
        record = data["programs"].get(program_id)
        if record is None:
            raise ProgramNotFoundError(f"Program {program_id} not found in {self.file_path}")
        if record["version"] != expected_version:
            raise StaleSnapshotError(program_id, expected_version, record["version"])
        record["version"] = expected_version + 1
        record["updated_at"] = datetime.now().isoformat()
        record["snapshot"] = program.to_serializable()
        self._write(data)
        logger.info(f"Saved program {program_id} at version {record['version']}")
        return record["version"]

    def load_conversation(self, program_id: str) -> Conversation:
        return Conversation.from_dict(self._read()["conversations"].get(program_id))

    def append_turns(
        self, program_id: str, turns: Iterable[Turn], summary: Optional[str] = None
    ) -> Conversation:
        data = self._read()
        current = Conversation.from_dict(data["conversations"].get(program_id))
        conversation = current.extended(turns, summary, self.max_turns)
        data["conversations"][program_id] = conversation.to_dict()
        self._write(data)
        return conversation


class SupabaseProgramStore:
    """Store backed by the hosted Postgres tables (via the Supabase client).

    Tables:
    - ``programs``: ``id``, ``name``, ``snapshot`` (jsonb), ``version`` (int)
    - ``ai_conversations``: ``program_id`` (unique), ``turns`` (jsonb), ``summary``
    - ``exercise_library``: ``id``, ``name``

    The version check is a conditional update (``... WHERE id = ? AND
    version = ?``); an empty result means another writer won.
    """

    def __init__(self, client: Any, max_turns: int = DEFAULT_MAX_TURNS):
        """
        Initialize store with Supabase client.

        Args:
            client: Authenticated supabase.Client
            max_turns: Conversation turns kept per program
        """
        self._client = client
        self.max_turns = max_turns

    @classmethod
    def from_config(cls) -> "SupabaseProgramStore":
        """Create a client from config.json / SUPABASE_URL and SUPABASE_KEY."""
        from supabase import create_client

        from liftpatch.core.config import get_config_value

        url = get_config_value(["supabase", "url"])
        key = get_config_value(["supabase", "key"])
        if not url or not key:
            raise ValueError(
                "Supabase credentials required. Set in config.json: "
                "{'supabase': {'url': '...', 'key': '...'}}"
            )
        return cls(create_client(url, key))

    def _fetch_record(self, program_id: str) -> Dict[str, Any]:
        response = (
            self._client.table("programs")
            .select("id, name, snapshot, version")
            .eq("id", program_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            raise ProgramNotFoundError(f"Program {program_id} not found")
        return response.data[0]

    def load(self, program_id: str) -> StoredProgram:
        record = self._fetch_record(program_id)
        snapshot = dict(record.get("snapshot") or {})
        snapshot.setdefault("id", record["id"])
        snapshot.setdefault("name", record.get("name") or "")
        return StoredProgram(Program.from_dict(snapshot), record["version"])

    def save(self, program_id: str, program: Program, expected_version: int) -> int:
        new_version = expected_version + 1
        response = (
            self._client.table("programs")
            .update({"snapshot": program.to_serializable(), "version": new_version})
            .eq("id", program_id)
            .eq("version", expected_version)
            .execute()
        )
        if not response.data:
            current = self._fetch_record(program_id)
            raise StaleSnapshotError(program_id, expected_version, current["version"])
        logger.info(f"Saved program {program_id} at version {new_version}")
        return new_version

    def fetch_catalog(self) -> List[str]:
        """Read exercise names from the exercise library table."""
        from liftpatch.core.catalog import catalog_from_records

        response = self._client.table("exercise_library").select("id, name").execute()
        return catalog_from_records(response.data or [])

    def load_conversation(self, program_id: str) -> Conversation:
        response = (
            self._client.table("ai_conversations")
            .select("turns, summary")
            .eq("program_id", program_id)
            .limit(1)
            .execute()
        )
        return Conversation.from_dict(response.data[0] if response.data else None)

    def append_turns(
        self, program_id: str, turns: Iterable[Turn], summary: Optional[str] = None
    ) -> Conversation:
        conversation = self.load_conversation(program_id).extended(turns, summary, self.max_turns)
        (
            self._client.table("ai_conversations")
            .upsert(
                {"program_id": program_id, **conversation.to_dict()},
                on_conflict="program_id",
            )
            .execute()
        )
        return conversation
