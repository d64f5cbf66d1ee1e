"""Model reply envelope.

The text-generation service must answer with exactly one of::

    {"type": "question", "message": "..."}
    {"type": "program", "message": "...", "operations": [...]}

Operations are kept raw here; the validator schema-checks them so that each
problem is reported against its index.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

from liftpatch.core.errors import UpstreamFormatError

REPLY_TYPES = ("question", "program")


@dataclass
class ProgramReply:
    """Parsed reply from the model.

    Attributes:
        type: "question" or "program"
        message: Text for the coach
        operations: Raw operation objects (program replies only)
    """

    type: str
    message: str
    operations: List[Any] = field(default_factory=list)

    @property
    def is_question(self) -> bool:
        return self.type == "question"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type, "message": self.message}
        if self.type == "program":
            data["operations"] = list(self.operations)
        return data


def parse_reply(data: Any) -> ProgramReply:
    """Check the top-level shape of a decoded reply.

    Raises:
        UpstreamFormatError: If the shape is not one of the two allowed ones
    """
    if not isinstance(data, dict):
        raise UpstreamFormatError(f"Reply must be a JSON object, got {type(data).__name__}")

    reply_type = data.get("type")
    if reply_type not in REPLY_TYPES:
        raise UpstreamFormatError(f"Unknown reply type {reply_type!r}")

    message = data.get("message")
    if not isinstance(message, str):
        raise UpstreamFormatError("Reply 'message' must be a string")

    expected = {"type", "message"} if reply_type == "question" else {"type", "message", "operations"}
    extra = set(data) - expected
    if extra:
        raise UpstreamFormatError(f"Unexpected reply fields: {', '.join(sorted(extra))}")

    if reply_type == "question":
        return ProgramReply(type="question", message=message)

    if "operations" not in data:
        raise UpstreamFormatError("Program reply is missing 'operations'")
    if not isinstance(data["operations"], list):
        raise UpstreamFormatError("Reply 'operations' must be a list")
    return ProgramReply(type="program", message=message, operations=data["operations"])


def parse_reply_text(text: str) -> ProgramReply:
    """Decode reply JSON text and check its shape.

    Raises:
        UpstreamFormatError: On invalid JSON or an unrecognized shape
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise UpstreamFormatError(f"Reply is not valid JSON: {e}", raw=text) from e
    try:
        return parse_reply(data)
    except UpstreamFormatError as e:
        e.raw = text
        raise
