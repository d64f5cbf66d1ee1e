"""Reading and writing snapshot, batch and catalog files.

JSON is the transport format. YAML is accepted wherever JSON is, since
trainers tend to hand-edit programs, and ``show`` renders snapshots as YAML.
"""

import json
from io import StringIO
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

YAML_SUFFIXES = (".yaml", ".yml")


def _create_yaml_instance() -> YAML:
    """Create a ruamel.yaml instance for program documents.

    Returns:
        YAML instance configured to:
        - Load into plain dicts/lists (safe loader)
        - Not wrap long notes
        - Use block style (not flow style)
    """
    yaml = YAML(typ="safe", pure=True)
    yaml.width = 4096
    yaml.default_flow_style = False
    yaml.allow_unicode = True
    return yaml


def load_document(path: str) -> Any:
    """Load a JSON or YAML document, chosen by file extension.

    Args:
        path: File to read

    Returns:
        Decoded document

    Raises:
        ValueError: If the file content cannot be decoded
    """
    file_path = Path(path)
    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() in YAML_SUFFIXES:
        try:
            return _create_yaml_instance().load(text)
        except Exception as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e


def dump_yaml(data: Any) -> str:
    """Render a document as block-style YAML."""
    stream = StringIO()
    _create_yaml_instance().dump(data, stream)
    return stream.getvalue()


def write_document(path: str, data: Any) -> None:
    """Write a document as JSON or YAML, chosen by file extension."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if file_path.suffix.lower() in YAML_SUFFIXES:
        file_path.write_text(dump_yaml(data), encoding="utf-8")
    else:
        file_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
