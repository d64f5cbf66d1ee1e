"""Exercise catalog: the names an add or edit is allowed to use."""

import logging
from pathlib import Path
from typing import Any, FrozenSet, Iterable, List

from liftpatch.core.documents import YAML_SUFFIXES, load_document

logger = logging.getLogger(__name__)


def catalog_from_records(records: Iterable[Any]) -> List[str]:
    """Extract exercise names from library rows or plain strings.

    Accepts ``"Bench Press"`` as well as ``{"name": "Bench Press", "id": ...}``.
    Duplicates are dropped, first occurrence wins.

    Raises:
        ValueError: If a record has no usable name
    """
    names: List[str] = []
    seen = set()
    for record in records:
        name = record.get("name") if isinstance(record, dict) else record
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"Catalog entry has no exercise name: {record!r}")
        if name not in seen:
            seen.add(name)
            names.append(name)
    return names


def load_catalog(path: str) -> FrozenSet[str]:
    """Load an exercise catalog file.

    Supported formats:
    - ``.json`` / ``.yaml``: a list of names or of ``{"name": ...}`` records,
      or an object with an ``exercises`` list
    - anything else: one name per line, blank lines and ``#`` comments skipped

    Args:
        path: Catalog file

    Returns:
        Frozen set of allowed exercise names (matched exactly, case-sensitive)
    """
    suffix = Path(path).suffix.lower()
    if suffix == ".json" or suffix in YAML_SUFFIXES:
        data = load_document(path)
        if isinstance(data, dict):
            data = data.get("exercises", [])
        if not isinstance(data, list):
            raise ValueError(f"Catalog {path} must contain a list of exercises")
        names = catalog_from_records(data)
    else:
        lines = Path(path).read_text(encoding="utf-8").splitlines()
        names = catalog_from_records(
            line.strip() for line in lines if line.strip() and not line.strip().startswith("#")
        )

    logger.info(f"Loaded catalog from {path} with {len(names)} exercises")
    return frozenset(names)
