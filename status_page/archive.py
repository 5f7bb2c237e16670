# Reads the incident archive (incidents/index.json) maintained by the
# postmortem index script. The file is a JSON list of incident objects.

import json
import logging
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)


def load_archive(path: str | Path) -> list[dict[str, Any]]:
    """
    Load the archive as plain dicts, exactly as stored.

    Raises:
        FileNotFoundError  if the file doesn't exist
        ValueError         if it isn't a JSON list (json.JSONDecodeError included)
    """
    path = Path(path)
    with path.open(encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list, got {type(data).__name__}")

    entries = [entry for entry in data if isinstance(entry, dict)]
    if len(entries) != len(data):
        log.warning("%s: skipped %d non-object entr(ies)", path, len(data) - len(entries))

    log.info("Loaded %d incident(s) from %s", len(entries), path)
    return entries
