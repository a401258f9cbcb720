# src/silverrate/adapters/persistence/json_file.py
"""
JSON File Helpers - Atomic Writes and Corruption Recovery

Shared by the history and extremes stores.

- ``write_json_atomic`` writes to a temp file in the same directory, fsyncs,
  then ``os.replace``s it over the target so readers never see a partial file.
- ``read_json_object`` returns None for a missing file; a file that fails to
  parse is copied to ``<name>.json.corrupt``, removed, and treated as empty.

Files that USE this module:
- silverrate.adapters.persistence.history_store
- silverrate.adapters.persistence.extremes_store

Files that this module USES:
- silverrate.domain.errors (PersistenceError)
"""
from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from silverrate.domain.errors import PersistenceError

log = logging.getLogger(__name__)


def write_json_atomic(path: Path, data: Dict[str, Any]) -> None:
    """
    Write a JSON object using temp file + atomic rename.

    Raises:
        PersistenceError: If the file cannot be written
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_fd, temp_path = tempfile.mkstemp(suffix=".json.tmp", dir=str(path.parent), text=True)
    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, str(path))
    except Exception as e:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise PersistenceError(f"Failed to write {path}: {e}") from e


def read_json_object(path: Path) -> Optional[Dict[str, Any]]:
    """Load a JSON object, backing up and discarding a corrupt file."""
    if not path.exists():
        return None
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        _backup_corrupt(path, e)
        return None
    except OSError as e:
        log.error("Failed to read %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        _backup_corrupt(path, f"expected object, got {type(data).__name__}")
        return None
    return data


def _backup_corrupt(path: Path, reason: Any) -> None:
    backup_path = path.with_suffix(".json.corrupt")
    try:
        shutil.copy2(path, backup_path)
        path.unlink()
        log.warning("Data file %s corrupted, backed up to %s: %s", path, backup_path, reason)
    except OSError as backup_error:
        log.error("Failed to back up corrupt file %s: %s", path, backup_error)
