"""
Export of a finished dataset to a single JSON file.
Read + transform + write; the store itself is never modified.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List

from crawler.core import EXCLUDED_EXPORT_FIELDS, logger
from dataset.storage import DatasetStore


class ExportIOError(Exception):
    """Raised when the export file cannot be written."""

    def __init__(self, path, cause):
        self.path = path
        self.cause = cause
        super().__init__(f"cannot write export file {path}: {cause}")


def strip_fields(item: Dict[str, Any], exclude_fields: Iterable[str]) -> Dict[str, Any]:
    """Shallow copy of item without the given top-level keys."""
    excluded = set(exclude_fields)
    return {k: v for k, v in item.items() if k not in excluded}


def export_path_for(export_dir, session_name: str) -> Path:
    return Path(export_dir) / f"{session_name}.json"


def export_dataset(store: DatasetStore, session_name: str, export_dir,
                   exclude_fields: Iterable[str] = EXCLUDED_EXPORT_FIELDS) -> Path:
    """
    FLOW: Reads every stored item -> Drops excluded top-level fields on a copy ->
    Writes one UTF-8 JSON array to <export_dir>/<session_name>.json, replacing any previous export.
    Returns the path written.
    """
    items: List[Dict[str, Any]] = [strip_fields(item, exclude_fields) for item in store.read_items(session_name)]
    output_path = export_path_for(export_dir, session_name)

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(items, f, indent=2, ensure_ascii=False)
    except OSError as e:
        logger.error(f"[EXPORT] failed for {session_name}: {e}")
        raise ExportIOError(output_path, e) from e

    logger.info(f"[EXPORT] {len(items)} record(s) of {session_name} written to {output_path}")
    return output_path
