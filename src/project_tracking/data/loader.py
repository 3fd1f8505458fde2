from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

LOGGER = logging.getLogger(__name__)

EXPORT_FILENAME = "export.json"
DISMISSED_FILENAME = "dismissed.json"


def data_dir() -> Path:
    return Path(os.getenv("PROJECT_TRACKING_DATA_DIR", "./data"))


def default_data_path() -> Path:
    return Path(os.getenv("PROJECT_TRACKING_DATA_PATH", data_dir() / EXPORT_FILENAME))


def default_dismissed_path() -> Path:
    return Path(os.getenv("PROJECT_TRACKING_DISMISSED_PATH", data_dir() / DISMISSED_FILENAME))


def _dict_rows(rows: Any, kind: str) -> list[dict[str, Any]]:
    if rows is None:
        return []
    if not isinstance(rows, list):
        LOGGER.warning("Expected a list of %s, got %s", kind, type(rows).__name__)
        return []
    kept = [row for row in rows if isinstance(row, dict)]
    dropped = len(rows) - len(kept)
    if dropped:
        LOGGER.warning("Dropped %s malformed %s row(s)", dropped, kind)
    return kept


def parse_records(payload: Any) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Split an export payload into (projects, opinions).

    Accepts ``{"projects": [...], "opinions": [...]}`` or a bare list of projects.
    """
    if isinstance(payload, list):
        return _dict_rows(payload, "projects"), []
    if not isinstance(payload, dict):
        LOGGER.warning("Unsupported export payload: %s", type(payload).__name__)
        return [], []
    projects = _dict_rows(payload.get("projects"), "projects")
    opinions = _dict_rows(payload.get("opinions"), "opinions")
    return projects, opinions


def load_records(path: Path) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    return parse_records(payload)


def load_dismissed(path: Path) -> set[str]:
    if not path.exists():
        return set()
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        LOGGER.warning("Ignoring unreadable dismissed list at %s", path)
        return set()
    if not isinstance(payload, list):
        return set()
    return {str(item) for item in payload if item not in (None, "")}


def save_dismissed(path: Path, ids: set[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(sorted(ids), ensure_ascii=False, indent=2), encoding="utf-8")


class JsonFileDismissedStore:
    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> set[str]:
        return load_dismissed(self.path)

    def save(self, ids: set[str]) -> None:
        save_dismissed(self.path, ids)
