"""
Sync State - remembers what has already been ingested

Two small JSON files under the data directory:
- rulings sync state: processed bulletin filenames and the last sync time
- statute edition trackers: last ingested e-TAR edition per statute

Both are advisory. Deleting them (or passing --force) re-ingests everything,
which is safe because vector IDs are deterministic.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _read_json(path: Path) -> Optional[dict]:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable state file {path}: {e}")
        return None


def _write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


class RulingsSyncState:
    """Processed LAT bulletin files."""

    def __init__(self, path: Path, force: bool = False):
        self.path = Path(path)
        data = None if force else _read_json(self.path)
        data = data or {}
        self.processed_files: list[str] = list(data.get("processedFiles", []))
        self.last_sync: Optional[str] = data.get("lastSync")

    def is_processed(self, filename: str) -> bool:
        return filename in self.processed_files

    def mark_processed(self, filename: str) -> None:
        if filename not in self.processed_files:
            self.processed_files.append(filename)

    def save(self) -> None:
        self.last_sync = _now()
        _write_json(self.path, {"processedFiles": self.processed_files, "lastSync": self.last_sync})
        logger.info(f"Sync state saved: {len(self.processed_files)} files processed")


class EditionTracker:
    """Last ingested consolidated edition of one statute."""

    def __init__(self, path: Path):
        self.path = Path(path)
        data = _read_json(self.path) or {}
        self.edition_id: Optional[str] = data.get("editionId")
        self.effective_date: Optional[str] = data.get("effectiveDate")
        self.article_count: int = data.get("articleCount", 0)

    def is_current(self, edition_id: str) -> bool:
        return bool(edition_id) and edition_id == self.edition_id

    def record(self, edition_id: str, effective_date: str, article_count: int) -> None:
        self.edition_id = edition_id
        self.effective_date = effective_date
        self.article_count = article_count
        _write_json(self.path, {
            "editionId": edition_id,
            "effectiveDate": effective_date,
            "articleCount": article_count,
            "updatedAt": _now(),
        })
