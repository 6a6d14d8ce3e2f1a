"""JSON file cache of resolved grades.

This module provides a GradeCache that:
- Loads previously resolved grades once at startup
- Stores each course at most once (a published grade never changes)
- Rewrites the whole file on flush
"""

import asyncio
import json
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from gradewatch.models import Record

logger = structlog.get_logger(__name__)


class GradeCache:
    """File-backed mapping of course code to resolved Record.

    Every stored record has a grade. The file is small and only rewritten
    when a new grade shows up, so flush() overwrites it in full.

    Attributes:
        path: Path to the JSON cache file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._records: dict[str, Record] = {}
        self._lock = asyncio.Lock()

    def load(self) -> None:
        """Load the cache file, starting empty if it is absent or corrupt."""
        self._records = {}

        if not self.path.exists():
            logger.info("grade_cache_not_found", path=str(self.path))
            return

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("grade_cache_unreadable", path=str(self.path), error=str(e))
            return

        if not isinstance(data, dict):
            logger.warning("grade_cache_malformed", path=str(self.path))
            return

        for code, entry in data.items():
            record = self._parse_entry(code, entry)
            if record is not None:
                self._records[code] = record

        logger.info("grade_cache_loaded", path=str(self.path), count=len(self._records))

    def get(self, code: str) -> Record | None:
        return self._records.get(code)

    def put(self, record: Record) -> bool:
        """Store a resolved record unless its course is already cached.

        Returns:
            True if the record was stored, False if the code was already present.

        Raises:
            ValueError: If the record has no grade.
        """
        if record.grade is None:
            raise ValueError(f"Refusing to cache unresolved course {record.code}")

        if record.code in self._records:
            logger.debug("grade_cache_put_ignored", code=record.code)
            return False

        self._records[record.code] = record
        logger.debug("grade_cache_put", code=record.code)
        return True

    def discard(self, codes: Iterable[str]) -> None:
        """Forget records that were put but never flushed."""
        for code in codes:
            if self._records.pop(code, None) is not None:
                logger.debug("grade_cache_discarded", code=code)

    def records(self) -> list[Record]:
        return list(self._records.values())

    def __contains__(self, code: object) -> bool:
        return code in self._records

    def __len__(self) -> int:
        return len(self._records)

    async def flush(self) -> None:
        """Overwrite the cache file with the current contents."""
        async with self._lock:
            payload = {code: record.model_dump() for code, record in self._records.items()}
            await asyncio.to_thread(self._write, payload)
            logger.info("grade_cache_flushed", path=str(self.path), count=len(payload))

    def _write(self, payload: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def _parse_entry(self, code: str, entry: Any) -> Record | None:
        if not isinstance(entry, dict):
            logger.warning("grade_cache_entry_skipped", code=code)
            return None
        try:
            record = Record.model_validate({"code": code, **entry})
        except ValidationError as e:
            logger.warning("grade_cache_entry_skipped", code=code, error=str(e))
            return None
        if record.grade is None:
            logger.warning("grade_cache_entry_skipped", code=code, error="missing grade")
            return None
        return record
