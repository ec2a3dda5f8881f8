from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from review_sync.models.sheet_documents import HistoricalArchive, Row
from review_sync.store.lock import file_lock

"""Local JSON document store.

A fixed set of keys maps to files under the data directory:

    current_metadata  -> RawSheetDocument
    current_parsed    -> ParsedSheetDocument
    archive_1/2       -> HistoricalArchive

Writes replace the whole file through a temp file + ``os.replace`` while
holding ``<file>.lock``, so readers never see half-written JSON and
cooperating processes do not interleave.
"""

logger = logging.getLogger(__name__)

STORE_KEYS = ("current_metadata", "current_parsed", "archive_1", "archive_2")


class StoreError(Exception):
    """Base exception for local store failures."""

    def __init__(self, key: str, path: Path, message: str) -> None:
        self.key = key
        self.path = path
        super().__init__(f"{key} ({path}): {message}")


class DocumentNotFound(StoreError):
    pass


class DocumentUnreadable(StoreError):
    pass


class StoreWriteError(StoreError):
    pass


@dataclass(frozen=True)
class ArchiveFound:
    key: str
    archive: HistoricalArchive

    @property
    def rows(self) -> list[Row]:
        return self.archive.rows


@dataclass(frozen=True)
class ArchiveAbsent:
    key: str
    reason: Literal["missing", "unreadable", "empty"]
    detail: str = ""


ArchiveLookup = ArchiveFound | ArchiveAbsent


class LocalStore:
    def __init__(self, data_directory: Path | str, files: Mapping[str, str]) -> None:
        self.data_directory = Path(data_directory)
        unknown = set(files) - set(STORE_KEYS)
        if unknown:
            raise KeyError(f"unknown store keys: {sorted(unknown)}")
        self._files = dict(files)

    def path_for(self, key: str) -> Path:
        if key not in self._files:
            raise KeyError(f"unknown store key: {key}")
        return self.data_directory / self._files[key]

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def read(self, key: str) -> dict[str, Any]:
        """Load the JSON object stored under ``key``.

        Raises:
            DocumentNotFound: the file does not exist
            DocumentUnreadable: the file cannot be opened, is not JSON, or
                does not hold a JSON object
        """
        path = self.path_for(key)
        if not path.is_file():
            raise DocumentNotFound(key, path, "no such file")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DocumentUnreadable(key, path, str(e)) from e
        if not isinstance(data, dict):
            raise DocumentUnreadable(key, path, f"expected a JSON object, got {type(data).__name__}")
        return data

    def read_archive(self, key: str) -> ArchiveLookup:
        """Optional-source read: never raises for a missing or broken archive."""
        try:
            archive = HistoricalArchive.from_dict(self.read(key))
        except DocumentNotFound:
            logger.debug(f"archive {key} not present, skipping")
            return ArchiveAbsent(key=key, reason="missing")
        except (DocumentUnreadable, ValueError) as e:
            logger.warning(f"archive {key} unreadable, skipping: {e}")
            return ArchiveAbsent(key=key, reason="unreadable", detail=str(e))
        if not archive.rows:
            logger.debug(f"archive {key} has no rows, skipping")
            return ArchiveAbsent(key=key, reason="empty")
        return ArchiveFound(key=key, archive=archive)

    def write(self, key: str, document: Mapping[str, Any]) -> Path:
        """Serialize ``document`` as indented JSON and replace the file wholesale."""
        path = self.path_for(key)
        try:
            payload = json.dumps(document, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StoreWriteError(key, path, f"not serializable: {e}") from e

        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with file_lock(path.with_name(path.name + ".lock")):
                fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, path)
                tmp_name = None
        except OSError as e:
            raise StoreWriteError(key, path, str(e)) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.remove(tmp_name)
        logger.debug(f"wrote {key} -> {path} ({len(payload)} bytes)")
        return path
