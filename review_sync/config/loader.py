from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader for the review sheet sync service.

Responsibilities:
- Load YAML config (default config/sync.yml)
- Validate against config_schema.json (additional keys rejected)
- Apply defaults for the optional sections
- Apply environment overrides (.env is loaded by the CLI / app factory first)
"""

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/sync.yml")

DEFAULT_FILES = {
    "current_metadata": "cached-sheets-data.json",
    "current_parsed": "cached-sheets-parsed.json",
    "archive_1": "historical-reviews-may2024.json",
    "archive_2": "historical-reviews.json",
}


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class FetchConfig:
    timeout_seconds: float = 30.0
    max_attempts: int = 2
    backoff_seconds: float = 2.0


@dataclass(frozen=True)
class ArchiveSource:
    key: str  # archive_1 / archive_2
    label: str


@dataclass(frozen=True)
class SheetsConfig:
    """Sheets-API identifiers. Passed through only; the CSV path never reads them."""
    spreadsheet_id: str | None = None
    sheet_name: str = "Reviews"
    credentials_path: str | None = None


@dataclass(frozen=True)
class SyncConfig:
    csv_url: str
    data_directory: str
    files: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_FILES))
    archives: tuple[ArchiveSource, ...] = ()
    fetch: FetchConfig = field(default_factory=FetchConfig)
    cache_ttl_seconds: float = 10.0
    skip_unchanged: bool = False
    timezone: str = "UTC"
    sheets: SheetsConfig = field(default_factory=SheetsConfig)

    @property
    def data_path(self) -> Path:
        return Path(self.data_directory)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: if the schema file is missing or invalid, or the config
            data violates it (missing required keys, wrong types, extra keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _default_archive_label(key: str) -> str:
    return "May 2024 Archive" if key == "archive_1" else "Older Archive"


def _build_config(data: dict[str, Any]) -> SyncConfig:
    files = dict(DEFAULT_FILES)
    files.update(data.get("files") or {})

    archives: list[ArchiveSource] = []
    seen: set[str] = set()
    for entry in data.get("archives") or []:
        key = entry["key"]
        if key in seen:
            raise ConfigError(f"archive listed twice: {key}")
        seen.add(key)
        archives.append(ArchiveSource(key=key, label=entry.get("label") or _default_archive_label(key)))

    fetch_raw = data.get("fetch") or {}
    fetch = FetchConfig(
        timeout_seconds=float(fetch_raw.get("timeout_seconds", 30.0)),
        max_attempts=int(fetch_raw.get("max_attempts", 2)),
        backoff_seconds=float(fetch_raw.get("backoff_seconds", 2.0)),
    )
    sheets_raw = data.get("sheets") or {}
    sheets = SheetsConfig(
        spreadsheet_id=sheets_raw.get("spreadsheet_id"),
        sheet_name=sheets_raw.get("sheet_name", "Reviews"),
        credentials_path=sheets_raw.get("credentials_path"),
    )
    return SyncConfig(
        csv_url=data["csv_url"],
        data_directory=data["data_directory"],
        files=files,
        archives=tuple(archives),
        fetch=fetch,
        cache_ttl_seconds=float((data.get("cache") or {}).get("ttl_seconds", 10.0)),
        skip_unchanged=bool((data.get("sync") or {}).get("skip_unchanged", False)),
        timezone=data.get("timezone", "UTC"),
        sheets=sheets,
    )


def apply_env_overrides(cfg: SyncConfig, environ: dict[str, str] | None = None) -> SyncConfig:
    """Return a copy of ``cfg`` with environment variables applied on top."""
    env = os.environ if environ is None else environ
    updates: dict[str, Any] = {}
    if env.get("SHEET_CSV_URL"):
        updates["csv_url"] = env["SHEET_CSV_URL"]
    if env.get("REVIEW_SYNC_DATA_DIR"):
        updates["data_directory"] = env["REVIEW_SYNC_DATA_DIR"]
    if env.get("REVIEW_SYNC_CACHE_TTL"):
        try:
            updates["cache_ttl_seconds"] = float(env["REVIEW_SYNC_CACHE_TTL"])
        except ValueError as e:
            raise ConfigError(f"REVIEW_SYNC_CACHE_TTL must be a number: {e}") from e

    sheets = cfg.sheets
    if env.get("GOOGLE_SHEET_ID"):
        sheets = replace(sheets, spreadsheet_id=env["GOOGLE_SHEET_ID"])
    if env.get("GOOGLE_SHEET_NAME"):
        sheets = replace(sheets, sheet_name=env["GOOGLE_SHEET_NAME"])
    if env.get("GOOGLE_APPLICATION_CREDENTIALS"):
        sheets = replace(sheets, credentials_path=env["GOOGLE_APPLICATION_CREDENTIALS"])
    if sheets is not cfg.sheets:
        updates["sheets"] = sheets

    return replace(cfg, **updates) if updates else cfg


def load_config(path: Path, environ: dict[str, str] | None = None) -> SyncConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)
    return apply_env_overrides(_build_config(data), environ)


def resolve_config_path(explicit: str | None = None) -> Path:
    if explicit:
        return Path(explicit)
    return Path(os.getenv("REVIEW_SYNC_CONFIG", str(DEFAULT_CONFIG_PATH)))
