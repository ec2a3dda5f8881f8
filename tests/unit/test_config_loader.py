from __future__ import annotations

from pathlib import Path

import pytest

from review_sync.config.loader import (
    DEFAULT_FILES,
    ArchiveSource,
    ConfigError,
    load_config,
    resolve_config_path,
)


def test_load_config_basic(config):
    assert config.csv_url == "https://example.test/pub?output=csv"
    assert config.data_path == Path("./data")
    assert config.files == DEFAULT_FILES
    assert config.archives == (
        ArchiveSource("archive_1", "May 2024 Archive"),
        ArchiveSource("archive_2", "Older Archive"),
    )
    assert config.fetch.timeout_seconds == 5.0
    assert config.fetch.max_attempts == 2
    assert config.fetch.backoff_seconds == 2.0
    assert config.cache_ttl_seconds == 10.0
    assert config.skip_unchanged is False
    assert config.sheets.sheet_name == "Reviews"


def test_minimal_config_gets_defaults(temp_workdir):
    cfg_path = temp_workdir / "config" / "sync.yml"
    cfg_path.write_text("csv_url: https://x.test/csv\ndata_directory: ./data\n", encoding="utf-8")

    cfg = load_config(cfg_path, environ={})

    assert cfg.archives == ()
    assert cfg.fetch.timeout_seconds == 30.0
    assert cfg.fetch.max_attempts == 2
    assert cfg.cache_ttl_seconds == 10.0
    assert cfg.timezone == "UTC"


def test_missing_file(temp_workdir):
    with pytest.raises(ConfigError, match="not found"):
        load_config(temp_workdir / "config" / "missing.yml")


def test_invalid_yaml(temp_workdir):
    p = temp_workdir / "config" / "sync.yml"
    p.write_text("csv_url: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(p)


def test_root_must_be_mapping(temp_workdir):
    p = temp_workdir / "config" / "sync.yml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(p)


@pytest.mark.parametrize(
    "body",
    [
        "data_directory: ./data\n",  # csv_url missing
        "csv_url: u\ndata_directory: ./data\nunknown_key: 1\n",
        "csv_url: u\ndata_directory: ./data\nfetch:\n  max_attempts: 0\n",
        "csv_url: u\ndata_directory: ./data\narchives:\n  - key: archive_9\n",
    ],
)
def test_schema_violations(temp_workdir, body):
    p = temp_workdir / "config" / "sync.yml"
    p.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError, match="validation failed"):
        load_config(p, environ={})


def test_duplicate_archive_rejected(temp_workdir):
    p = temp_workdir / "config" / "sync.yml"
    p.write_text(
        "csv_url: u\ndata_directory: ./data\narchives:\n  - key: archive_1\n  - key: archive_1\n",
        encoding="utf-8",
    )
    with pytest.raises(ConfigError, match="twice"):
        load_config(p, environ={})


def test_env_overrides(write_config):
    cfg = load_config(
        write_config,
        environ={
            "SHEET_CSV_URL": "https://override.test/csv",
            "REVIEW_SYNC_DATA_DIR": "/srv/data",
            "REVIEW_SYNC_CACHE_TTL": "2.5",
            "GOOGLE_SHEET_ID": "sheet-123",
        },
    )
    assert cfg.csv_url == "https://override.test/csv"
    assert cfg.data_directory == "/srv/data"
    assert cfg.cache_ttl_seconds == 2.5
    assert cfg.sheets.spreadsheet_id == "sheet-123"
    assert cfg.sheets.sheet_name == "Reviews"


def test_bad_ttl_override(write_config):
    with pytest.raises(ConfigError, match="REVIEW_SYNC_CACHE_TTL"):
        load_config(write_config, environ={"REVIEW_SYNC_CACHE_TTL": "soon"})


def test_resolve_config_path(monkeypatch):
    monkeypatch.delenv("REVIEW_SYNC_CONFIG", raising=False)
    assert resolve_config_path() == Path("config/sync.yml")
    monkeypatch.setenv("REVIEW_SYNC_CONFIG", "/etc/review/sync.yml")
    assert resolve_config_path() == Path("/etc/review/sync.yml")
    assert resolve_config_path("other.yml") == Path("other.yml")
