#!/usr/bin/env python3
"""One-off import of a legacy review sheet into a historical archive.

Downloads a published CSV (or reads a local CSV export), parses it with the
same parser the sync uses, and writes the archive document that the merged
view picks up:

    {source, downloadedAt, stats{totalRows, uniqueAgents, sizeBytes, columns}, headers, rows}

Archives are read-only for the running service; rerun this script to replace one.
"""
from __future__ import annotations

import argparse
import sys
from datetime import UTC, datetime
from pathlib import Path

from dotenv import load_dotenv

from review_sync.config.loader import ConfigError, load_config, resolve_config_path
from review_sync.logging.init import log_summary, setup_logging
from review_sync.models.sheet_documents import HistoricalArchive
from review_sync.sheets.csv_codec import parse_csv
from review_sync.sheets.fetcher import FetchError, fetch_with_retry
from review_sync.store.local_store import LocalStore, StoreWriteError


def build_archive(csv_text: str, source: str) -> HistoricalArchive:
    parsed = parse_csv(csv_text)
    agents = {row.get("Agent") for row in parsed.rows if row.get("Agent")}
    return HistoricalArchive(
        rows=parsed.rows,
        headers=parsed.headers,
        source=source,
        downloaded_at=datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        stats={
            "totalRows": len(parsed.rows),
            "uniqueAgents": len(agents),
            "sizeBytes": len(csv_text),
            "columns": len(parsed.headers),
        },
    )


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Import a legacy review sheet as a historical archive")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--url", help="Published CSV URL")
    src.add_argument("--csv-file", type=Path, help="Local CSV export")
    p.add_argument("--key", choices=["archive_1", "archive_2"], default="archive_2")
    p.add_argument("--source", default="Historical Reviews", help="Label stored in the archive")
    p.add_argument("--config", help="Path to sync.yml")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    load_dotenv(dotenv_path=Path(".env"), override=True)

    try:
        cfg = load_config(resolve_config_path(args.config))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return 1

    if args.url:
        try:
            response = fetch_with_retry(
                args.url,
                cfg.fetch.timeout_seconds,
                cfg.fetch.max_attempts,
                backoff_seconds=cfg.fetch.backoff_seconds,
            )
        except FetchError as e:
            logger.error(f"download: {e}")
            return 2
        if not 200 <= response.status_code < 300:
            logger.error(f"download: HTTP {response.status_code}")
            return 2
        csv_text = response.text
    else:
        try:
            csv_text = args.csv_file.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"read: {e}")
            return 1

    archive = build_archive(csv_text, args.source)
    store = LocalStore(cfg.data_path, cfg.files)
    try:
        path = store.write(args.key, archive.to_dict())
    except StoreWriteError as e:
        logger.error(f"write: {e}")
        return 2

    logger.info(f"archive written to {path}")
    log_summary(
        f"archive={args.key} rows={archive.stats['totalRows']} "
        f"agents={archive.stats['uniqueAgents']} columns={archive.stats['columns']}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
