from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from review_sync.config.loader import ConfigError, load_config, resolve_config_path
from review_sync.logging.init import log_summary, set_debug, setup_logging
from review_sync.services.metrics import agent_metrics, calculate_metrics
from review_sync.services.orchestrator import SyncError
from review_sync.services.progress import ProgressTracker
from review_sync.services.registry import ReviewSyncServices
from review_sync.services.summary import render_merge_line, render_summary_line

"""CLI entrypoint.

- sync:    download the published CSV once and replace the current snapshot
- merged:  print merged stats (current + archives) as JSON
- metrics: print aggregate and per-agent metrics as JSON
- serve:   run the HTTP endpoints with Flask's server
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_SYNC_FAILED = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="review-sync", description="Review sheet sync and merged-data service")
    p.add_argument("--config", help="Path to sync.yml (default: config/sync.yml or $REVIEW_SYNC_CONFIG)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("sync", help="Download the sheet and store it locally")
    sub.add_parser("merged", help="Print merged data stats")
    sub.add_parser("metrics", help="Print review metrics")
    serve = sub.add_parser("serve", help="Serve the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)
    return p.parse_args(argv)


def _run_sync(services: ReviewSyncServices) -> int:
    logger = setup_logging()
    with ProgressTracker() as progress:
        try:
            report = services.orchestrator.sync(progress=progress)
        except SyncError as e:
            logger.error(f"sync: {e}")
            return EXIT_SYNC_FAILED
    log_summary(render_summary_line(report).removeprefix("SUMMARY "))
    return EXIT_SUCCESS


def _run_merged(services: ReviewSyncServices) -> int:
    result = services.merge.get_merged_data()
    log_summary(render_merge_line(result.stats).removeprefix("SUMMARY "))
    print(json.dumps({"lastUpdated": result.last_updated, "etag": result.etag, "stats": result.stats.to_dict()},
                     ensure_ascii=False, indent=2))
    return EXIT_SUCCESS


def _run_metrics(services: ReviewSyncServices) -> int:
    rows = services.merge.get_merged_data().rows
    out = {
        "summary": calculate_metrics(rows).to_dict(),
        "agents": [m.to_dict() for m in agent_metrics(rows)],
    }
    print(json.dumps(out, ensure_ascii=False, indent=2))
    return EXIT_SUCCESS


def _run_serve(services: ReviewSyncServices, host: str, port: int) -> int:  # pragma: no cover (blocking)
    from review_sync.web.app import create_app

    app = create_app(services.config)
    app.run(host=host, port=port, threaded=True)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not fall back to sys.argv (pytest args)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(resolve_config_path(args.config))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    services = ReviewSyncServices.from_config(cfg)
    if args.command == "sync":
        return _run_sync(services)
    if args.command == "merged":
        return _run_merged(services)
    if args.command == "metrics":
        return _run_metrics(services)
    return _run_serve(services, args.host, args.port)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
