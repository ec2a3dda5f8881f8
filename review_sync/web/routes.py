from __future__ import annotations

import math

from flask import Blueprint, current_app, jsonify, make_response, request

from ..services.metrics import agent_metrics, calculate_metrics
from ..services.orchestrator import SyncError, SyncInProgressError
from ..services.registry import ReviewSyncServices

"""HTTP surfaces: sync trigger, background sync polling, merged data, metrics.

Read endpoints never fail to the client: a missing current snapshot is served
as an empty 200 payload. Sync endpoints report failures with 409/500 so an
operator can retry.
"""

sync_bp = Blueprint("review_sync", __name__, url_prefix="/api")


def _services() -> ReviewSyncServices:
    return current_app.extensions["review_sync"]


@sync_bp.route("/sync-sheets", methods=["POST"])
def sync_sheets():
    services = _services()
    try:
        report = services.orchestrator.sync()
    except SyncInProgressError as e:
        return jsonify({"error": str(e)}), 409
    except SyncError as e:
        return jsonify({"error": str(e)}), 500
    return jsonify(report.to_dict())


@sync_bp.route("/sync-sheets-bg", methods=["POST"])
def start_background_sync():
    services = _services()
    background = current_app.config.get("REVIEW_SYNC_BACKGROUND", True)
    sync_id = services.board.start(services.orchestrator, background=background)
    return jsonify({"success": True, "syncId": sync_id, "message": "Sync started"})


@sync_bp.route("/sync-sheets-bg", methods=["GET"])
def background_sync_status():
    sync_id = request.args.get("syncId")
    if not sync_id:
        return jsonify({"error": "syncId required"}), 400
    status = _services().board.get(sync_id)
    if status is None:
        return jsonify({"error": "Sync not found"}), 404
    return jsonify(status.to_dict())


@sync_bp.route("/cached-data", methods=["GET"])
def cached_data():
    services = _services()
    result = services.merge.get_merged_data()

    if result.degraded:
        response = make_response(jsonify(result.to_payload()), 200)
        response.headers["Cache-Control"] = "no-store"
        return response

    max_age = max(int(math.ceil(services.merge.cache.ttl_seconds)), 0)
    if result.etag is not None and result.etag in request.if_none_match:
        response = make_response("", 304)
    else:
        response = make_response(jsonify(result.to_payload()), 200)
    response.set_etag(result.etag)
    response.headers["Cache-Control"] = f"public, max-age={max_age}"
    return response


@sync_bp.route("/metrics", methods=["GET"])
def metrics():
    result = _services().merge.get_merged_data()
    return jsonify(
        {
            "lastUpdated": result.last_updated,
            "summary": calculate_metrics(result.rows).to_dict(),
            "agents": [m.to_dict() for m in agent_metrics(result.rows)],
        }
    )
