"""
Health Check Endpoints

1. /health/live - is the process alive?
2. /health/ready - can it serve traffic (database reachable)?
3. /health/startup - the startup validation report recorded by create_app
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Any

from flask import Blueprint, jsonify, current_app
from sqlalchemy import text

from models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__, url_prefix='/health')


def check_database_health() -> Dict[str, Any]:
    try:
        db.session.execute(text("SELECT 1")).fetchone()
        db.session.rollback()
        return {"healthy": True}
    except Exception as e:
        db.session.rollback()
        logger.warning(f"Database health check failed: {e}")
        return {"healthy": False, "error": str(e)[:100]}


@health_bp.route('/live')
def liveness():
    return jsonify({"status": "alive"}), 200


@health_bp.route('/ready')
def readiness():
    database = check_database_health()
    is_ready = database["healthy"]
    return jsonify({
        "status": "ready" if is_ready else "not_ready",
        "checks": {"database": database},
        "timestamp": datetime.now(timezone.utc).isoformat()
    }), 200 if is_ready else 503


@health_bp.route('/startup')
def startup():
    """
    Returns 200 with the startup report once create_app has validated the
    configuration, 503 if no report was recorded or it has critical failures.
    """
    report = current_app.extensions.get('startup_report')
    if report is None:
        return jsonify({"status": "starting"}), 503

    is_started = not report.has_critical_failures()
    return jsonify({
        "status": "started" if is_started else "failed",
        "report": report.to_dict()
    }), 200 if is_started else 503
