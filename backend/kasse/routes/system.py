# backend/kasse/routes/system.py
"""
System health endpoint.

Reports database reachability and whether the export storage directory is
writable, for deployment debugging.
"""

import os
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import PosSession, Store
from ..services.export_service import ExportError, storage_dir
from kasse.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        store_count = db.session.query(Store).count()
        closed_sessions = db.session.query(PosSession).filter_by(status="closed").count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "stores": store_count,
                "closed_sessions": closed_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_storage_health() -> dict:
    """SAF-T storage directory exists (or can be created) and is writable."""
    try:
        path = storage_dir("SAFT_STORAGE_DIR")
    except (ExportError, OSError):
        current_app.logger.exception("Storage health check failed")
        return {"status": "unhealthy", "error": "Storage directory unavailable"}

    if not os.access(path, os.W_OK):
        return {"status": "degraded", "warning": "Storage directory is not writable"}
    return {"status": "healthy"}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    storage_health = check_storage_health()

    all_checks = [database_health, storage_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")
    degraded_count = sum(1 for check in all_checks if check["status"] == "degraded")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    elif degraded_count > 0:
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "storage": storage_health,
        }
    }

    return response, http_status
