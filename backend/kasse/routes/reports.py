from flask import Blueprint, Response, current_app, jsonify, request

from ..services import pdf_service, report_service, session_service
from ..services.report_service import ReportError, SessionNotFoundError
from ..validation import ValidationError, parse_date_range, require_int


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _optional_user_id():
    user_id = request.args.get("user_id")
    return require_int(user_id, "user_id") if user_id else None


def _pdf_response(report: dict) -> Response:
    filename = pdf_service.pdf_filename(report)
    return Response(
        pdf_service.render_report_pdf(report),
        mimetype="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@reports_bp.get("/sessions/<int:session_id>/x-report")
def x_report(session_id):
    try:
        report = report_service.produce_x_report(session_id, user_id=_optional_user_id())
        return jsonify(report), 200
    except SessionNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except (ReportError, ValidationError) as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to produce X-report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/sessions/<int:session_id>/z-report")
def z_report(session_id):
    try:
        report = report_service.produce_z_report(session_id, user_id=_optional_user_id())
        return jsonify(report), 200
    except SessionNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except (ReportError, ValidationError) as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to produce Z-report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/sessions/<int:session_id>/x-report.pdf")
def x_report_pdf(session_id):
    try:
        report = report_service.produce_x_report(session_id, user_id=_optional_user_id())
        return _pdf_response(report)
    except SessionNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except (ReportError, ValidationError) as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to render X-report PDF")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/sessions/<int:session_id>/z-report.pdf")
def z_report_pdf(session_id):
    try:
        report = report_service.produce_z_report(session_id, user_id=_optional_user_id())
        return _pdf_response(report)
    except SessionNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except (ReportError, ValidationError) as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to render Z-report PDF")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/overview")
def overview():
    try:
        store_id = require_int(request.args.get("store_id"), "store_id")
        from_day, to_day = parse_date_range(request.args.get("from_date"), request.args.get("to_date"))
        if not session_service.get_store(store_id):
            return jsonify({"error": "Store not found"}), 404

        return jsonify(report_service.sales_overview(store_id, from_day, to_day)), 200
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to build sales overview")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/sessions.csv")
def sessions_csv():
    try:
        store_id = require_int(request.args.get("store_id"), "store_id")
        from_day, to_day = parse_date_range(request.args.get("from_date"), request.args.get("to_date"))
        store = session_service.get_store(store_id)
        if not store:
            return jsonify({"error": "Store not found"}), 404

        filename = report_service.csv_filename(store, from_day, to_day)
        return Response(
            report_service.sessions_csv(store_id, from_day, to_day),
            mimetype="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to export sessions CSV")
        return jsonify({"error": "Internal server error"}), 500
