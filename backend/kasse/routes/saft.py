# Overview: Flask API routes for SAF-T Cash Register exports; parses input and returns files or JSON.

# backend/kasse/routes/saft.py
"""
SAF-T Export API Routes

WHY: The Norwegian Tax Administration can demand a SAF-T Cash Register file
for any period; stores generate it on request and download it later.

DESIGN:
- POST /generate writes SAF-T_{slug}_{from}_{to}.xml to instance storage
- GET /download/<filename> serves only files named for the requesting store
- GET /content returns the XML directly without touching storage
"""

from flask import Blueprint, Response, current_app, jsonify, request, send_file, url_for

from ..services import export_service, session_service
from ..services.export_service import ExportAccessError, ExportError, ExportNotFoundError
from ..services.saft_service import generate_saft_cash_register
from ..validation import ValidationError, parse_date_range, require_int


saft_bp = Blueprint("saft", __name__, url_prefix="/api/saf-t")


def _load_store(store_id):
    return session_service.get_store(require_int(store_id, "store_id"))


@saft_bp.post("/generate")
def generate():
    """
    Generate and store a SAF-T file.

    Request body:
    {
        "store_id": 1,
        "from_date": "2024-03-01",
        "to_date": "2024-03-31"
    }

    Returns 201 with filename, download_url and size.
    """
    try:
        data = request.get_json(silent=True) or {}
        from_day, to_day = parse_date_range(data.get("from_date"), data.get("to_date"))

        store = _load_store(data.get("store_id"))
        if not store:
            return jsonify({"error": "Store not found"}), 404

        result = export_service.export_saft_file(store, from_day, to_day)

        return jsonify({
            "filename": result["filename"],
            "download_url": url_for("saft.download", filename=result["filename"], store_id=store.id),
            "size": result["size"],
            "from_date": result["from_date"],
            "to_date": result["to_date"],
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ExportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to generate SAF-T file")
        return jsonify({"error": "Internal server error"}), 500


@saft_bp.get("/download/<filename>")
def download(filename):
    try:
        store = _load_store(request.args.get("store_id"))
        if not store:
            return jsonify({"error": "Store not found"}), 404

        path = export_service.resolve_saft_download(store, filename)
        return send_file(path, mimetype="application/xml", as_attachment=True, download_name=filename)

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ExportAccessError as e:
        return jsonify({"error": str(e)}), 403
    except ExportNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to download SAF-T file")
        return jsonify({"error": "Internal server error"}), 500


@saft_bp.get("/content")
def content():
    """Return the generated XML as an attachment without writing it to storage."""
    try:
        from_day, to_day = parse_date_range(request.args.get("from_date"), request.args.get("to_date"))

        store = _load_store(request.args.get("store_id"))
        if not store:
            return jsonify({"error": "Store not found"}), 404

        xml = generate_saft_cash_register(store, from_day, to_day)
        filename = export_service.saft_filename(store, from_day, to_day)

        return Response(
            xml,
            mimetype="application/xml",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to render SAF-T content")
        return jsonify({"error": "Internal server error"}), 500
