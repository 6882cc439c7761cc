"""
Statement Ingest: CSV upload and import API.
JSON responses for the upload page and API clients.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Tuple

from flask import Flask, request
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from statement_ingest.config import PipelineConfig
from statement_ingest.errors import ColumnMappingError, StatementImportError
from statement_ingest.persistence import InMemoryTransactionStore
from statement_ingest.pipeline import StatementImportPipeline
from statement_ingest.schema import ColumnMapping

# -------------------------------------------------------
# App Setup
# -------------------------------------------------------

app = Flask(__name__)

app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"csv"}

# -------------------------------------------------------
# Pipeline Setup
# -------------------------------------------------------

pipeline = StatementImportPipeline(
    config=PipelineConfig(log_level=logging.WARNING)
)

store = InMemoryTransactionStore()

# -------------------------------------------------------
# Helpers
# -------------------------------------------------------

def allowed_file(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def read_upload() -> Tuple[Optional[FileStorage], Optional[str], bytes]:
    """Return ``(file, error, payload)`` for the ``file`` form field."""
    if "file" not in request.files:
        return None, "Missing file", b""

    file = request.files["file"]

    if not file.filename:
        return None, "No file selected", b""

    if not allowed_file(file.filename):
        return None, "Only CSV files are allowed", b""

    return file, None, file.read()


def decode_payload(payload: bytes) -> str:
    # utf-8-sig drops the BOM some banks prepend
    return payload.decode("utf-8-sig")


def parse_mapping_field(raw: Optional[str]) -> Optional[ColumnMapping]:
    if not raw:
        return None
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("mapping must be a JSON object")
    return ColumnMapping.from_dict(data)


def error_response(message: str, status: int, **extra: Any) -> Tuple[Dict[str, Any], int]:
    body: Dict[str, Any] = {"ok": False, "error": message}
    body.update(extra)
    return body, status


# -------------------------------------------------------
# API
# -------------------------------------------------------

@app.route("/api/upload-csv", methods=["POST"])
def api_upload_csv():
    """Parse an upload and return a preview plus a suggested mapping."""
    file, error, payload = read_upload()
    if error:
        return error_response(error, 400)

    try:
        filename = secure_filename(file.filename) or file.filename
        preview = pipeline.preview(decode_payload(payload), filename)
    except UnicodeDecodeError:
        return error_response("File is not valid UTF-8 text", 400)
    except StatementImportError as e:
        return error_response(e.message, e.http_status)
    except Exception:
        logger.exception("Preview of %r failed", file.filename)
        return error_response("Unexpected error while reading the file", 500)

    mapping = pipeline.suggest_mapping(preview.headers)

    body = preview.to_dict()
    body.update({
        "ok": True,
        "filename": filename,
        "size": len(payload),
        "suggestedMapping": mapping.to_dict(),
        "previewValidation": pipeline.validate_preview(preview, mapping).to_dict(),
    })
    return body, 200


@app.route("/api/import", methods=["POST"])
def api_import():
    """Canonicalise, dedup, and store an upload for ``user_id``."""
    file, error, payload = read_upload()
    if error:
        return error_response(error, 400)

    user_id = (request.form.get("user_id") or "").strip()
    if not user_id:
        return error_response("Missing user_id", 400)

    try:
        mapping = parse_mapping_field(request.form.get("mapping"))
    except ValueError as e:
        return error_response(f"Invalid mapping payload: {e}", 400)

    try:
        filename = secure_filename(file.filename) or file.filename
        result = pipeline.import_statement(
            decode_payload(payload),
            filename,
            user_id,
            store,
            mapping=mapping,
        )
    except UnicodeDecodeError:
        return error_response("File is not valid UTF-8 text", 400)
    except ColumnMappingError as e:
        return error_response(e.message, e.http_status, mapping_errors=e.errors)
    except StatementImportError as e:
        logger.warning("Import of %r rejected: %s", file.filename, e.message)
        return error_response(e.message, e.http_status)
    except Exception:
        logger.exception("Import of %r failed", file.filename)
        return error_response("Unexpected error while importing the file", 500)

    body = result.to_dict()
    body["ok"] = True
    return body, 200


@app.route("/api/health", methods=["GET"])
def api_health():
    """Health check endpoint."""
    return {
        "status": "online",
        "version": "1.0.0",
        "api": ["/api/upload-csv", "/api/import"],
        "methods": ["POST"]
    }, 200


if __name__ == "__main__":
    print("=" * 60)
    print("Statement Ingest Server Running")
    print("http://localhost:5000")
    print("=" * 60)

    app.run(host="0.0.0.0", port=5000, debug=True)
