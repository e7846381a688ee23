import re
import time
from datetime import date, datetime

from flask import send_file, jsonify, current_app
from werkzeug.utils import secure_filename

from services.report_service import build_report_file


def parse_date(value):
    if not value:
        return None
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value).strip()[:10], "%Y-%m-%d").date()


def parse_number(value, cast=float):
    if value is None or str(value).strip() == "":
        return None
    return cast(value)


def storage_object_path(folder, owner, filename):
    # e.g. cep/certificates/24BIT015_1718000000000_certificate.pdf
    safe_name = secure_filename(filename or "") or "file"
    return f"{folder}/{owner}_{int(time.time() * 1000)}_{safe_name}"


def report_response(headers, rows, sheet_name, filename_stem, file_format="excel", title=None):
    try:
        buffer, mimetype, ext = build_report_file(
            headers, rows,
            sheet_name=sheet_name,
            file_format=file_format,
            title=title
        )
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    safe_stem = re.sub(r"[^a-zA-Z0-9]+", "_", filename_stem).strip("_")
    current_app.logger.info("Report download %s.%s (%d rows)", safe_stem, ext, len(rows))
    return send_file(buffer, as_attachment=True, download_name=f"{safe_stem}.{ext}", mimetype=mimetype)
