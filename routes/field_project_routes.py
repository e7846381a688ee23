from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import Student, FieldProjectSubmission, FieldProjectApproval
from models.field_project import DOCUMENT_TYPES, DOCUMENT_LABELS
from services.aggregation_service import group_by_student_and_class, roster_sort_key
from services.evaluation_service import evaluate_field_project_student
from services.report_service import FieldProjectReportRow, build_field_project_rows, rows_to_table
from services.storage_service import StorageClient, StorageError, extract_storage_path, resolve_preview_url
from utils.decorators import page_required, role_required, is_teacher
from utils.helpers import storage_object_path, report_response
from utils.page_access import FIELD_PROJECT

field_project_bp = Blueprint("field_project", __name__, url_prefix="/field-project")


# =========================================================
# HELPERS
# =========================================================

def filter_submissions(submissions, students_by_uid, class_filter=None, uid_filter=None, name_filter=None):
    uid_filter = (uid_filter or "").lower()
    name_filter = (name_filter or "").lower()

    result = []
    for sub in submissions:
        student = students_by_uid.get(sub.student_uid)
        if class_filter and sub.class_name != class_filter:
            continue
        if uid_filter and uid_filter not in sub.student_uid.lower():
            continue
        if name_filter and not (student and name_filter in student.name.lower()):
            continue
        result.append(sub)
    return result


def grouped_payload(submissions, students_by_uid, approvals):
    approval_map = {(a.student_uid, a.class_name): a for a in approvals}
    groups = group_by_student_and_class(submissions)

    payload = []
    for (uid, cls), subs in groups.items():
        student = students_by_uid.get(uid)
        approval = approval_map.get((uid, cls))
        payload.append({
            "student_uid": uid,
            "name": student.name if student else uid,
            "class": cls,
            "submissions": [s.to_dict() for s in subs],
            "documents_submitted": len({s.document_type for s in subs} & set(DOCUMENT_TYPES)),
            "approval": approval.to_dict() if approval else None,
        })

    payload.sort(key=lambda g: roster_sort_key(g["class"], g["student_uid"]))
    return payload


# =========================================================
# SUBMISSIONS
# =========================================================

@field_project_bp.route("/document-types")
@page_required(FIELD_PROJECT)
def document_types():
    return jsonify([
        {"type": doc, "label": DOCUMENT_LABELS[doc]} for doc in DOCUMENT_TYPES
    ])


@field_project_bp.route("/submissions")
@page_required(FIELD_PROJECT)
def list_submissions():
    try:
        if not is_teacher():
            subs = FieldProjectSubmission.query.filter_by(
                student_uid=current_user.uid
            ).order_by(FieldProjectSubmission.uploaded_at.desc()).all()
            approval = FieldProjectApproval.query.filter_by(
                student_uid=current_user.uid,
                class_name=current_user.class_name
            ).first()
            return jsonify({
                "submissions": [s.to_dict() for s in subs],
                "approval": approval.to_dict() if approval else None,
            })

        subs = FieldProjectSubmission.query.order_by(FieldProjectSubmission.uploaded_at.desc()).all()
        students_by_uid = {s.uid: s for s in Student.query.all()}
        approvals = FieldProjectApproval.query.all()
    except SQLAlchemyError:
        current_app.logger.exception("Loading field project submissions failed")
        return jsonify({"submissions": [], "groups": []})

    filtered = filter_submissions(
        subs, students_by_uid,
        class_filter=request.args.get("class"),
        uid_filter=request.args.get("uid"),
        name_filter=request.args.get("name"),
    )
    return jsonify({"groups": grouped_payload(filtered, students_by_uid, approvals)})


@field_project_bp.route("/submissions", methods=["POST"])
@role_required("student")
@page_required(FIELD_PROJECT)
def upload_document():
    document_type = (request.form.get("document_type") or "").strip()
    file = request.files.get("file")

    if document_type not in DOCUMENT_TYPES:
        return jsonify({"error": f"Unknown document type: {document_type}"}), 400
    if not file or not file.filename:
        return jsonify({"error": "File required"}), 400

    path = storage_object_path(f"field_project/{document_type}", current_user.uid, file.filename)
    storage = StorageClient.from_config()

    try:
        public_url = storage.upload(path, file.read(), file.mimetype or "application/octet-stream")
    except StorageError as exc:
        current_app.logger.error("Field project upload failed: %s", exc)
        return jsonify({"error": f"Upload failed: {exc}"}), 502

    try:
        submission = FieldProjectSubmission(
            student_uid=current_user.uid,
            class_name=current_user.class_name,
            document_type=document_type,
            file_url=public_url,
            file_name=file.filename,
        )
        db.session.add(submission)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        # the stored object is left behind, nothing cleans it up
        current_app.logger.exception("Saving field project submission failed")
        return jsonify({"error": str(exc)}), 500

    return jsonify({
        "status": "success",
        "message": f"{DOCUMENT_LABELS[document_type]} uploaded successfully!",
        "submission": submission.to_dict(),
    }), 201


@field_project_bp.route("/submissions/<int:submission_id>", methods=["DELETE"])
@page_required(FIELD_PROJECT)
def delete_submission(submission_id):
    q = FieldProjectSubmission.query.filter_by(id=submission_id)
    if not is_teacher():
        q = q.filter_by(student_uid=current_user.uid)
    submission = q.first()

    if not submission:
        return jsonify({"error": "Submission not found"}), 404

    file_url = submission.file_url
    try:
        db.session.delete(submission)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        return jsonify({"error": f"Delete failed: {exc}"}), 500

    storage = StorageClient.from_config()
    file_path = extract_storage_path(file_url, storage.bucket)
    if file_path:
        try:
            storage.remove([file_path])
        except StorageError as exc:
            # row is already gone; a stray object is harmless
            current_app.logger.warning("Could not remove %s: %s", file_path, exc)

    return jsonify({"status": "success", "message": "Submission deleted successfully!"})


@field_project_bp.route("/submissions/<int:submission_id>/preview")
@page_required(FIELD_PROJECT)
def preview_submission(submission_id):
    q = FieldProjectSubmission.query.filter_by(id=submission_id)
    if not is_teacher():
        q = q.filter_by(student_uid=current_user.uid)
    submission = q.first()

    if not submission:
        return jsonify({"error": "Submission not found"}), 404

    return jsonify({"url": resolve_preview_url(submission.file_url)})


# =========================================================
# EVALUATION
# =========================================================

@field_project_bp.route("/evaluations/<uid>")
@role_required("teacher")
def get_evaluation(uid):
    student = db.session.get(Student, uid)
    if not student:
        return jsonify({"error": "Student not found"}), 404

    class_name = request.args.get("class") or student.class_name
    approval = FieldProjectApproval.query.filter_by(student_uid=uid, class_name=class_name).first()
    if approval:
        return jsonify(approval.to_dict())

    return jsonify({
        "student_uid": uid,
        "class": class_name,
        "approval_status": "pending",
        "credits_allotted": 0,
        "evaluation_notes": "",
    })


@field_project_bp.route("/evaluations", methods=["POST"])
@role_required("teacher")
def submit_evaluation():
    data = request.get_json(silent=True) or {}
    uid = (data.get("student_uid") or "").strip()

    student = db.session.get(Student, uid) if uid else None
    if not student:
        return jsonify({"error": "Student not found"}), 404

    approval, error = evaluate_field_project_student(
        student_uid=uid,
        class_name=data.get("class") or student.class_name,
        status=(data.get("approval_status") or "pending").strip().lower(),
        credits=data.get("credits_allotted", 0),
        evaluated_by=current_user.employee_code,
        notes=data.get("evaluation_notes") or "",
    )
    if error:
        status_code = 500 if error.startswith("Failed") else 400
        return jsonify({"error": error}), status_code

    return jsonify({"status": "success", "approval": approval.to_dict()})


# =========================================================
# REPORT
# =========================================================

@field_project_bp.route("/report")
@role_required("teacher")
def report():
    selected_class = (request.args.get("class") or "").strip()
    file_format = request.args.get("format", "excel")
    if not selected_class:
        return jsonify({"error": "class required"}), 400

    try:
        subs = FieldProjectSubmission.query.all()
        students = Student.query.all()
        approvals = FieldProjectApproval.query.all()
    except SQLAlchemyError:
        current_app.logger.exception("Loading field project report data failed")
        subs, students, approvals = [], [], []

    rows = build_field_project_rows(subs, students, approvals, selected_class)
    return report_response(
        FieldProjectReportRow.HEADERS,
        rows_to_table(rows),
        sheet_name="Field Project Report",
        filename_stem=f"field_project_report_{selected_class}",
        file_format=file_format,
        title=f"Field Project Report - {selected_class.upper()}",
    )
