from datetime import date

from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import Student, CEPRequirement, CEPSubmission, CEPApproval
from services.aggregation_service import group_by_student, sort_roster
from services.credit_service import normalize_tiers, compute_credits, total_hours
from services.evaluation_service import evaluate_cep_student, find_requirement
from services.report_service import CEPReportRow, build_cep_rows, rows_to_table, progress_percent
from services.storage_service import StorageClient, StorageError, resolve_preview_url
from utils.decorators import page_required, role_required, is_teacher
from utils.helpers import parse_date, parse_number, storage_object_path, report_response
from utils.page_access import COMMUNITY_ENGAGEMENT

cep_bp = Blueprint("cep", __name__, url_prefix="/cep")


# =========================================================
# REQUIREMENTS
# =========================================================

def requirement_from_payload(data, requirement=None):
    assigned_class = (data.get("assigned_class") or "").strip().upper()
    if assigned_class not in current_app.config["CLASS_OPTIONS"]:
        raise ValueError(f"Invalid class '{assigned_class}'")

    minimum_hours = parse_number(data.get("minimum_hours"))
    if minimum_hours is None or minimum_hours < 0:
        raise ValueError("minimum_hours must be a non-negative number")

    tiers = normalize_tiers(data.get("credits_config") or [])

    requirement = requirement or CEPRequirement()
    requirement.assigned_class = assigned_class
    requirement.minimum_hours = minimum_hours
    requirement.deadline = parse_date(data.get("deadline"))
    requirement.credits_config = [{"hours": t.hours, "credits": t.credits} for t in tiers]
    return requirement


@cep_bp.route("/requirements")
@page_required(COMMUNITY_ENGAGEMENT)
def list_requirements():
    try:
        q = CEPRequirement.query
        if not is_teacher():
            q = q.filter_by(assigned_class=current_user.class_name)
        requirements = q.order_by(CEPRequirement.assigned_class.asc()).all()
    except SQLAlchemyError:
        current_app.logger.exception("Loading CEP requirements failed")
        requirements = []

    return jsonify([r.to_dict() for r in requirements])


@cep_bp.route("/requirements", methods=["POST"])
@role_required("teacher")
def create_requirement():
    data = request.get_json(silent=True) or {}
    try:
        requirement = requirement_from_payload(data)
    except (KeyError, TypeError, ValueError) as exc:
        return jsonify({"error": str(exc)}), 400

    try:
        db.session.add(requirement)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), 500

    return jsonify(requirement.to_dict()), 201


@cep_bp.route("/requirements/<int:requirement_id>", methods=["PUT"])
@role_required("teacher")
def update_requirement(requirement_id):
    requirement = db.session.get(CEPRequirement, requirement_id)
    if not requirement:
        return jsonify({"error": "Requirement not found"}), 404

    data = request.get_json(silent=True) or {}
    try:
        requirement_from_payload(data, requirement)
        db.session.commit()
    except (KeyError, TypeError, ValueError) as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), 400
    except SQLAlchemyError as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), 500

    return jsonify(requirement.to_dict())


@cep_bp.route("/requirements/<int:requirement_id>", methods=["DELETE"])
@role_required("teacher")
def delete_requirement(requirement_id):
    requirement = db.session.get(CEPRequirement, requirement_id)
    if not requirement:
        return jsonify({"error": "Requirement not found"}), 404

    try:
        db.session.delete(requirement)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), 500

    return jsonify({"status": "success"})


# =========================================================
# SUBMISSIONS
# =========================================================

@cep_bp.route("/submissions")
@page_required(COMMUNITY_ENGAGEMENT)
def list_submissions():
    if not is_teacher():
        try:
            subs = CEPSubmission.query.filter_by(
                student_uid=current_user.uid
            ).order_by(CEPSubmission.submitted_at.desc()).all()
            approval = CEPApproval.query.filter_by(
                student_uid=current_user.uid,
                class_name=current_user.class_name
            ).first()
            requirement = find_requirement(current_user.class_name)
        except SQLAlchemyError:
            current_app.logger.exception("Loading CEP submissions failed")
            return jsonify({"submissions": [], "approval": None, "progress": None})

        hours = total_hours(subs)
        progress = None
        if requirement:
            progress = {
                "hours_completed": hours,
                "minimum_hours": requirement.minimum_hours,
                "percent": progress_percent(hours, requirement.minimum_hours),
                "eligible_credits": compute_credits(hours, requirement.credits_config),
            }
        return jsonify({
            "submissions": [s.to_dict() for s in subs],
            "approval": approval.to_dict() if approval else None,
            "progress": progress,
        })

    class_filter = request.args.get("class")
    try:
        subs = CEPSubmission.query.order_by(CEPSubmission.submitted_at.desc()).all()
        students = Student.query.all()
        approvals = CEPApproval.query.all()
    except SQLAlchemyError:
        current_app.logger.exception("Loading CEP submissions failed")
        return jsonify({"groups": []})

    students_by_uid = {s.uid: s for s in students}
    approval_map = {(a.student_uid, a.class_name): a for a in approvals}

    groups = []
    for uid, student_subs in group_by_student(subs).items():
        student = students_by_uid.get(uid)
        cls = student.class_name if student else None
        if class_filter and cls != class_filter:
            continue
        approval = approval_map.get((uid, cls))
        groups.append({
            "student_uid": uid,
            "name": student.name if student else uid,
            "class": cls,
            "hours_completed": total_hours(student_subs),
            "submissions": [s.to_dict() for s in student_subs],
            "approval": approval.to_dict() if approval else None,
        })

    return jsonify({"groups": sort_roster(groups, uid_attr="student_uid", class_attr="class")})


@cep_bp.route("/submissions", methods=["POST"])
@role_required("student")
@page_required(COMMUNITY_ENGAGEMENT)
def create_submission():
    activity_name = (request.form.get("activity_name") or "").strip()
    certificate = request.files.get("certificate_file")
    picture = request.files.get("picture_file")

    if not activity_name:
        return jsonify({"error": "activity_name required"}), 400
    if not certificate or not certificate.filename or not picture or not picture.filename:
        return jsonify({"error": "Certificate and picture files are required"}), 400

    try:
        hours = parse_number(request.form.get("hours"))
        activity_date = parse_date(request.form.get("activity_date"))
    except ValueError:
        return jsonify({"error": "Invalid hours or activity_date"}), 400
    if hours is None or hours <= 0:
        return jsonify({"error": "hours must be a positive number"}), 400

    requirement = find_requirement(current_user.class_name)
    if requirement and requirement.deadline and date.today() > requirement.deadline:
        return jsonify({
            "error": f"Submission deadline has passed. Deadline was: {requirement.deadline.isoformat()}"
        }), 403

    storage = StorageClient.from_config()
    try:
        cert_url = storage.upload(
            storage_object_path("cep/certificates", current_user.uid, certificate.filename),
            certificate.read(),
            certificate.mimetype or "application/octet-stream"
        )
        pic_url = storage.upload(
            storage_object_path("cep/pictures", current_user.uid, picture.filename),
            picture.read(),
            picture.mimetype or "application/octet-stream"
        )
    except StorageError as exc:
        current_app.logger.error("CEP upload failed: %s", exc)
        return jsonify({"error": "Upload failed"}), 502

    try:
        submission = CEPSubmission(
            student_uid=current_user.uid,
            activity_name=activity_name,
            hours=hours,
            activity_date=activity_date,
            location=(request.form.get("location") or "").strip(),
            certificate_url=cert_url,
            picture_url=pic_url,
            # the browser may refuse to share a position; store nothing then
            geolocation=(request.form.get("geolocation") or "").strip(),
        )
        db.session.add(submission)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Saving CEP submission failed")
        return jsonify({"error": "Upload failed"}), 500

    return jsonify({
        "status": "success",
        "message": "Activity submitted successfully!",
        "submission": submission.to_dict(),
    }), 201


@cep_bp.route("/submissions/<int:submission_id>", methods=["DELETE"])
@role_required("student")
@page_required(COMMUNITY_ENGAGEMENT)
def delete_submission(submission_id):
    submission = CEPSubmission.query.filter_by(
        id=submission_id,
        student_uid=current_user.uid
    ).first()
    if not submission:
        return jsonify({"error": "Submission not found"}), 404

    try:
        db.session.delete(submission)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), 500

    return jsonify({"status": "success"})


@cep_bp.route("/submissions/<int:submission_id>/preview")
@page_required(COMMUNITY_ENGAGEMENT)
def preview_submission(submission_id):
    kind = request.args.get("file", "certificate")
    if kind not in ("certificate", "picture"):
        return jsonify({"error": "file must be 'certificate' or 'picture'"}), 400

    q = CEPSubmission.query.filter_by(id=submission_id)
    if not is_teacher():
        q = q.filter_by(student_uid=current_user.uid)
    submission = q.first()
    if not submission:
        return jsonify({"error": "Submission not found"}), 404

    url = submission.certificate_url if kind == "certificate" else submission.picture_url
    return jsonify({"url": resolve_preview_url(url)})


# =========================================================
# EVALUATION
# =========================================================

@cep_bp.route("/evaluations/<uid>")
@role_required("teacher")
def get_evaluation(uid):
    student = db.session.get(Student, uid)
    if not student:
        return jsonify({"error": "Student not found"}), 404

    approval = CEPApproval.query.filter_by(student_uid=uid, class_name=student.class_name).first()
    if approval:
        return jsonify(approval.to_dict())

    return jsonify({
        "student_uid": uid,
        "class": student.class_name,
        "approval_status": "pending",
        "credits_allotted": 0,
        "evaluation_notes": "",
    })


@cep_bp.route("/evaluations", methods=["POST"])
@role_required("teacher")
def submit_evaluation():
    data = request.get_json(silent=True) or {}
    uid = (data.get("student_uid") or "").strip()

    student = db.session.get(Student, uid) if uid else None
    if not student:
        return jsonify({"error": "Student not found"}), 404

    approval, error = evaluate_cep_student(
        student_uid=uid,
        class_name=student.class_name,
        status=(data.get("approval_status") or "pending").strip().lower(),
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

@cep_bp.route("/report")
@role_required("teacher")
def report():
    selected_class = (request.args.get("class") or "").strip()
    file_format = request.args.get("format", "excel")
    if not selected_class:
        return jsonify({"error": "class required"}), 400

    try:
        requirement = find_requirement(selected_class)
        students = Student.query.all()
        submissions = CEPSubmission.query.all()
        approvals = CEPApproval.query.all()
    except SQLAlchemyError:
        current_app.logger.exception("Loading CEP report data failed")
        requirement, students, submissions, approvals = None, [], [], []

    try:
        rows = build_cep_rows(students, submissions, requirement, approvals, selected_class)
    except (KeyError, TypeError, ValueError) as exc:
        return jsonify({"error": f"Invalid credits configuration: {exc}"}), 400

    return report_response(
        CEPReportRow.HEADERS,
        rows_to_table(rows),
        sheet_name="CEP Report",
        filename_stem=f"CEP_Report_{selected_class}",
        file_format=file_format,
        title=f"CEP Report - {selected_class.upper()}",
    )
