from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import Student, CoCurricularActivity, AttendanceRecord
from services.aggregation_service import sort_roster
from services.evaluation_service import mark_attendance
from services.report_service import build_attendance_rows
from utils.decorators import page_required, role_required, is_teacher
from utils.helpers import parse_date, report_response
from utils.page_access import CO_CURRICULAR, ATTENDANCE

co_curricular_bp = Blueprint("co_curricular", __name__, url_prefix="/co-curricular")


def activity_from_payload(data, activity=None):
    name = (data.get("activity_name") or data.get("title") or "").strip()
    if not name:
        raise ValueError("activity_name required")

    classes = data.get("assigned_class") or data.get("classes") or []
    if isinstance(classes, str):
        classes = classes.split(",")
    classes = [c.strip().upper() for c in classes if c and c.strip()]

    allowed = current_app.config["CLASS_OPTIONS"]
    invalid = [c for c in classes if c not in allowed]
    if invalid:
        raise ValueError(f"Invalid class: {', '.join(invalid)}")
    if not classes:
        raise ValueError("At least one class must be assigned")

    activity = activity or CoCurricularActivity()
    activity.activity_name = name
    activity.date = parse_date(data.get("date"))
    activity.time = data.get("time")
    activity.venue = data.get("venue")
    activity.assigned_class = classes
    activity.comments = data.get("comments")
    activity.cc_points = int(data.get("cc_points") or 0)
    return activity


# =========================================================
# ACTIVITIES
# =========================================================

@co_curricular_bp.route("/activities")
@page_required(CO_CURRICULAR)
def list_activities():
    try:
        activities = CoCurricularActivity.query.order_by(CoCurricularActivity.date.desc()).all()
    except SQLAlchemyError:
        current_app.logger.exception("Loading activities failed")
        return jsonify([])

    if is_teacher():
        class_filter = request.args.get("class")
        if class_filter:
            activities = [a for a in activities if a.targets_class(class_filter)]
        return jsonify([a.to_dict() for a in activities])

    # students only see activities for their class, with their own status
    activities = [a for a in activities if a.targets_class(current_user.class_name)]
    statuses = {
        r.activity_id: r.attendance_status
        for r in AttendanceRecord.query.filter_by(student_uid=current_user.uid).all()
    }
    payload = []
    for activity in activities:
        item = activity.to_dict()
        item["attendance_status"] = statuses.get(activity.id)
        payload.append(item)
    return jsonify(payload)


@co_curricular_bp.route("/activities", methods=["POST"])
@role_required("teacher")
def create_activity():
    data = request.get_json(silent=True) or {}
    try:
        activity = activity_from_payload(data)
    except (TypeError, ValueError) as exc:
        return jsonify({"error": str(exc)}), 400

    activity.created_by = current_user.employee_code
    try:
        db.session.add(activity)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), 500

    return jsonify(activity.to_dict()), 201


@co_curricular_bp.route("/activities/<int:activity_id>", methods=["PUT"])
@role_required("teacher")
def update_activity(activity_id):
    activity = db.session.get(CoCurricularActivity, activity_id)
    if not activity:
        return jsonify({"error": "Activity not found"}), 404

    data = request.get_json(silent=True) or {}
    try:
        activity_from_payload(data, activity)
        db.session.commit()
    except (TypeError, ValueError) as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), 400
    except SQLAlchemyError as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), 500

    return jsonify(activity.to_dict())


@co_curricular_bp.route("/activities/<int:activity_id>", methods=["DELETE"])
@role_required("teacher")
def delete_activity(activity_id):
    activity = db.session.get(CoCurricularActivity, activity_id)
    if not activity:
        return jsonify({"error": "Activity not found"}), 404

    try:
        db.session.delete(activity)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), 500

    return jsonify({"status": "success"})


# =========================================================
# ATTENDANCE
# =========================================================

@co_curricular_bp.route("/activities/<int:activity_id>/attendance")
@role_required("teacher")
@page_required(ATTENDANCE)
def activity_attendance(activity_id):
    activity = db.session.get(CoCurricularActivity, activity_id)
    if not activity:
        return jsonify({"error": "Activity not found"}), 404

    class_filter = request.args.get("class")
    try:
        students = [
            s for s in Student.query.all()
            if activity.targets_class(s.class_name)
            and (not class_filter or s.class_name == class_filter)
        ]
        records = {
            r.student_uid: r for r in AttendanceRecord.query.filter_by(activity_id=activity_id).all()
        }
    except SQLAlchemyError:
        current_app.logger.exception("Loading attendance for activity %s failed", activity_id)
        return jsonify({"activity": activity.to_dict(), "students": []})

    roster = []
    for student in sort_roster(students):
        record = records.get(student.uid)
        roster.append({
            "uid": student.uid,
            "name": student.name,
            "class": student.class_name,
            "attendance_status": record.attendance_status if record else None,
            "notes": record.notes if record else None,
        })

    present = sum(1 for r in roster if r["attendance_status"] == "present")
    absent = sum(1 for r in roster if r["attendance_status"] == "absent")
    return jsonify({
        "activity": activity.to_dict(),
        "students": roster,
        "counts": {"present": present, "absent": absent},
    })


@co_curricular_bp.route("/activities/<int:activity_id>/attendance", methods=["POST"])
@role_required("teacher")
def submit_attendance(activity_id):
    activity = db.session.get(CoCurricularActivity, activity_id)
    if not activity:
        return jsonify({"error": "Activity not found"}), 404

    data = request.get_json(silent=True) or {}
    student_uid = (data.get("student_uid") or "").strip()
    status = (data.get("attendance_status") or "").strip().lower()

    if not student_uid or not db.session.get(Student, student_uid):
        return jsonify({"error": "Student not found"}), 404

    record, error = mark_attendance(
        activity_id=activity_id,
        student_uid=student_uid,
        status=status,
        marked_by=current_user.employee_code,
        notes=data.get("notes") or "",
    )
    if error:
        status_code = 500 if error.startswith("Failed") else 400
        return jsonify({"error": error}), status_code

    return jsonify({"status": "success", "record": record.to_dict()})


@co_curricular_bp.route("/attendance/report")
@role_required("teacher")
def attendance_report():
    selected_class = (request.args.get("class") or "").strip()
    file_format = request.args.get("format", "excel")
    if not selected_class:
        return jsonify({"error": "class required"}), 400

    try:
        activities = CoCurricularActivity.query.all()
        students = Student.query.all()
        records = AttendanceRecord.query.all()
    except SQLAlchemyError:
        current_app.logger.exception("Loading attendance report data failed")
        activities, students, records = [], [], []

    table = build_attendance_rows(activities, students, records, selected_class)
    return report_response(
        table[0],
        table[1:],
        sheet_name=f"{selected_class} Attendance",
        filename_stem=f"attendance_{selected_class}",
        file_format=file_format,
        title=f"Attendance - {selected_class.upper()}",
    )
