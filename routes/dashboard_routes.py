from datetime import datetime

from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from models import (
    Student, CoCurricularActivity, AttendanceRecord,
    CEPRequirement, CEPSubmission, CEPApproval,
    FieldProjectSubmission, FieldProjectApproval
)
from models.field_project import DOCUMENT_TYPES
from services.aggregation_service import (
    StatusTally, group_by_student, compute_completeness, tally_approval_status,
    count_complete_students, count_submitters, daily_counts, as_day
)
from services.credit_service import total_hours
from services.evaluation_service import find_requirement
from services.report_service import progress_percent
from utils.decorators import page_required, is_teacher
from utils.page_access import LANDING

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/dashboard")

NEXT_ACTIVITIES_LIMIT = 3
TREND_DAYS = 7


# =========================================================
# HELPERS
# =========================================================

def current_day():
    # stored timestamps are UTC
    return datetime.utcnow().date()


def field_project_tally(class_name):
    """Students of the class who uploaded all four documents, by status."""
    students = Student.query.filter_by(class_name=class_name).all()
    submissions = FieldProjectSubmission.query.filter_by(class_name=class_name).all()
    approvals = FieldProjectApproval.query.filter_by(class_name=class_name).all()

    presence = {
        uid: compute_completeness(DOCUMENT_TYPES, {s.document_type for s in subs})
        for uid, subs in group_by_student(submissions).items()
    }
    approval_map = {a.student_uid: a.approval_status for a in approvals}
    return tally_approval_status(students, presence, approval_map)


def cep_tally(class_name):
    students = Student.query.filter_by(class_name=class_name).all()
    uids = [s.uid for s in students]
    submissions = CEPSubmission.query.filter(CEPSubmission.student_uid.in_(uids)).all() if uids else []
    approvals = CEPApproval.query.filter_by(class_name=class_name).all()

    presence = {uid: True for uid in group_by_student(submissions)}
    approval_map = {a.student_uid: a.approval_status for a in approvals}
    return tally_approval_status(students, presence, approval_map)


def document_counts(submissions):
    counts = {doc: 0 for doc in DOCUMENT_TYPES}
    for sub in submissions:
        if sub.document_type in counts:
            counts[sub.document_type] += 1
    return counts


def upcoming_activities(today, class_name=None):
    activities = CoCurricularActivity.query.filter(
        CoCurricularActivity.date >= today
    ).order_by(CoCurricularActivity.date.asc()).all()
    if class_name:
        activities = [a for a in activities if a.targets_class(class_name)]
    return activities


def activity_attendance(activity_id):
    records = AttendanceRecord.query.filter_by(activity_id=activity_id).all()
    return {
        "activity_id": activity_id,
        "present": sum(1 for r in records if r.attendance_status == "present"),
        "absent": sum(1 for r in records if r.attendance_status == "absent"),
    }


# =========================================================
# TEACHER / STUDENT OVERVIEWS
# =========================================================

def teacher_overview(class_name, today, selected_activity=None):
    fp_submissions = FieldProjectSubmission.query.all()
    cep_submissions = CEPSubmission.query.all()
    upcoming = upcoming_activities(today)

    complete_total, complete_today = count_complete_students(fp_submissions, DOCUMENT_TYPES, today)
    submitters_total, submitters_today = count_submitters(cep_submissions, today)

    activities = CoCurricularActivity.query.order_by(CoCurricularActivity.date.desc()).all()
    activity_options = [
        {"id": a.id, "date": a.date.isoformat() if a.date else None, "name": a.activity_name}
        for a in activities
    ]
    # most recent activity unless one is picked
    if selected_activity is None and activity_options:
        selected_activity = activity_options[0]["id"]

    return {
        "field_project_status": field_project_tally(class_name).to_dict(),
        "cep_status": cep_tally(class_name).to_dict(),
        "upcoming_activities": len(upcoming),
        "next_activities": [a.to_dict() for a in upcoming[:NEXT_ACTIVITIES_LIMIT]],
        "field_project_documents": document_counts(
            s for s in fp_submissions if s.class_name == class_name
        ),
        "field_project_complete": {"total": complete_total, "today": complete_today},
        "cep_submitters": {"total": submitters_total, "today": submitters_today},
        "cep_trend": daily_counts((s.submitted_at for s in cep_submissions), today, TREND_DAYS),
        "cep_deadlines": [
            {"class": r.assigned_class, "deadline": r.deadline.isoformat() if r.deadline else None}
            for r in CEPRequirement.query.order_by(CEPRequirement.assigned_class.asc()).all()
        ],
        "attendance_marked_today": sum(
            1 for r in AttendanceRecord.query.all() if as_day(r.marked_at) == today
        ),
        "activity_options": activity_options,
        "activity_attendance": activity_attendance(selected_activity) if selected_activity else None,
    }


def student_overview(student, today):
    upcoming = upcoming_activities(today, student.class_name)
    records = AttendanceRecord.query.filter_by(student_uid=student.uid).all()

    cep_progress = None
    requirement = find_requirement(student.class_name)
    if requirement:
        hours = total_hours(CEPSubmission.query.filter_by(student_uid=student.uid).all())
        cep_progress = {
            "hours_completed": hours,
            "minimum_hours": requirement.minimum_hours,
            "percent": progress_percent(hours, requirement.minimum_hours),
            "deadline": requirement.deadline.isoformat() if requirement.deadline else None,
        }

    return {
        "field_project_status": field_project_tally(student.class_name).to_dict(),
        "cep_status": cep_tally(student.class_name).to_dict(),
        "upcoming_activities": len(upcoming),
        "next_activities": [a.to_dict() for a in upcoming[:NEXT_ACTIVITIES_LIMIT]],
        "field_project_documents": document_counts(
            FieldProjectSubmission.query.filter_by(student_uid=student.uid).all()
        ),
        "attendance": {
            "present": sum(1 for r in records if r.attendance_status == "present"),
            "absent": sum(1 for r in records if r.attendance_status == "absent"),
        },
        "cep_progress": cep_progress,
    }


def empty_overview():
    return {
        "field_project_status": StatusTally().to_dict(),
        "cep_status": StatusTally().to_dict(),
        "upcoming_activities": 0,
        "next_activities": [],
        "field_project_documents": {doc: 0 for doc in DOCUMENT_TYPES},
    }


# =========================================================
# DASHBOARD
# =========================================================

@dashboard_bp.route("/stats")
@page_required(LANDING)
def stats():
    today = current_day()

    try:
        if is_teacher():
            class_name = request.args.get("class") or current_app.config["CLASS_OPTIONS"][0]
            overview = teacher_overview(
                class_name, today,
                selected_activity=request.args.get("activity_id", type=int)
            )
        else:
            class_name = current_user.class_name
            overview = student_overview(current_user, today)
    except SQLAlchemyError:
        current_app.logger.exception("Loading dashboard stats failed")
        class_name = request.args.get("class") if is_teacher() else current_user.class_name
        overview = empty_overview()

    return jsonify({"class": class_name, **overview})
