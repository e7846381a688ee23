import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import (
    CEPApproval, CEPRequirement, CEPSubmission,
    FieldProjectApproval, AttendanceRecord
)
from models.cep import APPROVAL_STATUSES
from services.credit_service import compute_credits, evaluate_approval, total_hours

logger = logging.getLogger(__name__)


def _upsert_approval(model, student_uid, class_name, **values):
    """Insert or update the single approval row for (student, class).

    Runs inside the caller's transaction; the unique constraint on
    (student_uid, class) keeps one row per pair.
    """
    approval = model.query.filter_by(
        student_uid=student_uid,
        class_name=class_name
    ).first()

    if not approval:
        approval = model(student_uid=student_uid, class_name=class_name)
        db.session.add(approval)

    for key, value in values.items():
        setattr(approval, key, value)
    return approval


def find_requirement(class_name):
    if not class_name:
        return None
    return CEPRequirement.query.filter(
        db.func.upper(CEPRequirement.assigned_class) == class_name.upper()
    ).first()


def evaluate_cep_student(student_uid, class_name, status, evaluated_by, notes=""):
    """Record a CEP decision. Returns ``(approval, error)``."""
    if status not in APPROVAL_STATUSES:
        return None, f"Invalid approval status: {status}"

    submissions = CEPSubmission.query.filter_by(student_uid=student_uid).all()
    hours = total_hours(submissions)
    requirement = find_requirement(class_name)
    tiers = requirement.credits_config if requirement else []

    try:
        credits = evaluate_approval(status, compute_credits(hours, tiers))
    except (KeyError, TypeError, ValueError) as exc:
        return None, f"Invalid credits configuration for {class_name}: {exc}"

    try:
        approval = _upsert_approval(
            CEPApproval, student_uid, class_name,
            approval_status=status,
            credits_allotted=credits,
            evaluated_by=evaluated_by,
            evaluated_at=datetime.utcnow(),
            evaluation_notes=notes or "",
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("CEP evaluation failed for %s (%s)", student_uid, class_name)
        return None, "Failed to submit evaluation"

    logger.info(
        "CEP evaluation %s/%s -> %s, %sh, %s credits",
        student_uid, class_name, status, hours, credits
    )
    return approval, None


def evaluate_field_project_student(student_uid, class_name, status, credits, evaluated_by, notes=""):
    """Record a Field Project decision; credits are entered by the teacher."""
    if status not in APPROVAL_STATUSES:
        return None, f"Invalid approval status: {status}"

    try:
        credits = int(credits or 0)
    except (TypeError, ValueError):
        return None, "Invalid credits value"
    if credits < 0:
        return None, "Credits cannot be negative"

    try:
        approval = _upsert_approval(
            FieldProjectApproval, student_uid, class_name,
            approval_status=status,
            credits_allotted=credits,
            evaluated_by=evaluated_by,
            evaluated_at=datetime.utcnow(),
            evaluation_notes=notes or "",
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Field project evaluation failed for %s (%s)", student_uid, class_name)
        return None, "Failed to submit evaluation"

    logger.info("Field project evaluation %s/%s -> %s, %s credits", student_uid, class_name, status, credits)
    return approval, None


def mark_attendance(activity_id, student_uid, status, marked_by, notes=""):
    """Upsert the attendance row for (activity, student)."""
    if status not in ("present", "absent"):
        return None, f"Invalid attendance status: {status}"

    try:
        record = AttendanceRecord.query.filter_by(
            activity_id=activity_id,
            student_uid=student_uid
        ).first()
        if not record:
            record = AttendanceRecord(activity_id=activity_id, student_uid=student_uid)
            db.session.add(record)

        record.attendance_status = status
        record.marked_by = marked_by
        record.marked_at = datetime.utcnow()
        record.notes = notes or ""
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Marking attendance failed for activity=%s student=%s", activity_id, student_uid)
        return None, "Failed to mark attendance"

    return record, None
