from datetime import date

from extensions import db
from models import (
    CEPApproval, CEPSubmission, CoCurricularActivity,
    AttendanceRecord, FieldProjectApproval
)
from services.evaluation_service import (
    evaluate_cep_student, evaluate_field_project_student,
    mark_attendance, find_requirement
)


def add_cep_hours(uid, *hours):
    for i, h in enumerate(hours):
        db.session.add(CEPSubmission(
            student_uid=uid,
            activity_name=f"Drive {i}",
            hours=h,
            activity_date=date(2024, 8, 1),
        ))
    db.session.commit()


def test_find_requirement_is_case_insensitive(cep_requirement):
    assert find_requirement("syit").id == cep_requirement.id
    assert find_requirement("FYIT") is None
    assert find_requirement("") is None


def test_cep_approval_uses_highest_reached_tier(students, teacher, cep_requirement):
    add_cep_hours("24BIT015", 15, 10)

    approval, error = evaluate_cep_student("24BIT015", "SYIT", "approved", teacher.employee_code)

    assert error is None
    assert approval.credits_allotted == 4
    assert approval.evaluated_by == "EMP001"


def test_cep_rejection_allots_zero(students, teacher, cep_requirement):
    add_cep_hours("24BIT015", 25)

    approval, error = evaluate_cep_student("24BIT015", "SYIT", "rejected", teacher.employee_code, "fake photos")

    assert error is None
    assert approval.credits_allotted == 0
    assert approval.evaluation_notes == "fake photos"


def test_cep_without_requirement_allots_zero(students, teacher):
    add_cep_hours("24BSD007", 40)

    approval, error = evaluate_cep_student("24BSD007", "FYSD", "approved", teacher.employee_code)

    assert error is None
    assert approval.credits_allotted == 0


def test_cep_reevaluation_keeps_single_row(students, teacher, cep_requirement):
    add_cep_hours("24BIT003", 6)

    evaluate_cep_student("24BIT003", "SYIT", "pending", teacher.employee_code)
    evaluate_cep_student("24BIT003", "SYIT", "approved", teacher.employee_code)

    rows = CEPApproval.query.filter_by(student_uid="24BIT003", class_name="SYIT").all()
    assert len(rows) == 1
    assert rows[0].approval_status == "approved"
    assert rows[0].credits_allotted == 1


def test_cep_invalid_status(students, teacher, cep_requirement):
    approval, error = evaluate_cep_student("24BIT015", "SYIT", "maybe", teacher.employee_code)

    assert approval is None
    assert "Invalid approval status" in error
    assert CEPApproval.query.count() == 0


def test_field_project_credits_are_manual(students, teacher):
    approval, error = evaluate_field_project_student(
        "24BIT015", "SYIT", "approved", "3", teacher.employee_code
    )

    assert error is None
    assert approval.credits_allotted == 3

    approval, error = evaluate_field_project_student(
        "24BIT015", "SYIT", "rejected", 2, teacher.employee_code
    )
    assert error is None
    assert FieldProjectApproval.query.count() == 1
    assert approval.approval_status == "rejected"
    assert approval.credits_allotted == 2


def test_field_project_rejects_bad_credits(students, teacher):
    _, error = evaluate_field_project_student("24BIT015", "SYIT", "approved", -1, teacher.employee_code)
    assert error == "Credits cannot be negative"

    _, error = evaluate_field_project_student("24BIT015", "SYIT", "approved", "lots", teacher.employee_code)
    assert error == "Invalid credits value"


def test_mark_attendance_upserts(students, teacher):
    activity = CoCurricularActivity(activity_name="Quiz", assigned_class=["SYIT"], cc_points=2)
    db.session.add(activity)
    db.session.commit()

    _, error = mark_attendance(activity.id, "24BIT015", "present", teacher.employee_code)
    assert error is None
    record, error = mark_attendance(activity.id, "24BIT015", "absent", teacher.employee_code, "left early")
    assert error is None

    rows = AttendanceRecord.query.filter_by(activity_id=activity.id, student_uid="24BIT015").all()
    assert len(rows) == 1
    assert rows[0].attendance_status == "absent"
    assert rows[0].notes == "left early"


def test_mark_attendance_invalid_status(students, teacher):
    record, error = mark_attendance(1, "24BIT015", "late", teacher.employee_code)

    assert record is None
    assert error == "Invalid attendance status: late"
