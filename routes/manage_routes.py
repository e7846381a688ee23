from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models import (
    Student, Teacher, CoCurricularActivity, AttendanceRecord,
    CEPSubmission, CEPApproval,
    FieldProjectSubmission, FieldProjectApproval
)
from services.aggregation_service import sort_roster
from utils.decorators import role_required
from utils.password_utils import hash_password

manage_bp = Blueprint("manage", __name__, url_prefix="/manage")


# =========================================================
# HELPERS
# =========================================================

def parse_semester_value(value):
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def valid_class(value):
    return (value or "").strip().upper() in current_app.config["CLASS_OPTIONS"]


STUDENT_DEPENDENTS = (
    AttendanceRecord,
    CEPSubmission,
    CEPApproval,
    FieldProjectSubmission,
    FieldProjectApproval,
)


def delete_student_records(uids):
    """Remove every row that references the given students (same transaction)."""
    if not uids:
        return
    for model in STUDENT_DEPENDENTS:
        model.query.filter(model.student_uid.in_(uids)).delete(synchronize_session=False)


# =========================================================
# STUDENT MANAGEMENT
# =========================================================

@manage_bp.route("/students")
@role_required("teacher")
def list_students():
    class_filter = request.args.get("class")
    search = (request.args.get("q") or "").strip().lower()

    try:
        q = Student.query
        if class_filter:
            q = q.filter_by(class_name=class_filter)
        students = q.all()
    except SQLAlchemyError:
        current_app.logger.exception("Loading students failed")
        students = []

    if search:
        students = [
            s for s in students
            if search in s.uid.lower() or search in s.name.lower() or search in (s.email or "").lower()
        ]

    return jsonify([s.to_dict() for s in sort_roster(students)])


@manage_bp.route("/students/<uid>", methods=["PUT"])
@role_required("teacher")
def update_student(uid):
    student = db.session.get(Student, uid)
    if not student:
        return jsonify({"error": "Student not found"}), 404

    data = request.get_json(silent=True) or {}

    new_class = data.get("class")
    if new_class is not None:
        if not valid_class(new_class):
            return jsonify({
                "error": "Invalid class. Allowed: " + ", ".join(current_app.config["CLASS_OPTIONS"])
            }), 400
        student.class_name = new_class.strip().upper()

    if data.get("name"):
        student.name = data["name"].strip()
    if data.get("email"):
        student.email = data["email"].strip()
    if "phone_number" in data:
        student.phone_number = (data.get("phone_number") or "").strip() or None
    if "semester" in data:
        student.semester = parse_semester_value(data.get("semester"))

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Updating student %s failed", uid)
        return jsonify({"error": "Update failed"}), 500

    return jsonify(student.to_dict())


@manage_bp.route("/students/bulk-delete", methods=["POST"])
@role_required("teacher")
def bulk_delete_students():
    data = request.get_json(silent=True) or {}
    bulk_class = (data.get("class") or "").strip().upper()
    if not valid_class(bulk_class):
        return jsonify({"error": "Please select a class"}), 400

    try:
        uids = [uid for (uid,) in db.session.query(Student.uid).filter_by(class_name=bulk_class).all()]
        delete_student_records(uids)
        deleted = Student.query.filter_by(class_name=bulk_class).delete(synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Bulk delete for %s failed", bulk_class)
        return jsonify({"error": "Bulk delete failed"}), 500

    current_app.logger.info("%s deleted %d students in %s", current_user.employee_code, deleted, bulk_class)
    return jsonify({"status": "success", "message": f"Deleted all students in {bulk_class}", "deleted": deleted})


@manage_bp.route("/students/bulk-semester", methods=["POST"])
@role_required("teacher")
def bulk_update_semester():
    data = request.get_json(silent=True) or {}
    bulk_class = (data.get("class") or "").strip().upper()
    semester = parse_semester_value(data.get("semester"))

    if not valid_class(bulk_class):
        return jsonify({"error": "Please select a class"}), 400
    if semester is None or semester <= 0:
        return jsonify({"error": "Enter a valid semester number"}), 400

    try:
        updated = Student.query.filter_by(class_name=bulk_class).update(
            {Student.semester: semester},
            synchronize_session=False
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Bulk semester update for %s failed", bulk_class)
        return jsonify({"error": "Bulk update failed"}), 500

    return jsonify({
        "status": "success",
        "message": f"Updated {bulk_class} to semester {semester}",
        "updated": updated,
    })


# =========================================================
# TEACHER MANAGEMENT
# =========================================================

@manage_bp.route("/teachers")
@role_required("teacher")
def list_teachers():
    try:
        teachers = Teacher.query.order_by(Teacher.name.asc()).all()
    except SQLAlchemyError:
        current_app.logger.exception("Loading teachers failed")
        teachers = []
    return jsonify([t.to_dict() for t in teachers])


@manage_bp.route("/teachers", methods=["POST"])
@role_required("teacher")
def add_teacher():
    data = request.get_json(silent=True) or {}
    code = (data.get("employee_code") or "").strip()
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""

    if not code or not name or not email or not password:
        return jsonify({"error": "Please fill all fields"}), 400

    if db.session.get(Teacher, code):
        return jsonify({"error": "Teacher already exists (duplicate employee code)."}), 409

    try:
        teacher = Teacher(
            employee_code=code,
            name=name,
            email=email,
            password=hash_password(password)
        )
        db.session.add(teacher)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "Teacher already exists (duplicate employee code or email)."}), 409
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Adding teacher %s failed", code)
        return jsonify({"error": "Failed to add/update teacher"}), 500

    return jsonify(teacher.to_dict()), 201


@manage_bp.route("/teachers/<code>", methods=["PUT"])
@role_required("teacher")
def update_teacher(code):
    teacher = db.session.get(Teacher, code)
    if not teacher:
        return jsonify({"error": "Teacher not found"}), 404

    data = request.get_json(silent=True) or {}
    if data.get("name"):
        teacher.name = data["name"].strip()
    if data.get("email"):
        teacher.email = data["email"].strip()
    if data.get("password"):
        teacher.password = hash_password(data["password"])

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "Email already in use"}), 409
    except SQLAlchemyError:
        db.session.rollback()
        return jsonify({"error": "Update failed"}), 500

    return jsonify(teacher.to_dict())


@manage_bp.route("/teachers/<code>", methods=["DELETE"])
@role_required("teacher")
def delete_teacher(code):
    # Prevent a teacher from accidentally deleting themselves
    if code == current_user.employee_code:
        return jsonify({"error": "You cannot delete your own account."}), 400

    teacher = db.session.get(Teacher, code)
    if not teacher:
        return jsonify({"error": "Teacher not found"}), 404

    try:
        # activities outlive their author
        CoCurricularActivity.query.filter_by(created_by=code).update(
            {CoCurricularActivity.created_by: None},
            synchronize_session=False
        )
        db.session.delete(teacher)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        return jsonify({"error": "Delete failed"}), 500

    return jsonify({"status": "deleted"})
