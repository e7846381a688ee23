from extensions import db
from models.student import Student
from models.teacher import Teacher
from utils.password_utils import verify_password


def authenticate_student(uid: str, email: str):
    if not uid or not email:
        return None

    return Student.query.filter_by(uid=uid.strip(), email=email.strip()).first()


def authenticate_teacher(email: str, password: str):
    if not email or not password:
        return None

    teacher = Teacher.query.filter_by(email=email.strip()).first()

    if not teacher:
        return None

    # legacy rows may still hold a plain password, verify_password handles both
    if not verify_password(password, teacher.password or ""):
        return None

    return teacher


def load_session_user(user_id: str):
    """Resolve a Flask-Login id ("teacher:<code>" / "student:<uid>")."""
    role, _, key = (user_id or "").partition(":")
    if role == "teacher":
        return db.session.get(Teacher, key)
    if role == "student":
        return db.session.get(Student, key)
    return None
