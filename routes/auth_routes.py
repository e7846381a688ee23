from flask import Blueprint, request, jsonify, session, current_app
from flask_login import login_user, logout_user, login_required, current_user
from services.auth_service import authenticate_student, authenticate_teacher
from utils.page_access import get_accessible_pages

# Define the blueprint
auth_bp = Blueprint("auth", __name__)


def user_payload(user):
    return {
        "id": user.get_id().split(":", 1)[1],
        "role": user.role,
        "data": user.to_dict(),
        "pages": sorted(get_accessible_pages(user)),
    }


# =========================================================
# LOGIN ROUTE
# =========================================================
@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or request.form
    role = (data.get("role") or "").strip().lower()

    # 1. Basic Validation
    if role == "student":
        uid = data.get("uid")
        email = data.get("email")
        if not uid or not email:
            return jsonify({"error": "UID and email are required for student login"}), 400
        user = authenticate_student(uid, email)

    elif role == "teacher":
        email = data.get("email")
        password = data.get("password")
        if not email or not password:
            return jsonify({"error": "Email and password are required for teacher login"}), 400
        user = authenticate_teacher(email, password)

    else:
        return jsonify({"error": "Role must be 'student' or 'teacher'"}), 400

    # 2. Same answer for unknown user and wrong password
    if not user:
        current_app.logger.info("Failed %s login", role)
        return jsonify({"error": "Invalid credentials"}), 401

    # 3. Log the user in with Flask-Login
    login_user(user)
    session["role"] = user.role

    return jsonify(user_payload(user))


@auth_bp.route("/me")
@login_required
def me():
    return jsonify(user_payload(current_user))


# =========================================================
# LOGOUT ROUTE
# =========================================================
@auth_bp.route("/logout", methods=["POST"])
def logout():
    logout_user()      # Tell Flask-Login to wipe the user session
    session.clear()    # Wipe any manual session data you stored
    return jsonify({"status": "success"})
