from functools import wraps
from flask import jsonify
from flask_login import current_user

from utils.page_access import can_access_page


def role_required(required_role):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            # 1. Check if user is logged in
            if not current_user.is_authenticated:
                return jsonify({"error": "Login required"}), 401

            # 2. Check if user has the correct role ("teacher" | "student")
            if getattr(current_user, "role", None) != required_role:
                return jsonify({"error": "Access Denied: You do not have the required role."}), 403

            return func(*args, **kwargs)
        return wrapper
    return decorator


def page_required(page):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({"error": "Login required"}), 401

            if not can_access_page(current_user, page):
                return jsonify({"error": f"Access Denied: '{page}' is not available for your class."}), 403

            return func(*args, **kwargs)
        return wrapper
    return decorator


def is_teacher():
    return current_user.is_authenticated and getattr(current_user, "role", None) == "teacher"
