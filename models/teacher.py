from extensions import db
from flask_login import UserMixin


class Teacher(UserMixin, db.Model):
    __tablename__ = "teachers"

    employee_code = db.Column(db.String(20), primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    role = "teacher"

    def get_id(self):
        return f"teacher:{self.employee_code}"

    def to_dict(self):
        # never expose the stored hash
        return {
            "employee_code": self.employee_code,
            "name": self.name,
            "email": self.email,
        }

    def __repr__(self):
        return f"<Teacher {self.employee_code}>"
