from extensions import db
from flask_login import UserMixin


class Student(UserMixin, db.Model):
    __tablename__ = "students"

    uid = db.Column(db.String(20), primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    # "class" is reserved in Python, keep the column name for the stored schema
    class_name = db.Column("class", db.String(10), nullable=False)
    semester = db.Column(db.Integer, nullable=True)
    email = db.Column(db.String(120), nullable=False)
    phone_number = db.Column(db.String(20), nullable=True)

    role = "student"

    # Flask-Login ids are shared between students and teachers, so prefix them
    def get_id(self):
        return f"student:{self.uid}"

    def to_dict(self):
        return {
            "uid": self.uid,
            "name": self.name,
            "class": self.class_name,
            "semester": self.semester,
            "email": self.email,
            "phone_number": self.phone_number,
        }

    def __repr__(self):
        return f"<Student {self.uid}>"
