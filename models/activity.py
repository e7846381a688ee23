from extensions import db


class CoCurricularActivity(db.Model):
    __tablename__ = "co_curricular_activities"

    id = db.Column(db.Integer, primary_key=True)
    activity_name = db.Column(db.String(150), nullable=False)
    date = db.Column(db.Date, nullable=True)
    time = db.Column(db.String(20), nullable=True)
    venue = db.Column(db.String(150), nullable=True)
    assigned_class = db.Column(db.JSON, nullable=False, default=list)
    comments = db.Column(db.Text, nullable=True)
    cc_points = db.Column(db.Integer, nullable=False, default=0)
    created_by = db.Column(
        db.String(20),
        db.ForeignKey("teachers.employee_code"),
        nullable=True
    )
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    attendance_records = db.relationship(
        "AttendanceRecord",
        backref="activity",
        lazy=True,
        cascade="all, delete-orphan"
    )

    def targets_class(self, class_name):
        if not class_name:
            return False
        wanted = class_name.upper()
        return any(str(c).upper() == wanted for c in (self.assigned_class or []))

    def to_dict(self):
        return {
            "id": self.id,
            "activity_name": self.activity_name,
            "date": self.date.isoformat() if self.date else None,
            "time": self.time,
            "venue": self.venue,
            "assigned_class": list(self.assigned_class or []),
            "comments": self.comments,
            "cc_points": self.cc_points or 0,
        }

    def __repr__(self):
        return f"<CoCurricularActivity {self.activity_name}>"
