from extensions import db


class AttendanceRecord(db.Model):
    __tablename__ = "co_curricular_attendance"

    id = db.Column(db.Integer, primary_key=True)

    activity_id = db.Column(
        db.Integer,
        db.ForeignKey("co_curricular_activities.id"),
        nullable=False
    )

    student_uid = db.Column(
        db.String(20),
        db.ForeignKey("students.uid"),
        nullable=False
    )

    attendance_status = db.Column(db.Enum("present", "absent", name="attendance_status"), nullable=False)
    marked_by = db.Column(db.String(20), nullable=True)
    marked_at = db.Column(db.DateTime, server_default=db.func.now())
    notes = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("activity_id", "student_uid", name="unique_activity_student"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "activity_id": self.activity_id,
            "student_uid": self.student_uid,
            "attendance_status": self.attendance_status,
            "marked_by": self.marked_by,
            "marked_at": self.marked_at.isoformat() if self.marked_at else None,
            "notes": self.notes,
        }

    def __repr__(self):
        return f"<AttendanceRecord activity={self.activity_id} student={self.student_uid}>"
