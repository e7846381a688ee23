from extensions import db

DOCUMENT_TYPES = (
    "completion_letter",
    "outcome_form",
    "feedback_form",
    "video_presentation",
)

DOCUMENT_LABELS = {
    "completion_letter": "Completion Letter",
    "outcome_form": "Outcome Form",
    "feedback_form": "Feedback Form",
    "video_presentation": "Video Presentation",
}


class FieldProjectSubmission(db.Model):
    __tablename__ = "field_project_submissions"

    id = db.Column(db.Integer, primary_key=True)

    student_uid = db.Column(
        db.String(20),
        db.ForeignKey("students.uid"),
        nullable=False
    )

    class_name = db.Column("class", db.String(10), nullable=False)
    document_type = db.Column(db.String(30), nullable=False)
    file_url = db.Column(db.String(500), nullable=False)
    file_name = db.Column(db.String(255), nullable=True)
    uploaded_at = db.Column(db.DateTime, server_default=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "student_uid": self.student_uid,
            "class": self.class_name,
            "document_type": self.document_type,
            "file_url": self.file_url,
            "file_name": self.file_name,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }

    def __repr__(self):
        return f"<FieldProjectSubmission {self.student_uid} {self.document_type}>"


class FieldProjectApproval(db.Model):
    __tablename__ = "field_project_approvals"

    id = db.Column(db.Integer, primary_key=True)
    student_uid = db.Column(
        db.String(20),
        db.ForeignKey("students.uid"),
        nullable=False
    )
    class_name = db.Column("class", db.String(10), nullable=False)
    approval_status = db.Column(db.String(10), nullable=False, default="pending")
    credits_allotted = db.Column(db.Integer, nullable=False, default=0)
    evaluated_by = db.Column(db.String(20), nullable=True)
    evaluated_at = db.Column(db.DateTime, nullable=True)
    evaluation_notes = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("student_uid", "class", name="unique_fp_student_class"),
    )

    def to_dict(self):
        return {
            "student_uid": self.student_uid,
            "class": self.class_name,
            "approval_status": self.approval_status,
            "credits_allotted": self.credits_allotted,
            "evaluated_by": self.evaluated_by,
            "evaluated_at": self.evaluated_at.isoformat() if self.evaluated_at else None,
            "evaluation_notes": self.evaluation_notes,
        }

    def __repr__(self):
        return f"<FieldProjectApproval {self.student_uid} {self.approval_status}>"
