from extensions import db

APPROVAL_STATUSES = ("pending", "approved", "rejected")


class CEPRequirement(db.Model):
    __tablename__ = "cep_requirements"

    id = db.Column(db.Integer, primary_key=True)
    assigned_class = db.Column(db.String(10), nullable=False)
    minimum_hours = db.Column(db.Float, nullable=False, default=0)
    deadline = db.Column(db.Date, nullable=True)
    # list of {"hours": ..., "credits": ...}, not kept sorted
    credits_config = db.Column(db.JSON, nullable=False, default=list)

    def to_dict(self):
        return {
            "id": self.id,
            "assigned_class": self.assigned_class,
            "minimum_hours": self.minimum_hours,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "credits_config": list(self.credits_config or []),
        }

    def __repr__(self):
        return f"<CEPRequirement {self.assigned_class}>"


class CEPSubmission(db.Model):
    __tablename__ = "cep_submissions"

    id = db.Column(db.Integer, primary_key=True)

    student_uid = db.Column(
        db.String(20),
        db.ForeignKey("students.uid"),
        nullable=False
    )

    activity_name = db.Column(db.String(150), nullable=False)
    hours = db.Column(db.Float, nullable=False, default=0)
    activity_date = db.Column(db.Date, nullable=True)
    location = db.Column(db.String(255), nullable=True)
    certificate_url = db.Column(db.String(500), nullable=True)
    picture_url = db.Column(db.String(500), nullable=True)
    geolocation = db.Column(db.String(64), nullable=False, default="")
    submitted_at = db.Column(db.DateTime, server_default=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "student_uid": self.student_uid,
            "activity_name": self.activity_name,
            "hours": self.hours,
            "activity_date": self.activity_date.isoformat() if self.activity_date else None,
            "location": self.location,
            "certificate_url": self.certificate_url,
            "picture_url": self.picture_url,
            "geolocation": self.geolocation,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
        }

    def __repr__(self):
        return f"<CEPSubmission {self.student_uid} {self.hours}h>"


class CEPApproval(db.Model):
    __tablename__ = "cep_approvals"

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
        db.UniqueConstraint("student_uid", "class", name="unique_cep_student_class"),
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
        return f"<CEPApproval {self.student_uid} {self.approval_status}>"
