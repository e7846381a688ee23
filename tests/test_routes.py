from datetime import date, datetime, timedelta
from io import BytesIO

from extensions import db
from models import (
    AttendanceRecord, CEPApproval, CEPRequirement, CEPSubmission, CoCurricularActivity,
    FieldProjectApproval, FieldProjectSubmission, Student, Teacher
)
from models.field_project import DOCUMENT_TYPES
from tests.conftest import TEACHER_PASSWORD


def login_student(client, uid, email):
    return client.post("/login", json={"role": "student", "uid": uid, "email": email})


# =========================================================
# AUTH
# =========================================================

def test_teacher_login_returns_all_pages(client, teacher):
    resp = client.post("/login", json={
        "role": "teacher",
        "email": "asha@college.test",
        "password": TEACHER_PASSWORD,
    })

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["id"] == "EMP001"
    assert body["role"] == "teacher"
    assert "password" not in body["data"]
    assert len(body["pages"]) == 6


def test_failed_logins_are_indistinguishable(client, teacher):
    wrong_password = client.post("/login", json={
        "role": "teacher", "email": "asha@college.test", "password": "nope"
    })
    unknown_user = client.post("/login", json={
        "role": "teacher", "email": "ghost@college.test", "password": "nope"
    })

    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.get_json() == unknown_user.get_json() == {"error": "Invalid credentials"}


def test_login_validates_role_and_fields(client):
    assert client.post("/login", json={"role": "admin"}).status_code == 400
    assert client.post("/login", json={"role": "student", "uid": "24BIT015"}).status_code == 400


def test_me_lists_student_pages(student_client):
    resp = student_client.get("/me")

    assert resp.status_code == 200
    assert resp.get_json()["pages"] == [
        "co-curricular", "community-engagement", "field-project", "landing"
    ]


def test_logout_clears_session(student_client):
    assert student_client.post("/logout").status_code == 200
    assert student_client.get("/me").status_code == 401


def test_anonymous_requests_are_rejected(client):
    assert client.get("/manage/students").status_code == 401
    assert client.get("/dashboard/stats").status_code == 401


# =========================================================
# PAGE AND ROLE GUARDS
# =========================================================

def test_first_year_student_cannot_open_field_project(client, students):
    login_student(client, "24BSD007", "sana@college.test")

    assert client.get("/field-project/submissions").status_code == 403
    assert client.get("/co-curricular/activities").status_code == 200


def test_student_cannot_evaluate(student_client):
    resp = student_client.post("/cep/evaluations", json={
        "student_uid": "24BIT015", "approval_status": "approved"
    })
    assert resp.status_code == 403


def test_student_cannot_manage(student_client):
    assert student_client.get("/manage/teachers").status_code == 403


# =========================================================
# FIELD PROJECT
# =========================================================

def test_field_project_upload_and_preview(student_client, fake_storage):
    resp = student_client.post(
        "/field-project/submissions",
        data={
            "document_type": "completion_letter",
            "file": (BytesIO(b"%PDF-1.4 letter"), "letter.pdf"),
        },
        content_type="multipart/form-data",
    )

    assert resp.status_code == 201
    submission = resp.get_json()["submission"]
    assert submission["class"] == "SYIT"
    assert submission["file_name"] == "letter.pdf"

    (path,) = fake_storage.objects
    assert path.startswith("field_project/completion_letter/24BIT015_")
    assert fake_storage.objects[path] == b"%PDF-1.4 letter"

    listing = student_client.get("/field-project/submissions").get_json()
    assert len(listing["submissions"]) == 1
    assert listing["approval"] is None

    preview = student_client.get(f"/field-project/submissions/{submission['id']}/preview").get_json()
    assert "/object/sign/student-submissions/field_project/completion_letter/" in preview["url"]


def test_field_project_upload_rejects_unknown_type(student_client, fake_storage):
    resp = student_client.post(
        "/field-project/submissions",
        data={"document_type": "essay", "file": (BytesIO(b"x"), "essay.pdf")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert fake_storage.objects == {}


def test_field_project_delete_removes_stored_file(student_client, fake_storage):
    resp = student_client.post(
        "/field-project/submissions",
        data={"document_type": "outcome_form", "file": (BytesIO(b"form"), "outcome.pdf")},
        content_type="multipart/form-data",
    )
    submission_id = resp.get_json()["submission"]["id"]

    resp = student_client.delete(f"/field-project/submissions/{submission_id}")

    assert resp.status_code == 200
    assert FieldProjectSubmission.query.count() == 0
    assert fake_storage.removed == list(fake_storage.objects)


def test_teacher_field_project_evaluation(teacher_client, students):
    resp = teacher_client.post("/field-project/evaluations", json={
        "student_uid": "24BIT015",
        "approval_status": "approved",
        "credits_allotted": 2,
    })
    assert resp.status_code == 200

    current = teacher_client.get("/field-project/evaluations/24BIT015").get_json()
    assert current["approval_status"] == "approved"
    assert current["credits_allotted"] == 2

    bad = teacher_client.post("/field-project/evaluations", json={
        "student_uid": "24BIT015", "approval_status": "approved", "credits_allotted": -3
    })
    assert bad.status_code == 400


# =========================================================
# CEP
# =========================================================

def test_cep_submission_with_optional_geolocation(student_client, cep_requirement, fake_storage):
    resp = student_client.post(
        "/cep/submissions",
        data={
            "activity_name": "Blood donation camp",
            "hours": "6",
            "activity_date": "2024-08-01",
            "location": "Town hall",
            "certificate_file": (BytesIO(b"cert"), "cert.pdf"),
            "picture_file": (BytesIO(b"pic"), "pic.jpg"),
        },
        content_type="multipart/form-data",
    )

    assert resp.status_code == 201
    submission = resp.get_json()["submission"]
    assert submission["geolocation"] == ""
    assert submission["hours"] == 6.0
    assert len(fake_storage.objects) == 2

    progress = student_client.get("/cep/submissions").get_json()["progress"]
    assert progress["hours_completed"] == 6.0
    assert progress["percent"] == 30.0
    assert progress["eligible_credits"] == 1


def test_cep_submission_after_deadline_is_refused(student_client, fake_storage):
    db.session.add(CEPRequirement(
        assigned_class="SYIT",
        minimum_hours=10,
        deadline=date(2020, 1, 1),
        credits_config=[{"hours": 10, "credits": 1}],
    ))
    db.session.commit()

    resp = student_client.post(
        "/cep/submissions",
        data={
            "activity_name": "Late drive",
            "hours": "4",
            "certificate_file": (BytesIO(b"cert"), "cert.pdf"),
            "picture_file": (BytesIO(b"pic"), "pic.jpg"),
        },
        content_type="multipart/form-data",
    )

    assert resp.status_code == 403
    assert fake_storage.objects == {}


def test_teacher_cep_evaluation_computes_credits(teacher_client, students, cep_requirement):
    db.session.add_all([
        CEPSubmission(student_uid="24BIT015", activity_name="Drive", hours=12),
        CEPSubmission(student_uid="24BIT015", activity_name="Camp", hours=9),
    ])
    db.session.commit()

    resp = teacher_client.post("/cep/evaluations", json={
        "student_uid": "24BIT015",
        "approval_status": "approved",
        "evaluation_notes": "verified",
    })

    assert resp.status_code == 200
    approval = resp.get_json()["approval"]
    assert approval["credits_allotted"] == 4
    assert approval["class"] == "SYIT"

    resp = teacher_client.post("/cep/evaluations", json={
        "student_uid": "24BIT015", "approval_status": "rejected"
    })
    assert resp.get_json()["approval"]["credits_allotted"] == 0
    assert CEPApproval.query.count() == 1


def test_cep_requirement_validation(teacher_client):
    resp = teacher_client.post("/cep/requirements", json={
        "assigned_class": "TYIT", "minimum_hours": 10
    })
    assert resp.status_code == 400

    resp = teacher_client.post("/cep/requirements", json={
        "assigned_class": "sysd",
        "minimum_hours": 40,
        "deadline": "2099-03-31",
        "credits_config": [{"hours": 20, "credits": 1}, {"hours": 40, "credits": 2}],
    })
    assert resp.status_code == 201
    assert resp.get_json()["assigned_class"] == "SYSD"


def test_cep_report_downloads_excel(teacher_client, students, cep_requirement):
    resp = teacher_client.get("/cep/report?class=SYIT")

    assert resp.status_code == 200
    assert resp.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    assert "CEP_Report_SYIT.xlsx" in resp.headers["Content-Disposition"]


def test_report_requires_class_and_known_format(teacher_client, students):
    assert teacher_client.get("/cep/report").status_code == 400
    assert teacher_client.get("/field-project/report?class=SYIT&format=docx").status_code == 400


# =========================================================
# CO-CURRICULAR
# =========================================================

def test_attendance_marking_and_roster_order(teacher_client, students):
    resp = teacher_client.post("/co-curricular/activities", json={
        "activity_name": "Quiz",
        "date": "2024-09-10",
        "assigned_class": "SYIT, fysd",
        "cc_points": 3,
    })
    assert resp.status_code == 201
    activity_id = resp.get_json()["id"]

    for uid, status in (("24BIT015", "present"), ("24BIT015", "absent"), ("24BIT003", "present")):
        resp = teacher_client.post(f"/co-curricular/activities/{activity_id}/attendance", json={
            "student_uid": uid, "attendance_status": status
        })
        assert resp.status_code == 200

    bad = teacher_client.post(f"/co-curricular/activities/{activity_id}/attendance", json={
        "student_uid": "24BIT015", "attendance_status": "late"
    })
    assert bad.status_code == 400

    body = teacher_client.get(f"/co-curricular/activities/{activity_id}/attendance?class=SYIT").get_json()
    assert [s["uid"] for s in body["students"]] == ["24BIT003", "24BIT015", "24BIT100"]
    assert [s["attendance_status"] for s in body["students"]] == ["present", "absent", None]
    assert body["counts"] == {"present": 1, "absent": 1}


def test_activity_requires_known_class(teacher_client):
    resp = teacher_client.post("/co-curricular/activities", json={
        "activity_name": "Hackathon", "assigned_class": ["TYCS"]
    })
    assert resp.status_code == 400


# =========================================================
# DASHBOARD
# =========================================================

def test_dashboard_tallies_only_students_with_submissions(teacher_client, students):
    db.session.add_all([
        CEPSubmission(student_uid="24BIT015", activity_name="Drive", hours=5),
        CEPSubmission(student_uid="24BIT003", activity_name="Camp", hours=5),
        CEPApproval(student_uid="24BIT003", class_name="SYIT", approval_status="approved", credits_allotted=1),
        CEPApproval(student_uid="24BIT100", class_name="SYIT", approval_status="rejected", credits_allotted=0),
    ])
    db.session.commit()

    body = teacher_client.get("/dashboard/stats?class=SYIT").get_json()

    assert body["cep_status"] == {"pending": 1, "approved": 1, "rejected": 0}
    assert body["field_project_status"] == {"pending": 0, "approved": 0, "rejected": 0}


def add_documents(uid, doc_types, uploaded_at):
    db.session.add_all([
        FieldProjectSubmission(
            student_uid=uid, class_name="SYIT", document_type=doc,
            file_url=f"http://storage.test/{uid}/{doc}.pdf", file_name=f"{doc}.pdf",
            uploaded_at=uploaded_at,
        )
        for doc in doc_types
    ])


def test_dashboard_field_project_tally_counts_complete_sets(teacher_client, students):
    now = datetime.utcnow()
    add_documents("24BIT015", DOCUMENT_TYPES, now)
    add_documents("24BIT100", DOCUMENT_TYPES, now - timedelta(days=5))
    add_documents("24BIT003", DOCUMENT_TYPES[:3], now)
    db.session.add_all([
        FieldProjectApproval(student_uid="24BIT015", class_name="SYIT", approval_status="approved", credits_allotted=2),
        FieldProjectApproval(student_uid="24BIT003", class_name="SYIT", approval_status="rejected", credits_allotted=0),
    ])
    db.session.commit()

    body = teacher_client.get("/dashboard/stats?class=SYIT").get_json()

    # 24BIT003 is one document short and stays out of the tally
    assert body["field_project_status"] == {"pending": 1, "approved": 1, "rejected": 0}
    assert body["field_project_complete"] == {"total": 2, "today": 1}
    assert body["field_project_documents"]["completion_letter"] == 3
    assert body["field_project_documents"]["video_presentation"] == 2


def test_dashboard_cep_submitters_trend_and_deadlines(teacher_client, students, cep_requirement):
    now = datetime.utcnow()
    db.session.add_all([
        CEPSubmission(student_uid="24BIT015", activity_name="Drive", hours=4, submitted_at=now),
        CEPSubmission(student_uid="24BIT015", activity_name="Camp", hours=3, submitted_at=now - timedelta(days=3)),
        CEPSubmission(student_uid="24BIT003", activity_name="Clinic", hours=6, submitted_at=now - timedelta(days=10)),
    ])
    db.session.commit()

    body = teacher_client.get("/dashboard/stats?class=SYIT").get_json()

    assert body["cep_submitters"] == {"total": 2, "today": 1}
    trend = body["cep_trend"]
    assert len(trend) == 7
    assert trend[-1] == {"date": now.date().isoformat(), "count": 1}
    assert trend[3] == {"date": (now.date() - timedelta(days=3)).isoformat(), "count": 1}
    assert sum(d["count"] for d in trend) == 2
    assert body["cep_deadlines"] == [{"class": "SYIT", "deadline": "2099-12-31"}]


def test_dashboard_activities_and_attendance(teacher_client, students):
    activities = [
        CoCurricularActivity(activity_name=name, date=day, assigned_class=["SYIT"], cc_points=1)
        for name, day in (
            ("Old quiz", date(2020, 1, 1)),
            ("Sports day", date(2099, 1, 3)),
            ("Hackathon", date(2099, 1, 1)),
            ("Debate", date(2099, 1, 4)),
            ("Cleanup", date(2099, 1, 2)),
        )
    ]
    db.session.add_all(activities)
    db.session.commit()
    quiz_id = activities[0].id

    now = datetime.utcnow()
    db.session.add_all([
        AttendanceRecord(activity_id=quiz_id, student_uid="24BIT015", attendance_status="present", marked_at=now),
        AttendanceRecord(activity_id=quiz_id, student_uid="24BIT003", attendance_status="present", marked_at=now),
        AttendanceRecord(activity_id=quiz_id, student_uid="24BIT100", attendance_status="absent",
                         marked_at=now - timedelta(days=2)),
    ])
    db.session.commit()

    body = teacher_client.get(f"/dashboard/stats?class=SYIT&activity_id={quiz_id}").get_json()

    assert body["upcoming_activities"] == 4
    assert [a["activity_name"] for a in body["next_activities"]] == ["Hackathon", "Cleanup", "Sports day"]
    assert body["attendance_marked_today"] == 2
    assert body["activity_attendance"] == {"activity_id": quiz_id, "present": 2, "absent": 1}
    assert body["activity_options"][0]["name"] == "Debate"

    default = teacher_client.get("/dashboard/stats?class=SYIT").get_json()
    assert default["activity_attendance"]["activity_id"] == default["activity_options"][0]["id"]
    assert default["activity_attendance"]["present"] == 0


def test_student_dashboard_shows_own_progress(student_client, cep_requirement):
    db.session.add_all([
        CEPSubmission(student_uid="24BIT015", activity_name="Drive", hours=5),
        CEPSubmission(student_uid="24BIT003", activity_name="Camp", hours=15),
    ])
    add_documents("24BIT015", DOCUMENT_TYPES[:1], datetime.utcnow())
    add_documents("24BIT003", DOCUMENT_TYPES, datetime.utcnow())
    db.session.commit()

    body = student_client.get("/dashboard/stats").get_json()

    assert body["class"] == "SYIT"
    assert body["cep_progress"]["percent"] == 25.0
    assert body["cep_progress"]["deadline"] == "2099-12-31"
    assert body["field_project_documents"] == {
        "completion_letter": 1, "outcome_form": 0, "feedback_form": 0, "video_presentation": 0
    }
    assert body["attendance"] == {"present": 0, "absent": 0}
    assert "cep_trend" not in body


# =========================================================
# MANAGE
# =========================================================

def test_add_teacher_rejects_duplicates(teacher_client):
    payload = {
        "employee_code": "EMP002",
        "name": "Vikram",
        "email": "vikram@college.test",
        "password": "s3cret-pass",
    }
    first = teacher_client.post("/manage/teachers", json=payload)
    second = teacher_client.post("/manage/teachers", json=payload)

    assert first.status_code == 201
    assert "password" not in first.get_json()
    assert second.status_code == 409


def test_teacher_cannot_delete_self(teacher_client):
    assert teacher_client.delete("/manage/teachers/EMP001").status_code == 400


def test_students_listed_in_roster_order(teacher_client, students):
    body = teacher_client.get("/manage/students?class=SYIT").get_json()
    assert [s["uid"] for s in body] == ["24BIT003", "24BIT015", "24BIT100"]


def test_bulk_semester_update(teacher_client, students):
    resp = teacher_client.post("/manage/students/bulk-semester", json={"class": "SYIT", "semester": 4})

    assert resp.status_code == 200
    assert resp.get_json()["updated"] == 3


def test_bulk_delete_removes_dependent_rows(teacher_client, students, foreign_keys):
    activity = CoCurricularActivity(activity_name="Quiz", assigned_class=["SYIT"], created_by="EMP001")
    db.session.add(activity)
    db.session.commit()
    db.session.add_all([
        CEPSubmission(student_uid="24BIT015", activity_name="Drive", hours=5),
        CEPApproval(student_uid="24BIT015", class_name="SYIT", approval_status="pending", credits_allotted=0),
        FieldProjectSubmission(student_uid="24BIT003", class_name="SYIT", document_type="outcome_form", file_url="u"),
        FieldProjectApproval(student_uid="24BIT003", class_name="SYIT", approval_status="approved", credits_allotted=1),
        AttendanceRecord(activity_id=activity.id, student_uid="24BIT100", attendance_status="present"),
    ])
    db.session.commit()

    resp = teacher_client.post("/manage/students/bulk-delete", json={"class": "SYIT"})

    assert resp.status_code == 200
    assert resp.get_json()["deleted"] == 3
    assert [s.uid for s in Student.query.all()] == ["24BSD007"]
    for model in (CEPSubmission, CEPApproval, FieldProjectSubmission, FieldProjectApproval, AttendanceRecord):
        assert model.query.count() == 0
    assert CoCurricularActivity.query.count() == 1


def test_delete_teacher_keeps_their_activities(teacher_client, foreign_keys):
    db.session.add(Teacher(employee_code="EMP002", name="Vikram", email="vikram@college.test", password="x"))
    db.session.commit()
    db.session.add(CoCurricularActivity(activity_name="Hackathon", assigned_class=["SYIT"], created_by="EMP002"))
    db.session.commit()

    resp = teacher_client.delete("/manage/teachers/EMP002")

    assert resp.status_code == 200
    assert db.session.get(Teacher, "EMP002") is None
    activity = CoCurricularActivity.query.one()
    assert activity.activity_name == "Hackathon"
    assert activity.created_by is None


def test_cep_delete_requires_page_access(client, students):
    db.session.add(Student(uid="24BIT050", name="Nila", class_name="SYIT", email="nila@college.test"))
    db.session.commit()
    submission = CEPSubmission(student_uid="24BIT050", activity_name="Drive", hours=2)
    db.session.add(submission)
    db.session.commit()
    submission_id = submission.id

    login_student(client, "24BIT050", "nila@college.test")
    resp = client.delete(f"/cep/submissions/{submission_id}")

    assert resp.status_code == 403
    assert db.session.get(CEPSubmission, submission_id) is not None
