"""
CrediLocker - Test Configuration and Fixtures
"""
from datetime import date

import pytest

from app import create_app
from config.config import TestConfig
from extensions import db
from models import Student, Teacher, CEPRequirement
from services import storage_service
from utils.password_utils import hash_password

TEACHER_PASSWORD = "teacher-pass-123"


class FakeStorage:
    """In-memory stand-in for StorageClient."""

    bucket = "student-submissions"
    base_url = "http://storage.test"

    def __init__(self, fail_signing=False):
        self.objects = {}
        self.removed = []
        self.fail_signing = fail_signing

    def public_url(self, path):
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    def upload(self, path, data, content_type="application/octet-stream"):
        self.objects[path] = data
        return self.public_url(path)

    def create_signed_url(self, path, expires_in=120):
        if self.fail_signing:
            raise storage_service.StorageError("signing disabled")
        return f"{self.base_url}/storage/v1/object/sign/{self.bucket}/{path}?token=t&ttl={expires_in}"

    def remove(self, paths):
        self.removed.extend(paths)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fake_storage(monkeypatch):
    storage = FakeStorage()
    monkeypatch.setattr(
        storage_service.StorageClient,
        "from_config",
        classmethod(lambda cls, config=None: storage)
    )
    return storage


@pytest.fixture
def teacher(app):
    t = Teacher(
        employee_code="EMP001",
        name="Asha Rao",
        email="asha@college.test",
        password=hash_password(TEACHER_PASSWORD)
    )
    db.session.add(t)
    db.session.commit()
    return t


@pytest.fixture
def students(app):
    rows = [
        Student(uid="24BIT015", name="Kiran", class_name="SYIT", semester=3, email="kiran@college.test"),
        Student(uid="24BIT003", name="Meera", class_name="SYIT", semester=3, email="meera@college.test"),
        Student(uid="24BIT100", name="Rohan", class_name="SYIT", semester=3, email="rohan@college.test"),
        Student(uid="24BSD007", name="Sana", class_name="FYSD", semester=1, email="sana@college.test"),
    ]
    db.session.add_all(rows)
    db.session.commit()
    return rows


@pytest.fixture
def cep_requirement(app):
    req = CEPRequirement(
        assigned_class="SYIT",
        minimum_hours=20,
        deadline=date(2099, 12, 31),
        credits_config=[
            {"hours": 10, "credits": 2},
            {"hours": 5, "credits": 1},
            {"hours": 20, "credits": 4},
        ]
    )
    db.session.add(req)
    db.session.commit()
    return req


@pytest.fixture
def teacher_client(client, teacher):
    resp = client.post("/login", json={
        "role": "teacher",
        "email": teacher.email,
        "password": TEACHER_PASSWORD,
    })
    assert resp.status_code == 200
    return client


@pytest.fixture
def student_client(client, students):
    resp = client.post("/login", json={
        "role": "student",
        "uid": "24BIT015",
        "email": "kiran@college.test",
    })
    assert resp.status_code == 200
    return client


@pytest.fixture
def foreign_keys(app):
    """Have SQLite enforce foreign keys the way MySQL does."""
    with db.engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")
    yield
    db.session.rollback()
    with db.engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
