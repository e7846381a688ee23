from datetime import date, datetime
from types import SimpleNamespace

from services.aggregation_service import (
    as_day, compute_completeness, count_complete_students, count_submitters,
    daily_counts, group_by_student, group_by_student_and_class,
    sort_roster, tally_approval_status, uid_number
)


def test_group_by_student_keeps_discovery_order():
    records = [
        {"student_uid": "B", "document_type": "x"},
        {"student_uid": "A", "document_type": "y"},
        {"student_uid": "B", "document_type": "z"},
    ]
    groups = group_by_student(records)

    assert list(groups) == ["B", "A"]
    assert [r["document_type"] for r in groups["B"]] == ["x", "z"]


def test_group_by_student_and_class_splits_classes():
    records = [
        {"student_uid": "A", "class": "SYIT"},
        {"student_uid": "A", "class": "FYIT"},
        {"student_uid": "A", "class": "SYIT"},
    ]
    groups = group_by_student_and_class(records)

    assert set(groups) == {("A", "SYIT"), ("A", "FYIT")}
    assert len(groups[("A", "SYIT")]) == 2


def test_compute_completeness():
    required = {"A", "B", "C", "D"}
    assert compute_completeness(required, {"A", "B", "C"}) is False
    assert compute_completeness(required, {"A", "B", "C", "D", "E"}) is True


def test_tally_counts_missing_approval_as_pending():
    students = [SimpleNamespace(uid=u) for u in ("s1", "s2", "s3", "s4", "s5")]
    presence = {"s1": True, "s2": True, "s3": True, "s4": True, "s5": False}
    approvals = {"s2": "approved", "s3": "rejected", "s4": "pending", "s5": "approved"}

    tally = tally_approval_status(students, presence, approvals)

    assert tally.to_dict() == {"pending": 2, "approved": 1, "rejected": 1}


def test_tally_is_repeatable():
    students = [{"uid": "s1"}, {"uid": "s2"}]
    presence = {"s1": True, "s2": True}
    approvals = {"s1": "approved"}

    first = tally_approval_status(students, presence, approvals)
    second = tally_approval_status(students, presence, approvals)

    assert first == second


def test_roster_sort_uses_numeric_suffix():
    students = [
        SimpleNamespace(uid="24BIT015", class_name="FYIT"),
        SimpleNamespace(uid="24BIT003", class_name="FYIT"),
        SimpleNamespace(uid="24BIT100", class_name="FYIT"),
    ]
    assert [s.uid for s in sort_roster(students)] == ["24BIT003", "24BIT015", "24BIT100"]


def test_roster_sort_orders_by_class_first():
    rows = [
        {"uid": "24BIT001", "class": "SYIT"},
        {"uid": "24BIT009", "class": "FYIT"},
    ]
    assert [r["class"] for r in sort_roster(rows)] == ["FYIT", "SYIT"]


def test_uid_number_without_digits():
    assert uid_number("ABC") == 0
    assert uid_number(None) == 0


ALL_DOCS = ("completion_letter", "outcome_form", "feedback_form", "video_presentation")


def test_count_complete_students_uses_latest_upload():
    today = date(2024, 9, 10)
    subs = [
        {"student_uid": "A", "document_type": doc, "uploaded_at": datetime(2024, 9, 1, 10)}
        for doc in ALL_DOCS
    ]
    subs[-1]["uploaded_at"] = datetime(2024, 9, 10, 8, 30)
    subs += [
        {"student_uid": "B", "document_type": doc, "uploaded_at": datetime(2024, 8, 1)}
        for doc in ALL_DOCS
    ]
    subs += [
        {"student_uid": "C", "document_type": doc, "uploaded_at": datetime(2024, 9, 10)}
        for doc in ALL_DOCS[:3]
    ]

    assert count_complete_students(subs, ALL_DOCS, today) == (2, 1)


def test_count_submitters():
    today = date(2024, 9, 10)
    subs = [
        {"student_uid": "A", "submitted_at": "2024-09-10T09:00:00"},
        {"student_uid": "A", "submitted_at": "2024-09-01T09:00:00"},
        {"student_uid": "B", "submitted_at": "2024-09-09T23:59:00"},
    ]

    assert count_submitters(subs, today) == (2, 1)
    assert count_submitters([], today) == (0, 0)


def test_daily_counts_window():
    stamps = [
        datetime(2024, 9, 10, 12), datetime(2024, 9, 10, 13),
        datetime(2024, 9, 4), datetime(2024, 9, 3), None,
    ]

    trend = daily_counts(stamps, date(2024, 9, 10))

    assert [d["date"] for d in trend] == [f"2024-09-{day:02d}" for day in range(4, 11)]
    assert [d["count"] for d in trend] == [1, 0, 0, 0, 0, 0, 2]


def test_as_day():
    assert as_day(datetime(2024, 1, 2, 3, 4)) == date(2024, 1, 2)
    assert as_day("2024-01-02 03:04:05") == date(2024, 1, 2)
    assert as_day("garbage") is None
    assert as_day(None) is None
