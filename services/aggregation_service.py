import re
from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Tuple

TRAILING_DIGITS = re.compile(r"(\d+)$")


@dataclass
class StatusTally:
    pending: int = 0
    approved: int = 0
    rejected: int = 0

    def to_dict(self):
        return asdict(self)


def _field(record, name):
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def _class_of(record):
    if isinstance(record, dict):
        return record.get("class") or record.get("class_name")
    return getattr(record, "class_name", None)


def group_by_student(records: Iterable) -> Dict[str, list]:
    """Group submissions by ``student_uid``, keeping discovery order."""
    groups = {}
    for rec in records:
        groups.setdefault(_field(rec, "student_uid"), []).append(rec)
    return groups


def group_by_student_and_class(records: Iterable) -> Dict[tuple, list]:
    groups = {}
    for rec in records:
        key = (_field(rec, "student_uid"), _class_of(rec))
        groups.setdefault(key, []).append(rec)
    return groups


def compute_completeness(required_types, submitted_types) -> bool:
    return set(submitted_types) >= set(required_types)


def tally_approval_status(students, submission_presence, approval_map) -> StatusTally:
    """Count pending/approved/rejected over students that submitted something.

    A student with a submission but no approval entry is still pending.
    Students with no submission are left out of every bucket.
    """
    tally = StatusTally()
    for student in students:
        uid = _field(student, "uid")
        if not submission_presence.get(uid):
            continue

        status = approval_map.get(uid)
        if status == "approved":
            tally.approved += 1
        elif status == "rejected":
            tally.rejected += 1
        else:
            tally.pending += 1
    return tally


# =========================================================
# DASHBOARD COUNTS
# =========================================================

def as_day(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _latest(records, time_attr):
    stamps = [_field(r, time_attr) for r in records if _field(r, time_attr) is not None]
    return max(stamps, default=None)


def count_complete_students(submissions, required_types, today) -> Tuple[int, int]:
    """Students holding every required document type.

    Returns ``(total, completed_today)``; a student counts for today when
    their most recent upload happened on ``today``.
    """
    total = completed_today = 0
    for subs in group_by_student(submissions).values():
        if not compute_completeness(required_types, {_field(s, "document_type") for s in subs}):
            continue
        total += 1
        if as_day(_latest(subs, "uploaded_at")) == today:
            completed_today += 1
    return total, completed_today


def count_submitters(submissions, today, time_attr="submitted_at") -> Tuple[int, int]:
    """Distinct submitting students, and those whose latest submission is from ``today``."""
    groups = group_by_student(submissions)
    submitted_today = sum(
        1 for subs in groups.values() if as_day(_latest(subs, time_attr)) == today
    )
    return len(groups), submitted_today


def daily_counts(timestamps, end_day, days=7) -> List[dict]:
    """Per-day counts for the ``days`` days ending on ``end_day``, oldest first."""
    window = [end_day - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    counts = dict.fromkeys(window, 0)
    for stamp in timestamps:
        day = as_day(stamp)
        if day in counts:
            counts[day] += 1
    return [{"date": day.isoformat(), "count": counts[day]} for day in window]


def uid_number(uid) -> int:
    match = TRAILING_DIGITS.search(str(uid or ""))
    if match:
        return int(match.group(1))
    return 0


def roster_sort_key(class_name, uid):
    return (class_name or "", uid_number(uid), uid or "")


def sort_roster(items: Iterable, uid_attr="uid", class_attr="class_name") -> List:
    """Canonical roster order: class name, then the UID's numeric suffix."""
    def key(item):
        if isinstance(item, dict):
            cls = item.get(class_attr) or item.get("class")
            uid = item.get(uid_attr)
        else:
            cls = getattr(item, class_attr, None)
            uid = getattr(item, uid_attr, None)
        return roster_sort_key(cls, uid)

    return sorted(items, key=key)
