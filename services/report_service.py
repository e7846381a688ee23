import logging
from dataclasses import dataclass, astuple
from datetime import datetime
from io import BytesIO
from typing import List, Optional

import pandas as pd

from models.field_project import DOCUMENT_TYPES
from services.aggregation_service import group_by_student_and_class, roster_sort_key
from services.credit_service import compute_credits, total_hours

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

PRESENT = "Present"
ABSENT = "Absent"
NOT_MARKED = "-"
TOTAL_POINTS_HEADER = "Total CC Points"


# =========================================================
# ROW TYPES
# =========================================================

@dataclass
class FieldProjectReportRow:
    uid: str
    name: str
    class_name: str
    status: str
    credits: int
    documents_submitted: str
    completion_letter: str
    outcome_form: str
    feedback_form: str
    video_presentation: str

    HEADERS = (
        "UID", "Name", "Class", "Status", "Credits", "Documents Submitted",
        "Completion Letter", "Outcome Form", "Feedback Form", "Video Presentation",
    )


@dataclass
class CEPReportRow:
    uid: str
    name: str
    class_name: str
    hours_completed: float
    activities_submitted: int
    credits_allocated: int
    status: str
    minimum_hours: float
    progress: str

    HEADERS = (
        "UID", "Name", "Class", "Hours Completed", "Activities Submitted",
        "Credits Allocated", "Status", "Minimum Hours", "Progress",
    )


def rows_to_table(rows) -> List[list]:
    return [list(astuple(r)) for r in rows]


def _status_label(status):
    status = (status or "pending").strip()
    return status[:1].upper() + status[1:]


def _matches_class(value, selected_class):
    return (value or "").upper() == (selected_class or "").upper()


def progress_percent(hours, minimum_hours) -> float:
    if not minimum_hours or minimum_hours <= 0:
        return 100.0
    return round(min(hours / minimum_hours, 1) * 100, 1)


# =========================================================
# FIELD PROJECT
# =========================================================

def build_field_project_rows(submissions, students, approvals, selected_class) -> List[FieldProjectReportRow]:
    """One row per (student, class) group that uploaded at least one document."""
    names = {s.uid: s.name for s in students}
    approval_map = {
        (a.student_uid, (a.class_name or "").upper()): a for a in approvals
    }

    rows = []
    groups = group_by_student_and_class(submissions)
    for (uid, cls), subs in groups.items():
        if not _matches_class(cls, selected_class):
            continue

        submitted = {s.document_type for s in subs}
        flags = {doc: ("Yes" if doc in submitted else "No") for doc in DOCUMENT_TYPES}
        count = sum(1 for doc in DOCUMENT_TYPES if doc in submitted)

        approval = approval_map.get((uid, (cls or "").upper()))
        rows.append(FieldProjectReportRow(
            uid=uid,
            name=names.get(uid, uid),
            class_name=cls or selected_class,
            status=_status_label(approval.approval_status if approval else None),
            credits=approval.credits_allotted if approval else 0,
            documents_submitted=f"{count}/{len(DOCUMENT_TYPES)}",
            completion_letter=flags["completion_letter"],
            outcome_form=flags["outcome_form"],
            feedback_form=flags["feedback_form"],
            video_presentation=flags["video_presentation"],
        ))

    rows.sort(key=lambda r: roster_sort_key(r.class_name, r.uid))
    return rows


# =========================================================
# CEP
# =========================================================

def build_cep_rows(students, submissions, requirement, approvals, selected_class) -> List[CEPReportRow]:
    tiers = requirement.credits_config if requirement else []
    minimum_hours = requirement.minimum_hours if requirement else 0

    by_student = {}
    for sub in submissions:
        by_student.setdefault(sub.student_uid, []).append(sub)

    approval_map = {
        a.student_uid: a for a in approvals if _matches_class(a.class_name, selected_class)
    }

    rows = []
    for student in students:
        if not _matches_class(student.class_name, selected_class):
            continue

        subs = by_student.get(student.uid, [])
        hours = total_hours(subs)
        approval = approval_map.get(student.uid)
        status = approval.approval_status if approval else "pending"

        if requirement:
            progress = f"{progress_percent(hours, minimum_hours):.1f}%"
        else:
            progress = "N/A"

        rows.append(CEPReportRow(
            uid=student.uid,
            name=student.name,
            class_name=student.class_name,
            hours_completed=hours,
            activities_submitted=len(subs),
            credits_allocated=compute_credits(hours, tiers),
            status=_status_label(status),
            minimum_hours=minimum_hours or 0,
            progress=progress,
        ))

    rows.sort(key=lambda r: roster_sort_key(r.class_name, r.uid))
    return rows


# =========================================================
# ATTENDANCE
# =========================================================

def build_attendance_rows(activities, students, records, selected_class) -> List[list]:
    """Header row followed by one row per student of ``selected_class``.

    Cells read "Present", "Absent" or "-" (not marked). The last column
    sums cc_points over the activities the student attended.
    """
    class_activities = sorted(
        (a for a in activities if a.targets_class(selected_class)),
        key=lambda a: a.date.isoformat() if a.date else ""
    )
    class_students = sorted(
        (s for s in students if _matches_class(s.class_name, selected_class)),
        key=lambda s: roster_sort_key(s.class_name, s.uid)
    )

    status_map = {(r.activity_id, r.student_uid): r.attendance_status for r in records}

    header = ["uid", "name"] + [a.activity_name for a in class_activities] + [TOTAL_POINTS_HEADER]
    rows = [header]

    for student in class_students:
        total_points = 0
        row = [student.uid, student.name]
        for activity in class_activities:
            status = status_map.get((activity.id, student.uid))
            if status == "present":
                row.append(PRESENT)
                total_points += activity.cc_points or 0
            elif status == "absent":
                row.append(ABSENT)
            else:
                row.append(NOT_MARKED)
        row.append(total_points)
        rows.append(row)

    return rows


# =========================================================
# FILE OUTPUT
# =========================================================

def build_report_file(headers, rows, sheet_name="Report", file_format="excel", title: Optional[str] = None):
    """Serialize a table into an in-memory file.

    Returns ``(buffer, mimetype, extension)``. ``file_format`` is one of
    ``excel``, ``csv`` or ``pdf``.
    """
    df = pd.DataFrame(rows, columns=list(headers))
    output = BytesIO()

    if file_format == "excel":
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            # sheet names are capped at 31 characters
            df.to_excel(writer, index=False, sheet_name=sheet_name[:31])
        mimetype, ext = XLSX_MIMETYPE, "xlsx"

    elif file_format == "csv":
        output.write(df.to_csv(index=False).encode("utf-8"))
        mimetype, ext = "text/csv", "csv"

    elif file_format == "pdf":
        _write_pdf(output, df, title or sheet_name)
        mimetype, ext = "application/pdf", "pdf"

    else:
        raise ValueError(f"Unsupported report format: {file_format}")

    output.seek(0)
    logger.debug("Built %s report '%s' with %d rows", ext, sheet_name, len(df))
    return output, mimetype, ext


def _write_pdf(output, df, title):
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import A4, landscape
    from reportlab.lib.styles import getSampleStyleSheet
    from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

    doc = SimpleDocTemplate(
        output, pagesize=landscape(A4),
        leftMargin=24, rightMargin=24, topMargin=24, bottomMargin=24
    )
    styles = getSampleStyleSheet()
    now_text = datetime.now().strftime("%Y-%m-%d %H:%M")

    elements = [
        Paragraph("CrediLocker", styles["Title"]),
        Paragraph(title, styles["Heading2"]),
        Paragraph(f"Generated: {now_text}", styles["Normal"]),
        Spacer(1, 12),
    ]

    table_data = [[str(c) for c in df.columns]]
    for values in df.itertuples(index=False):
        table_data.append([str(v) for v in values])

    if len(table_data) == 1:
        table_data.append(["--"] + ["No data"] + ["--"] * (len(df.columns) - 2))

    table = Table(table_data, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.black),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
    ]))

    elements.append(table)
    doc.build(elements)
