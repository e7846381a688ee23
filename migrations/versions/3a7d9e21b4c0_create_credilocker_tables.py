"""create credilocker tables

Revision ID: 3a7d9e21b4c0
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3a7d9e21b4c0"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "students",
        sa.Column("uid", sa.String(length=20), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("class", sa.String(length=10), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=True),
        sa.Column("email", sa.String(length=120), nullable=False),
        sa.Column("phone_number", sa.String(length=20), nullable=True),
    )
    op.create_table(
        "teachers",
        sa.Column("employee_code", sa.String(length=20), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=120), nullable=False, unique=True),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
    )
    op.create_table(
        "co_curricular_activities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("activity_name", sa.String(length=150), nullable=False),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("time", sa.String(length=20), nullable=True),
        sa.Column("venue", sa.String(length=150), nullable=True),
        sa.Column("assigned_class", sa.JSON(), nullable=False),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("cc_points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_by", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.ForeignKeyConstraint(["created_by"], ["teachers.employee_code"]),
    )
    op.create_table(
        "co_curricular_attendance",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("activity_id", sa.Integer(), nullable=False),
        sa.Column("student_uid", sa.String(length=20), nullable=False),
        sa.Column("attendance_status", sa.Enum("present", "absent", name="attendance_status"), nullable=False),
        sa.Column("marked_by", sa.String(length=20), nullable=True),
        sa.Column("marked_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["activity_id"], ["co_curricular_activities.id"]),
        sa.ForeignKeyConstraint(["student_uid"], ["students.uid"]),
        sa.UniqueConstraint("activity_id", "student_uid", name="unique_activity_student"),
    )
    op.create_table(
        "cep_requirements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("assigned_class", sa.String(length=10), nullable=False),
        sa.Column("minimum_hours", sa.Float(), nullable=False),
        sa.Column("deadline", sa.Date(), nullable=True),
        sa.Column("credits_config", sa.JSON(), nullable=False),
    )
    op.create_table(
        "cep_submissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_uid", sa.String(length=20), nullable=False),
        sa.Column("activity_name", sa.String(length=150), nullable=False),
        sa.Column("hours", sa.Float(), nullable=False),
        sa.Column("activity_date", sa.Date(), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("certificate_url", sa.String(length=500), nullable=True),
        sa.Column("picture_url", sa.String(length=500), nullable=True),
        sa.Column("geolocation", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("submitted_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.ForeignKeyConstraint(["student_uid"], ["students.uid"]),
    )
    for table, constraint in (
        ("cep_approvals", "unique_cep_student_class"),
        ("field_project_approvals", "unique_fp_student_class"),
    ):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("student_uid", sa.String(length=20), nullable=False),
            sa.Column("class", sa.String(length=10), nullable=False),
            sa.Column("approval_status", sa.String(length=10), nullable=False, server_default="pending"),
            sa.Column("credits_allotted", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.Column("evaluated_by", sa.String(length=20), nullable=True),
            sa.Column("evaluated_at", sa.DateTime(), nullable=True),
            sa.Column("evaluation_notes", sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(["student_uid"], ["students.uid"]),
            sa.UniqueConstraint("student_uid", "class", name=constraint),
        )
    op.create_table(
        "field_project_submissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_uid", sa.String(length=20), nullable=False),
        sa.Column("class", sa.String(length=10), nullable=False),
        sa.Column("document_type", sa.String(length=30), nullable=False),
        sa.Column("file_url", sa.String(length=500), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.ForeignKeyConstraint(["student_uid"], ["students.uid"]),
    )


def downgrade():
    op.drop_table("field_project_submissions")
    op.drop_table("field_project_approvals")
    op.drop_table("cep_approvals")
    op.drop_table("cep_submissions")
    op.drop_table("cep_requirements")
    op.drop_table("co_curricular_attendance")
    op.drop_table("co_curricular_activities")
    op.drop_table("teachers")
    op.drop_table("students")
