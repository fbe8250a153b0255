"""Initial attendance reconciliation schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enum members are stored by name
shift_kind = sa.Enum("FIXED", "FLEXIBLE", "OFF_DAY", name="shiftkind")
leave_type = sa.Enum("CASUAL", "SICK", "FESTIVE", "ANNUAL", "MATERNITY", "REMOTE", name="leavetype")
leave_status = sa.Enum("PENDING", "APPROVED", "DENIED", name="leavestatus")
attendance_status = sa.Enum(
    "PRESENT", "INCOMPLETE", "ABSENT", "WEEKEND", "HOLIDAY", "LEAVE", "REMOTE", name="attendancestatus"
)
record_source = sa.Enum("DEVICE", "ADJUSTMENT", name="recordsource")
adjustment_status = sa.Enum(
    "PENDING_MANAGER_APPROVAL", "PENDING_HR_APPROVAL", "APPROVED", "DENIED_BY_MANAGER", "DENIED_BY_HR",
    name="adjustmentstatus",
)

UNRESOLVED = sa.text("status IN ('PENDING_MANAGER_APPROVAL', 'PENDING_HR_APPROVAL')")


def upgrade() -> None:
    bind = op.get_bind()
    is_sqlite = bind.dialect.name == "sqlite"
    ts_default = sa.text("CURRENT_TIMESTAMP") if is_sqlite else sa.text("now()")

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("emp_code", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default="EMPLOYEE"),
        sa.Column("device_subject_id", sa.String(), nullable=True),
        sa.Column("shift_id", sa.Integer(), nullable=True),
        sa.Column("reporting_manager_id", sa.Integer(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["reporting_manager_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_employees_id"), "employees", ["id"], unique=False)
    op.create_index(op.f("ix_employees_emp_code"), "employees", ["emp_code"], unique=True)
    op.create_index(op.f("ix_employees_device_subject_id"), "employees", ["device_subject_id"], unique=True)

    op.create_table(
        "shifts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("kind", shift_kind, nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("grace_period_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("overtime_threshold_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("working_hours", sa.Numeric(4, 2), nullable=True),
        sa.Column("weekend_days", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_shift_name"),
    )
    op.create_index(op.f("ix_shifts_id"), "shifts", ["id"], unique=False)

    op.create_table(
        "shift_rosters",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("roster_date", sa.Date(), nullable=False),
        sa.Column("shift_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("employee_id", "roster_date", name="uq_shift_roster_employee_date"),
    )
    op.create_index(op.f("ix_shift_rosters_id"), "shift_rosters", ["id"], unique=False)
    op.create_index(op.f("ix_shift_rosters_employee_id"), "shift_rosters", ["employee_id"], unique=False)
    op.create_index(op.f("ix_shift_rosters_roster_date"), "shift_rosters", ["roster_date"], unique=False)

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("holiday_type", sa.String(length=32), nullable=False, server_default="national"),
        sa.Column("applies_to_all", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("end_date IS NULL OR start_date <= end_date", name="check_holiday_start_le_end"),
    )
    op.create_index(op.f("ix_holidays_id"), "holidays", ["id"], unique=False)
    op.create_index(op.f("ix_holidays_start_date"), "holidays", ["start_date"], unique=False)
    op.create_index(op.f("ix_holidays_end_date"), "holidays", ["end_date"], unique=False)

    op.create_table(
        "leave_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("leave_type", leave_type, nullable=False),
        sa.Column("status", leave_status, nullable=False),
        sa.Column("approver_id", sa.Integer(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["approver_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("start_date <= end_date", name="check_leave_start_le_end"),
    )
    op.create_index(op.f("ix_leave_requests_id"), "leave_requests", ["id"], unique=False)
    op.create_index(op.f("ix_leave_requests_employee_id"), "leave_requests", ["employee_id"], unique=False)
    op.create_index(
        "ix_leave_requests_employee_dates", "leave_requests", ["employee_id", "start_date", "end_date"], unique=False
    )

    op.create_table(
        "punch_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.String(), nullable=False),
        sa.Column("punched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("device_id", sa.String(), nullable=False),
        sa.Column("punch_type", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("state", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("subject_id", "punched_at", name="uq_punch_subject_time"),
    )
    op.create_index(op.f("ix_punch_logs_id"), "punch_logs", ["id"], unique=False)
    op.create_index(op.f("ix_punch_logs_subject_id"), "punch_logs", ["subject_id"], unique=False)
    op.create_index(op.f("ix_punch_logs_punched_at"), "punch_logs", ["punched_at"], unique=False)
    op.create_index(op.f("ix_punch_logs_device_id"), "punch_logs", ["device_id"], unique=False)

    op.create_table(
        "sync_watermarks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("device_id", sa.String(), nullable=False),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_sync_watermarks_id"), "sync_watermarks", ["id"], unique=False)
    op.create_index(op.f("ix_sync_watermarks_device_id"), "sync_watermarks", ["device_id"], unique=True)

    op.create_table(
        "attendance_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("work_date", sa.Date(), nullable=False),
        sa.Column("check_in", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("work_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", attendance_status, nullable=False),
        sa.Column("late_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("early_departure_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("overtime_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("leave_type", sa.String(), nullable=True),
        sa.Column("shift_id", sa.Integer(), nullable=True),
        sa.Column("source", record_source, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("employee_id", "work_date", name="uq_attendance_employee_date"),
    )
    op.create_index(op.f("ix_attendance_records_id"), "attendance_records", ["id"], unique=False)
    op.create_index(op.f("ix_attendance_records_employee_id"), "attendance_records", ["employee_id"], unique=False)
    op.create_index(op.f("ix_attendance_records_work_date"), "attendance_records", ["work_date"], unique=False)
    op.create_index(op.f("ix_attendance_records_status"), "attendance_records", ["status"], unique=False)

    op.create_table(
        "attendance_adjustment_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("attendance_date", sa.Date(), nullable=False),
        sa.Column("original_check_in", sa.DateTime(timezone=True), nullable=True),
        sa.Column("original_check_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("proposed_check_in", sa.DateTime(timezone=True), nullable=True),
        sa.Column("proposed_check_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", adjustment_status, nullable=False),
        sa.Column("manager_approver_id", sa.Integer(), nullable=True),
        sa.Column("hr_approver_id", sa.Integer(), nullable=True),
        sa.Column("manager_reviewed_by", sa.Integer(), nullable=True),
        sa.Column("manager_reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("manager_comment", sa.Text(), nullable=True),
        sa.Column("hr_reviewed_by", sa.Integer(), nullable=True),
        sa.Column("hr_reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hr_comment", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["manager_approver_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["hr_approver_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["manager_reviewed_by"], ["employees.id"]),
        sa.ForeignKeyConstraint(["hr_reviewed_by"], ["employees.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_attendance_adjustment_requests_id"), "attendance_adjustment_requests", ["id"], unique=False)
    op.create_index(
        op.f("ix_attendance_adjustment_requests_employee_id"), "attendance_adjustment_requests", ["employee_id"], unique=False
    )
    op.create_index(
        op.f("ix_attendance_adjustment_requests_attendance_date"), "attendance_adjustment_requests", ["attendance_date"], unique=False
    )
    op.create_index(op.f("ix_attendance_adjustment_requests_status"), "attendance_adjustment_requests", ["status"], unique=False)
    op.create_index(
        op.f("ix_attendance_adjustment_requests_manager_approver_id"), "attendance_adjustment_requests", ["manager_approver_id"], unique=False
    )
    op.create_index(
        op.f("ix_attendance_adjustment_requests_hr_approver_id"), "attendance_adjustment_requests", ["hr_approver_id"], unique=False
    )
    op.create_index(
        "uq_adjustment_unresolved_employee_date",
        "attendance_adjustment_requests",
        ["employee_id", "attendance_date"],
        unique=True,
        sqlite_where=UNRESOLVED,
        postgresql_where=UNRESOLVED,
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=True),
        sa.Column("meta_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_activity_logs_id"), "activity_logs", ["id"], unique=False)
    op.create_index(op.f("ix_activity_logs_actor_id"), "activity_logs", ["actor_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_activity_logs_actor_id"), table_name="activity_logs")
    op.drop_index(op.f("ix_activity_logs_id"), table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("uq_adjustment_unresolved_employee_date", table_name="attendance_adjustment_requests")
    for column in ("hr_approver_id", "manager_approver_id", "status", "attendance_date", "employee_id", "id"):
        op.drop_index(op.f(f"ix_attendance_adjustment_requests_{column}"), table_name="attendance_adjustment_requests")
    op.drop_table("attendance_adjustment_requests")
    for column in ("status", "work_date", "employee_id", "id"):
        op.drop_index(op.f(f"ix_attendance_records_{column}"), table_name="attendance_records")
    op.drop_table("attendance_records")
    op.drop_index(op.f("ix_sync_watermarks_device_id"), table_name="sync_watermarks")
    op.drop_index(op.f("ix_sync_watermarks_id"), table_name="sync_watermarks")
    op.drop_table("sync_watermarks")
    for column in ("device_id", "punched_at", "subject_id", "id"):
        op.drop_index(op.f(f"ix_punch_logs_{column}"), table_name="punch_logs")
    op.drop_table("punch_logs")
    op.drop_index("ix_leave_requests_employee_dates", table_name="leave_requests")
    op.drop_index(op.f("ix_leave_requests_employee_id"), table_name="leave_requests")
    op.drop_index(op.f("ix_leave_requests_id"), table_name="leave_requests")
    op.drop_table("leave_requests")
    for column in ("end_date", "start_date", "id"):
        op.drop_index(op.f(f"ix_holidays_{column}"), table_name="holidays")
    op.drop_table("holidays")
    for column in ("roster_date", "employee_id", "id"):
        op.drop_index(op.f(f"ix_shift_rosters_{column}"), table_name="shift_rosters")
    op.drop_table("shift_rosters")
    op.drop_index(op.f("ix_shifts_id"), table_name="shifts")
    op.drop_table("shifts")
    for column in ("device_subject_id", "emp_code", "id"):
        op.drop_index(op.f(f"ix_employees_{column}"), table_name="employees")
    op.drop_table("employees")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum in (adjustment_status, record_source, attendance_status, leave_status, leave_type, shift_kind):
            enum.drop(bind, checkfirst=True)
