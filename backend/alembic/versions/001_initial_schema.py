"""Initial HRM schema with row-level security.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

RLS_TABLES = (
    "auth_users",
    "user_roles",
    "hrm_organization_units",
    "hrm_positions",
    "hrm_employees",
    "audit_logs",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by", postgresql.UUID(as_uuid=True), nullable=True),
    ]


def upgrade() -> None:
    # Principals mirrored from the identity provider
    op.create_table(
        "auth_users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "user_roles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("auth_users.id", ondelete="SET NULL"), nullable=True),
        sa.UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
        sa.CheckConstraint(
            "role IN ('admin', 'hr_manager', 'manager', 'employee')",
            name="ck_user_roles_role",
        ),
    )
    op.create_index("idx_user_roles_user_id", "user_roles", ["user_id"])

    op.create_table(
        "hrm_organization_units",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("code", sa.String(50), unique=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("parent_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("hrm_organization_units.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
        sa.CheckConstraint("parent_id IS NULL OR parent_id <> id", name="ck_org_units_not_own_parent"),
    )
    op.create_index("idx_org_units_parent_id", "hrm_organization_units", ["parent_id"])

    op.create_table(
        "hrm_positions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("code", sa.String(50), unique=True, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("org_unit_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("hrm_organization_units.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
    )
    op.create_index("idx_positions_org_unit_id", "hrm_positions", ["org_unit_id"])

    op.create_table(
        "hrm_employees",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("employee_code", sa.String(50), unique=True, nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("org_unit_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("hrm_organization_units.id", ondelete="SET NULL"), nullable=True),
        sa.Column("position_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("hrm_positions.id", ondelete="SET NULL"), nullable=True),
        sa.Column("manager_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("hrm_employees.id", ondelete="SET NULL"), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("auth_users.id", ondelete="SET NULL"), unique=True, nullable=True),
        sa.Column("employment_status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("hire_date", sa.Date, nullable=True),
        sa.Column("termination_date", sa.Date, nullable=True),
        sa.Column("termination_reason", sa.Text, nullable=True),
        sa.Column("terminated_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("terminated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reactivation_reason", sa.Text, nullable=True),
        sa.Column("reactivated_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reactivated_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "employment_status IN ('active', 'inactive', 'on_leave', 'terminated')",
            name="ck_employees_status",
        ),
        sa.CheckConstraint(
            "NOT (employment_status = 'active' AND termination_date IS NOT NULL)",
            name="ck_employees_active_without_termination_date",
        ),
        sa.CheckConstraint(
            "employment_status <> 'terminated' OR is_active = false",
            name="ck_employees_terminated_inactive",
        ),
        sa.CheckConstraint("manager_id IS NULL OR manager_id <> id", name="ck_employees_not_own_manager"),
    )
    op.create_index("idx_employees_org_unit_id", "hrm_employees", ["org_unit_id"])
    op.create_index("idx_employees_manager_id", "hrm_employees", ["manager_id"])
    op.create_index("idx_employees_status", "hrm_employees", ["employment_status"])

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource_type", sa.String(100), nullable=False),
        sa.Column("resource_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("changes", postgresql.JSONB, nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_audit_logs_created", "audit_logs", ["created_at"])
    op.create_index("idx_audit_logs_resource", "audit_logs", ["resource_type", "resource_id"])

    # Helper functions read by the policies below. SECURITY DEFINER lets them
    # look up roles and links without recursing into the callers' policies.
    op.execute("""
        CREATE OR REPLACE FUNCTION current_app_user() RETURNS uuid
        LANGUAGE sql STABLE AS $$
            SELECT NULLIF(current_setting('app.current_user_id', true), '')::uuid
        $$
    """)
    op.execute("""
        CREATE OR REPLACE FUNCTION has_role(_user_id uuid, _role text) RETURNS boolean
        LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
            SELECT EXISTS (
                SELECT 1 FROM user_roles WHERE user_id = _user_id AND role = _role
            )
        $$
    """)
    op.execute("""
        CREATE OR REPLACE FUNCTION is_hr_admin(_user_id uuid) RETURNS boolean
        LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
            SELECT EXISTS (
                SELECT 1 FROM user_roles
                WHERE user_id = _user_id AND role IN ('admin', 'hr_manager')
            )
        $$
    """)
    op.execute("""
        CREATE OR REPLACE FUNCTION get_user_org_unit(_user_id uuid) RETURNS uuid
        LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
            SELECT org_unit_id FROM hrm_employees WHERE user_id = _user_id LIMIT 1
        $$
    """)
    # True when the employee reports to the principal, directly or through
    # a chain of managers
    op.execute("""
        CREATE OR REPLACE FUNCTION is_manager_of(_manager_user_id uuid, _employee_id uuid)
        RETURNS boolean
        LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
            WITH RECURSIVE chain(id, manager_id, depth) AS (
                SELECT id, manager_id, 0 FROM hrm_employees WHERE id = _employee_id
                UNION ALL
                SELECT e.id, e.manager_id, c.depth + 1
                FROM hrm_employees e JOIN chain c ON e.id = c.manager_id
                WHERE c.depth < 50
            )
            SELECT EXISTS (
                SELECT 1 FROM chain c
                JOIN hrm_employees m ON m.id = c.manager_id
                WHERE m.user_id = _manager_user_id
            )
        $$
    """)

    for table in RLS_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")

    policies = [
        # Principals
        ("auth_users_select", "auth_users", "SELECT",
         "id = current_app_user() OR is_hr_admin(current_app_user())", None),
        ("auth_users_insert", "auth_users", "INSERT", None, "id = current_app_user()"),
        ("auth_users_update", "auth_users", "UPDATE",
         "id = current_app_user()", "id = current_app_user()"),
        # Role grants
        ("user_roles_select", "user_roles", "SELECT",
         "user_id = current_app_user() OR is_hr_admin(current_app_user())", None),
        ("user_roles_insert", "user_roles", "INSERT",
         None, "has_role(current_app_user(), 'admin')"),
        ("user_roles_delete", "user_roles", "DELETE",
         "has_role(current_app_user(), 'admin')", None),
        # Organization units
        ("org_units_select", "hrm_organization_units", "SELECT",
         "is_hr_admin(current_app_user()) OR (has_role(current_app_user(), 'manager') "
         "AND (id = get_user_org_unit(current_app_user()) "
         "OR parent_id = get_user_org_unit(current_app_user())))", None),
        ("org_units_insert", "hrm_organization_units", "INSERT",
         None, "is_hr_admin(current_app_user())"),
        ("org_units_update", "hrm_organization_units", "UPDATE",
         "is_hr_admin(current_app_user()) OR (has_role(current_app_user(), 'manager') "
         "AND id = get_user_org_unit(current_app_user()))",
         "is_hr_admin(current_app_user()) OR (has_role(current_app_user(), 'manager') "
         "AND id = get_user_org_unit(current_app_user()))"),
        # Positions
        ("positions_select", "hrm_positions", "SELECT",
         "is_hr_admin(current_app_user()) OR (has_role(current_app_user(), 'manager') "
         "AND org_unit_id = get_user_org_unit(current_app_user()))", None),
        ("positions_insert", "hrm_positions", "INSERT",
         None, "is_hr_admin(current_app_user())"),
        ("positions_update", "hrm_positions", "UPDATE",
         "is_hr_admin(current_app_user()) OR (has_role(current_app_user(), 'manager') "
         "AND org_unit_id = get_user_org_unit(current_app_user()))",
         "is_hr_admin(current_app_user()) OR (has_role(current_app_user(), 'manager') "
         "AND org_unit_id = get_user_org_unit(current_app_user()))"),
        # Employees
        ("employees_select", "hrm_employees", "SELECT",
         "is_hr_admin(current_app_user()) OR user_id = current_app_user() "
         "OR (has_role(current_app_user(), 'manager') "
         "AND (is_manager_of(current_app_user(), id) "
         "OR org_unit_id = get_user_org_unit(current_app_user())))", None),
        ("employees_insert", "hrm_employees", "INSERT",
         None, "is_hr_admin(current_app_user())"),
        ("employees_update", "hrm_employees", "UPDATE",
         "is_hr_admin(current_app_user()) OR (has_role(current_app_user(), 'manager') "
         "AND org_unit_id = get_user_org_unit(current_app_user()))",
         "is_hr_admin(current_app_user()) OR (has_role(current_app_user(), 'manager') "
         "AND org_unit_id = get_user_org_unit(current_app_user()))"),
        # Audit log is append-only
        ("audit_logs_select", "audit_logs", "SELECT", "is_hr_admin(current_app_user())", None),
        ("audit_logs_insert", "audit_logs", "INSERT", None, "actor_id = current_app_user()"),
    ]

    for name, table, command, using, check in policies:
        statement = f"CREATE POLICY {name} ON {table} FOR {command}"
        if using:
            statement += f" USING ({using})"
        if check:
            statement += f" WITH CHECK ({check})"
        op.execute(statement)


def downgrade() -> None:
    for table in reversed(RLS_TABLES):
        op.drop_table(table)

    op.execute("DROP FUNCTION IF EXISTS is_manager_of(uuid, uuid)")
    op.execute("DROP FUNCTION IF EXISTS get_user_org_unit(uuid)")
    op.execute("DROP FUNCTION IF EXISTS is_hr_admin(uuid)")
    op.execute("DROP FUNCTION IF EXISTS has_role(uuid, text)")
    op.execute("DROP FUNCTION IF EXISTS current_app_user()")
