#!/usr/bin/env python
"""Grant the first admin role.

Roles can only be assigned by an admin, so the first one has to be created
directly in the database. Run this with the migration (table owner)
credentials; row-level security does not apply to the owner.
"""

import asyncio
import sys
from pathlib import Path
from uuid import UUID

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hrm_api.config import get_settings


async def bootstrap_admin(user_id: UUID, email: str | None, employee_code: str) -> bool:
    """Link a principal to an employee record and grant it the admin role."""
    settings = get_settings()
    engine = create_async_engine(settings.async_database_url, echo=False)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        result = await session.execute(
            text("SELECT id, user_id FROM hrm_employees WHERE employee_code = :code"),
            {"code": employee_code.upper()},
        )
        employee = result.fetchone()
        if not employee:
            print(f"Employee {employee_code} not found")
            return False
        if employee[1] is not None and employee[1] != user_id:
            print(f"Employee {employee_code} is already linked to another user")
            return False

        await session.execute(
            text("""
                INSERT INTO auth_users (id, email)
                VALUES (:user_id, :email)
                ON CONFLICT (id) DO UPDATE SET email = COALESCE(EXCLUDED.email, auth_users.email)
            """),
            {"user_id": user_id, "email": email},
        )

        # A principal is linked to at most one employee
        await session.execute(
            text("UPDATE hrm_employees SET user_id = NULL WHERE user_id = :user_id AND id <> :employee_id"),
            {"user_id": user_id, "employee_id": employee[0]},
        )
        await session.execute(
            text("UPDATE hrm_employees SET user_id = :user_id, updated_by = :user_id WHERE id = :employee_id"),
            {"user_id": user_id, "employee_id": employee[0]},
        )

        await session.execute(
            text("""
                INSERT INTO user_roles (id, user_id, role, created_by)
                VALUES (gen_random_uuid(), :user_id, 'admin', :user_id)
                ON CONFLICT (user_id, role) DO NOTHING
            """),
            {"user_id": user_id},
        )

        await session.commit()

    await engine.dispose()
    print(f"Admin role granted to {user_id} (linked to {employee_code.upper()})")
    return True


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description="Grant the first admin role")
    parser.add_argument("--user-id", required=True, type=UUID, help="Identity provider user id (token sub)")
    parser.add_argument("--email", help="E-mail address of the user")
    parser.add_argument("--employee-code", required=True, help="Employee record to link")
    args = parser.parse_args()

    ok = asyncio.run(bootstrap_admin(args.user_id, args.email, args.employee_code))
    sys.exit(0 if ok else 1)
