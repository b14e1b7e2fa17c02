#!/usr/bin/env python3
"""
Script to create the first SUPERADMIN worker and print a bearer token for it.
Run this after the database migration has been completed.

Usage:
    python create_superadmin.py <employee_code> <full_name>

Example:
    python create_superadmin.py ADM001 "Plant Administrator"
"""

import sys
from pathlib import Path

# Add the apps/api directory to the path so we can import from app
api_dir = Path(__file__).parent / "apps" / "api"
sys.path.insert(0, str(api_dir))

from sqlalchemy import select
from app.core.database import SessionLocal, transaction
from app.models.enums import Role
from app.models.office import Office  # noqa: F401
from app.models.worker import Worker
from app.routers.auth import create_access_token


def create_superadmin(employee_code: str, full_name: str) -> bool:
    """Create a SUPERADMIN worker in the database."""
    db = SessionLocal()

    try:
        existing = db.execute(
            select(Worker).where(Worker.employee_code == employee_code)
        ).scalar_one_or_none()
        if existing:
            print(f"❌ Worker with employee code {employee_code} already exists!")
            return False

        with transaction(db):
            admin = Worker(
                employee_code=employee_code,
                full_name=full_name,
                role=Role.SUPERADMIN,
                is_active=True,
            )
            db.add(admin)

        db.refresh(admin)
        token = create_access_token(data={"sub": str(admin.worker_id)})

        print(f"✅ Superadmin created successfully!")
        print(f"   Worker ID: {admin.worker_id}")
        print(f"   Employee code: {admin.employee_code}")
        print(f"   Name: {admin.full_name}")
        print(f"   Token: {token}")

        return True
    except Exception as e:
        print(f"❌ Error creating superadmin: {e}")
        return False
    finally:
        db.close()

if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("Usage: python create_superadmin.py <employee_code> <full_name>")
        print('Example: python create_superadmin.py ADM001 "Plant Administrator"')
        sys.exit(1)

    employee_code = sys.argv[1].strip()
    full_name = sys.argv[2].strip()

    if not employee_code or not full_name:
        print("❌ Employee code and name are required!")
        sys.exit(1)

    success = create_superadmin(employee_code, full_name)
    sys.exit(0 if success else 1)
