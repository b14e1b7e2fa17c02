#!/usr/bin/env python3
"""
Move worksheets older than the retention window to ARCHIVED.
Meant for a nightly cron job.

Usage:
    python archive_worksheets.py <admin_employee_code> [YYYY-MM-DD]

Without a date, worksheets older than ARCHIVE_RETENTION_DAYS are archived.
"""

import sys
from datetime import date
from pathlib import Path

# Add the apps/api directory to the path so we can import from app
api_dir = Path(__file__).parent / "apps" / "api"
sys.path.insert(0, str(api_dir))

from sqlalchemy import select
from app.core.config import settings
from app.core.database import SessionLocal
from app.core.errors import WorksheetError
from app.core.logging_config import setup_logging
from app.models.office import Office  # noqa: F401
from app.models.worker import Worker
from app.services.worksheet_store import archive_old_worksheets


def main(employee_code: str, before_date=None) -> int:
    db = SessionLocal()
    try:
        actor = db.execute(
            select(Worker).where(Worker.employee_code == employee_code)
        ).scalar_one_or_none()
        if actor is None:
            print(f"❌ No worker with employee code {employee_code}")
            return 1
        archived = archive_old_worksheets(db, actor, before_date=before_date)
        print(f"✅ Archived {archived} worksheets")
        return 0
    except WorksheetError as e:
        print(f"❌ {e.kind}: {e.message}")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) not in (2, 3):
        print("Usage: python archive_worksheets.py <admin_employee_code> [YYYY-MM-DD]")
        sys.exit(1)

    setup_logging(level=settings.log_level, json_output=settings.log_format == "json")
    before = date.fromisoformat(sys.argv[2]) if len(sys.argv) == 3 else None
    sys.exit(main(sys.argv[1], before))
