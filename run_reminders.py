"""
Run one renewal-reminder pass (for cron).

    0 9 * * *  cd /srv/subtrack && .venv/bin/python run_reminders.py

Exit code 1 when the run was aborted (e.g. email credentials missing).
"""
import json
import logging
import sys

from subtrack.infrastructure.db.session import get_session_factory
from subtrack.application.reminder_digest import run_reminder_batch

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("run_reminders")


def main() -> int:
    Session = get_session_factory()
    db = Session()
    try:
        summary = run_reminder_batch(db)
    except Exception:
        logger.exception("Reminder job failed")
        return 1
    finally:
        db.close()

    print(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2))
    return 0 if summary.success else 1


if __name__ == "__main__":
    sys.exit(main())
