"""
Reminder batch trigger: called by the external scheduler
"""
import secrets

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from subtrack.api.deps import get_db
from subtrack.application.reminder_digest import run_reminder_batch
from subtrack.config import Settings, get_settings


router = APIRouter(prefix="/api/v1/reminders", tags=["reminders"])


@router.post("/run")
def run_reminders(
    x_cron_secret: str | None = Header(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Run one reminder pass. 200 with the summary, 500 if the run was aborted."""
    expected = settings.REMINDER_CRON_SECRET
    if not expected:
        raise HTTPException(status_code=403, detail="Reminder trigger disabled")
    if not x_cron_secret or not secrets.compare_digest(x_cron_secret, expected):
        raise HTTPException(status_code=403, detail="Invalid cron secret")

    summary = run_reminder_batch(db, settings=settings)
    return JSONResponse(summary.to_dict(), status_code=200 if summary.success else 500)
