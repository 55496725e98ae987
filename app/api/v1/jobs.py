"""
Daily WhatsApp job trigger and run history.

Called once a day by the scheduler or an external cron (POST with "{}").
"""
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_settings, get_sender, require_trigger_token
from app.application.daily_whatsapp_job import DailyWhatsAppJob
from app.application.whatsapp_client import MessageSender
from app.config import ConfigurationError, Settings
from app.infrastructure.db.models import AdminSummaryLog

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/jobs",
    tags=["jobs"],
    dependencies=[Depends(require_trigger_token)],
)


class TriggerRequest(BaseModel):
    # Only marks the run as started from the admin UI; the daily gate still applies
    manual: bool = False


@router.post("/daily-whatsapp")
def trigger_daily_whatsapp(
    body: TriggerRequest | None = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    sender: MessageSender | None = Depends(get_sender),
):
    manual = body.manual if body else False
    try:
        settings.require_job_credentials()
        if sender is None:
            raise ConfigurationError("WhatsApp sender could not be configured")
        result = DailyWhatsAppJob(db, sender, settings).run(manual=manual)
    except ConfigurationError as exc:
        logger.error("Daily WhatsApp job not configured: %s", exc)
        return JSONResponse({"success": False, "error": str(exc)}, status_code=500)
    except Exception as exc:
        logger.exception("Error in daily WhatsApp job")
        return JSONResponse({"success": False, "error": str(exc)}, status_code=500)
    return result.to_dict()


@router.get("/daily-whatsapp/runs")
def list_daily_whatsapp_runs(
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    rows = (
        db.query(AdminSummaryLog)
        .filter(AdminSummaryLog.summary_type == settings.DAILY_SUMMARY_TYPE)
        .order_by(AdminSummaryLog.run_date.desc())
        .limit(limit)
        .all()
    )
    return {
        "runs": [
            {
                "id": str(r.id),
                "runDate": r.run_date.isoformat(),
                "status": r.status,
                "memberIds": list(r.member_ids or []),
                "sentAt": r.sent_at.isoformat() if r.sent_at else None,
            }
            for r in rows
        ]
    }
