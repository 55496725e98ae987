"""
Manual WhatsApp send endpoint.
"""
import logging
import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_settings, get_sender, require_trigger_token
from app.application.manual_send import ManualSendUseCase, ManualSendError
from app.application.whatsapp_client import MessageSender
from app.config import ConfigurationError, Settings

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/whatsapp",
    tags=["whatsapp"],
    dependencies=[Depends(require_trigger_token)],
)


class SendRequest(BaseModel):
    member_ids: list[uuid.UUID]
    type: str = "custom"
    custom_message: str | None = None
    branch_id: uuid.UUID | None = None
    admin_user_id: str | None = None


@router.post("/send")
def send_whatsapp(
    body: SendRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    sender: MessageSender | None = Depends(get_sender),
):
    try:
        settings.require_job_credentials()
        if sender is None:
            raise ConfigurationError("WhatsApp sender could not be configured")
        return ManualSendUseCase(db, sender, settings).execute(
            member_ids=body.member_ids,
            kind=body.type,
            custom_message=body.custom_message,
            branch_id=body.branch_id,
            admin_user_id=body.admin_user_id,
        )
    except ManualSendError as exc:
        return JSONResponse({"success": False, "error": str(exc)}, status_code=400)
    except ConfigurationError as exc:
        logger.error("WhatsApp send not configured: %s", exc)
        return JSONResponse({"success": False, "error": str(exc)}, status_code=500)
