"""
FastAPI dependencies (DB session, settings, WhatsApp sender, trigger token)
"""
import secrets

from fastapi import Depends, Request, HTTPException, status

from app.config import Settings, ConfigurationError, get_settings as _get_settings
from app.infrastructure.db.session import get_db as _get_db
from app.application.whatsapp_client import MessageSender, build_sender


# Re-exported so routes and tests override one place
get_db = _get_db


def get_settings() -> Settings:
    return _get_settings()


def get_sender(settings: Settings = Depends(get_settings)) -> MessageSender | None:
    """
    Provider built from settings, or None when credentials are missing
    (the route then reports the ConfigurationError itself).
    """
    try:
        return build_sender(settings)
    except ConfigurationError:
        return None


def require_trigger_token(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """
    Bearer-token check for job and send endpoints.

    Open when JOB_TRIGGER_TOKEN is empty (local development).

    Raises:
        HTTPException(401): token missing or wrong
    """
    expected = settings.JOB_TRIGGER_TOKEN
    if not expected:
        return
    header = request.headers.get("authorization", "")
    token = header[7:].strip() if header.lower().startswith("bearer ") else ""
    if not token or not secrets.compare_digest(token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
