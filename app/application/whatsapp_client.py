"""
WhatsApp message senders.

MessageSender is the seam the daily job and the manual send depend on;
providers differ only in the HTTP request they build.

  - PeriskopeSender: POST api.periskope.app/v1/message/send, chat_id "<digits>@c.us"
  - MetaCloudSender: POST graph.facebook.com/<version>/<phone_id>/messages

Transport errors and non-2xx responses never raise: they come back as
SendOutcome(ok=False) so the caller can record a failed attempt and move on.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import requests

from app.config import Settings, ConfigurationError
from app.domain.phone import to_chat_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SendOutcome:
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


class MessageSender(ABC):
    """Sends one plain-text WhatsApp message to a normalized phone number"""

    @abstractmethod
    def send(self, phone: str, message: str) -> SendOutcome:
        raise NotImplementedError


class _HttpSender(MessageSender):
    def __init__(self, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.http = session or requests

    def _post(self, url: str, headers: dict, body: dict, recipient: str) -> SendOutcome:
        try:
            resp = self.http.post(url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.exception("WhatsApp send failed for %s", recipient)
            return SendOutcome(ok=False, error=str(exc))

        logger.info("WhatsApp provider response for %s: %d", recipient, resp.status_code)
        if 200 <= resp.status_code < 300:
            return SendOutcome(ok=True, status_code=resp.status_code)

        text = (resp.text or "")[:500]
        logger.error("WhatsApp provider error %d for %s: %s", resp.status_code, recipient, text)
        return SendOutcome(ok=False, status_code=resp.status_code, error=f"HTTP {resp.status_code}: {text}")


class PeriskopeSender(_HttpSender):
    def __init__(
        self,
        api_key: str,
        sender_phone: str,
        api_url: str = "https://api.periskope.app/v1/message/send",
        chat_suffix: str = "@c.us",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(timeout=timeout, session=session)
        self.api_key = api_key
        self.sender_phone = sender_phone
        self.api_url = api_url
        self.chat_suffix = chat_suffix

    def send(self, phone: str, message: str) -> SendOutcome:
        chat_id = to_chat_id(phone, self.chat_suffix)
        logger.info("Sending to %s", chat_id)
        return self._post(
            self.api_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "x-phone": self.sender_phone,
                "Content-Type": "application/json",
            },
            body={"chat_id": chat_id, "message": message},
            recipient=chat_id,
        )


class MetaCloudSender(_HttpSender):
    def __init__(
        self,
        access_token: str,
        phone_id: str,
        base_url: str = "https://graph.facebook.com/v19.0",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(timeout=timeout, session=session)
        self.access_token = access_token
        self.phone_id = phone_id
        self.base_url = base_url.rstrip("/")

    def send(self, phone: str, message: str) -> SendOutcome:
        logger.info("Sending to %s via Meta Cloud API", phone)
        return self._post(
            f"{self.base_url}/{self.phone_id}/messages",
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Content-Type": "application/json",
            },
            body={
                "messaging_product": "whatsapp",
                "recipient_type": "individual",
                "to": phone,
                "type": "text",
                "text": {"preview_url": False, "body": message},
            },
            recipient=phone,
        )


def build_sender(settings: Settings) -> MessageSender:
    """
    Provider chosen by WHATSAPP_PROVIDER.

    Raises:
        ConfigurationError: unknown provider or missing credentials
    """
    settings.require_job_credentials()
    if settings.WHATSAPP_PROVIDER == "meta_cloud":
        return MetaCloudSender(
            access_token=settings.META_ACCESS_TOKEN,
            phone_id=settings.META_PHONE_ID,
            base_url=settings.META_BASE_URL,
            timeout=settings.WHATSAPP_HTTP_TIMEOUT,
        )
    if settings.WHATSAPP_PROVIDER == "periskope":
        return PeriskopeSender(
            api_key=settings.PERISKOPE_API_KEY,
            sender_phone=settings.PERISKOPE_PHONE,
            api_url=settings.PERISKOPE_API_URL,
            chat_suffix=settings.WHATSAPP_CHAT_SUFFIX,
            timeout=settings.WHATSAPP_HTTP_TIMEOUT,
        )
    raise ConfigurationError(f"Unknown WhatsApp provider: {settings.WHATSAPP_PROVIDER}")
