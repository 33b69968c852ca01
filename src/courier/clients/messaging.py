"""Outbound WhatsApp message sender.

One POST per reply; no delivery retries. The tenant's ``origin`` is the base
URL of its messaging API and ``auth_token`` is sent as a bearer token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    success: bool
    error: str | None = None
    message_id: str | None = None


class MessageSender(Protocol):
    def send(self, recipient: str, text: str, auth_token: str, origin: str) -> SendResult: ...


class WhatsAppSender:
    """Send text replies through a WhatsApp Business-compatible HTTP API.

    Args:
        send_path: Path appended to the tenant origin (``/v1/messages``).
        timeout: Request timeout in seconds.
        http: Optional pre-built ``httpx.Client``.
    """

    def __init__(
        self,
        send_path: str = "/v1/messages",
        timeout: float = 30.0,
        http: httpx.Client | None = None,
    ) -> None:
        self.send_path = "/" + send_path.lstrip("/")
        self._http = http or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def send(self, recipient: str, text: str, auth_token: str, origin: str) -> SendResult:
        url = origin.rstrip("/") + self.send_path
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": recipient.lstrip("+"),
            "type": "text",
            "text": {"body": text},
        }
        try:
            response = self._http.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {auth_token}"},
            )
        except httpx.HTTPError as exc:
            logger.error("Send to %s failed: %s", recipient, exc)
            return SendResult(success=False, error=str(exc))

        if response.is_error:
            detail = response.text[:300]
            logger.error("Send to %s failed: HTTP %d %s", recipient, response.status_code, detail)
            return SendResult(success=False, error=f"HTTP {response.status_code}: {detail}")

        return SendResult(success=True, message_id=_extract_message_id(response))


def _extract_message_id(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    messages = body.get("messages") if isinstance(body, dict) else None
    if messages and isinstance(messages, list):
        return messages[0].get("id")
    return None
