from __future__ import annotations

"""
Best-effort image notifications (Telegram).

`notify()` never raises: transport and API failures come back as a failed
NotifyResult. Callers on the upload path log and drop the result, the
explicit send-image endpoint turns it into an HTTP error.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import httpx

from priceportal.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotifyResult:
    ok: bool
    error: Optional[str] = None
    response: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ImageEvent:
    chat_id: str
    image_url: str
    caption: str = ""


class ImageNotifier(Protocol):
    @property
    def configured(self) -> bool:
        ...

    def notify(self, event: ImageEvent) -> NotifyResult:
        ...


class TelegramNotifier:
    """Posts `sendPhoto` to the Bot API (HTML captions)."""

    def __init__(
        self,
        bot_token: Optional[str] = None,
        *,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._bot_token = settings.TELEGRAM_BOT_TOKEN if bot_token is None else bot_token
        self._api_base = (api_base or settings.TELEGRAM_API_BASE).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.TELEGRAM_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._bot_token)

    def notify(self, event: ImageEvent) -> NotifyResult:
        if not self.configured:
            return NotifyResult(ok=False, error="Telegram not configured")

        payload = {
            "chat_id": event.chat_id,
            "photo": event.image_url,
            "caption": event.caption or "",
            "parse_mode": "HTML",
        }
        url = f"{self._api_base}/bot{self._bot_token}/sendPhoto"

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(url, json=payload)
        except httpx.HTTPError as e:
            # the URL carries the bot token, keep it out of the log
            logger.warning("Telegram sendPhoto transport error chat_id=%s: %s", event.chat_id, type(e).__name__)
            return NotifyResult(ok=False, error=f"transport error: {type(e).__name__}")

        try:
            data = response.json()
        except ValueError:
            data = {"description": response.text}
        if not isinstance(data, dict):
            data = {"result": data}

        if response.status_code != 200 or data.get("ok") is False:
            logger.warning(
                "Telegram sendPhoto rejected chat_id=%s photo=%s status=%s code=%s description=%s",
                event.chat_id,
                event.image_url,
                response.status_code,
                data.get("error_code"),
                data.get("description"),
            )
            return NotifyResult(
                ok=False,
                error=str(data.get("description") or f"HTTP {response.status_code}"),
                response=data,
            )

        return NotifyResult(ok=True, response=data)
