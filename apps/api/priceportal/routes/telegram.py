from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from priceportal.core.config import settings
from priceportal.core.context import AuthContext
from priceportal.core.errors import ErrorWithDetails
from priceportal.dependencies.permissions import require_admin
from priceportal.dependencies.services import get_notifier, get_storage
from priceportal.schemas.price_group import TelegramSendIn
from priceportal.services.notifier import ImageEvent, ImageNotifier
from priceportal.services.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/telegram", tags=["telegram"])


def resolve_image_url(image_url: str, storage: Storage) -> str:
    """
    - http(s) URL: as is
    - "/path": appended to STORAGE_PUBLIC_BASE_URL
    - anything else is a storage key: its public URL
    """
    url = image_url.strip()
    if url.startswith(("http://", "https://")):
        return url
    if url.startswith("/"):
        return f"{settings.STORAGE_PUBLIC_BASE_URL.rstrip('/')}/{url.lstrip('/')}"
    return storage.public_url(url)


@router.post("/send-image")
def send_image(
    data: TelegramSendIn,
    _: AuthContext = Depends(require_admin),
    storage: Storage = Depends(get_storage),
    notifier: ImageNotifier = Depends(get_notifier),
) -> Dict[str, Any]:
    if not data.imageUrl or not data.chatId:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")

    if not notifier.configured:
        logger.error("TELEGRAM_BOT_TOKEN not configured")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Telegram not configured")

    photo = resolve_image_url(data.imageUrl, storage)
    result = notifier.notify(ImageEvent(chat_id=data.chatId, image_url=photo, caption=data.caption or ""))

    if not result.ok:
        raise ErrorWithDetails(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to send to Telegram",
            details=result.response or {"description": result.error},
        )

    return {"success": True, "data": result.response}
