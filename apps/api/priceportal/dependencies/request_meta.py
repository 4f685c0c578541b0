from __future__ import annotations

from fastapi import Request

from priceportal.core.context import RequestMeta


def get_request_meta(request: Request) -> RequestMeta:
    """IP = first X-Forwarded-For hop, then X-Real-IP; agent from User-Agent."""
    forwarded = request.headers.get("x-forwarded-for")
    ip = forwarded.split(",")[0].strip() if forwarded else ""
    if not ip:
        ip = (request.headers.get("x-real-ip") or "").strip()
    return RequestMeta(
        ip_address=ip or "unknown",
        user_agent=request.headers.get("user-agent") or "unknown",
    )
