# backend/discovery/api/dependencies/identity.py
"""
Caller identity and origin.

Authentication happens upstream; this service only reads the user id the
gateway forwards. A missing or blank header means an anonymous caller.
"""

from typing import Optional

from fastapi import Header, Request


def get_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> Optional[str]:
    if x_user_id is None:
        return None
    return x_user_id.strip() or None


def get_ip_from_request(request: Request) -> str:
    """
    Extract real IP address from request, handling proxies.

    Checks headers in order of preference:
    1. X-Forwarded-For (first entry is the original client)
    2. X-Real-IP (nginx)
    3. CF-Connecting-IP (Cloudflare)
    4. Remote address
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip:
        return cf_ip.strip()

    client = request.client
    if client and getattr(client, "host", None):
        return client.host
    return "127.0.0.1"
