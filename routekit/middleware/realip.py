"""Take the client address from proxy headers."""

from __future__ import annotations

import ipaddress

from ..web import Handler, Request, ResponseWriter

_TRUE_CLIENT_IP = "True-Client-IP"
_X_REAL_IP = "X-Real-IP"
_X_FORWARDED_FOR = "X-Forwarded-For"


def _is_ip(text: str) -> bool:
    if not text or "%" in text:
        return False
    try:
        ipaddress.ip_address(text)
    except ValueError:
        return False
    return True


def client_ip(r: Request) -> str:
    """Return the client IP from True-Client-IP, X-Real-IP or X-Forwarded-For, or ''."""
    ip = (
        r.headers.get(_TRUE_CLIENT_IP)
        or r.headers.get(_X_REAL_IP)
        or r.headers.get(_X_FORWARDED_FOR).partition(",")[0]
    )
    return ip if _is_ip(ip) else ""


def real_ip(next: Handler) -> Handler:
    """Middleware setting ``remote_addr`` to the address named by trusted proxy headers."""

    def handler(w: ResponseWriter, r: Request) -> None:
        ip = client_ip(r)
        if ip:
            r.remote_addr = ip
        next(w, r)

    return handler