"""Caller checks: shared-secret tokens and the origin blocklist."""
import secrets

from fastapi import Depends, Request

from .config import Settings
from .dependencies import get_settings
from .errors import InternalError, StealthBlockedError, UnauthorizedError


def client_ip(request: Request, settings: Settings) -> str | None:
    """Origin address from the proxy header, else the socket peer."""
    ip = request.headers.get(settings.client_ip_header)
    if ip:
        return ip.strip()
    return request.client.host if request.client else None


def has_auth_token(request: Request, header: str, expected: str | None) -> bool:
    """Exact match of the token header against ``expected``."""
    provided = request.headers.get(header)
    if not expected or provided is None:
        return False
    return secrets.compare_digest(provided.encode(), expected.encode())


def require_not_blocked(request: Request, settings: Settings):
    ip = client_ip(request, settings)
    if ip and ip in settings.ip_block_list:
        raise StealthBlockedError(f"Blocked IP: {ip}")


def require_configured(settings: Settings):
    """Fail closed until both secrets are set."""
    if not settings.is_configured:
        raise InternalError()


async def require_client_token(request: Request, settings: Settings = Depends(get_settings)):
    if not has_auth_token(request, settings.auth_header, settings.client_token):
        raise UnauthorizedError()


async def require_admin_token(request: Request, settings: Settings = Depends(get_settings)):
    if not has_auth_token(request, settings.auth_header, settings.admin_token):
        raise UnauthorizedError()
