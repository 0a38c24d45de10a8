"""
Request credentials and role resolution for the scan endpoints.

The HTTP layer builds one ``RequestContext`` per request and passes it down
explicitly; nothing below the route reads headers directly.
"""

import hmac
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional

from core.config import settings
from core.exceptions import ForbiddenError, UnauthorizedError


class Role(str, Enum):
    ANONYMOUS = "anonymous"
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class RequestContext:
    """Credentials and negotiation headers captured at the route boundary."""

    authorization: Optional[str] = None
    api_key: Optional[str] = None
    accept: Optional[str] = None
    is_internal: bool = False

    @property
    def bearer_token(self) -> Optional[str]:
        if not self.authorization:
            return None
        scheme, _, token = self.authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return None
        return token.strip()

    @property
    def wants_event_stream(self) -> bool:
        return bool(self.accept) and "text/event-stream" in self.accept


def _matches(presented: Optional[str], expected: Optional[str]) -> bool:
    if not presented or not expected:
        return False
    return hmac.compare_digest(presented.encode(), expected.encode())


def resolve_role(
    ctx: RequestContext,
    admin_key: Optional[str] = None,
    user_key: Optional[str] = None,
) -> Role:
    """Map the presented API key to a role."""
    admin_key = admin_key if admin_key is not None else settings.ADMIN_API_KEY
    user_key = user_key if user_key is not None else settings.API_KEY

    if _matches(ctx.api_key, admin_key):
        return Role.ADMIN
    if _matches(ctx.api_key, user_key):
        return Role.USER
    return Role.ANONYMOUS


def require_admin(
    ctx: RequestContext,
    admin_key: Optional[str] = None,
    user_key: Optional[str] = None,
) -> None:
    """
    Raise unless the request carries the admin key.

    Raises:
        UnauthorizedError: No recognised credential (401)
        ForbiddenError: Authenticated but not an admin (403)
    """
    role = resolve_role(ctx, admin_key, user_key)
    if role is Role.ANONYMOUS:
        raise UnauthorizedError("Authentication required")
    if role is not Role.ADMIN:
        raise ForbiddenError("Admin role required")


def authorize_cron_request(
    ctx: RequestContext,
    cron_secret: Optional[str] = None,
    admin_key: Optional[str] = None,
    user_key: Optional[str] = None,
) -> None:
    """
    Authorize a GET /scan call.

    When a cron secret is configured the bearer token must match it; this
    covers both the platform scheduler and self-issued continuations. With
    no secret configured an admin key is required instead.
    """
    cron_secret = cron_secret if cron_secret is not None else settings.CRON_SECRET

    if cron_secret:
        if not _matches(ctx.bearer_token, cron_secret):
            raise UnauthorizedError("Invalid or missing scheduler credential")
        return

    require_admin(ctx, admin_key, user_key)


# ============================================================================
# Redaction
# ============================================================================

REDACTED = "[redacted]"


def configured_secrets() -> List[str]:
    """Credentials that must never appear in a response body or a log line"""
    return [s for s in (settings.CRON_SECRET, settings.ADMIN_API_KEY, settings.PARTNER_API_TOKEN) if s]


def redact(text: Any, secrets: Iterable[Optional[str]] = ()) -> str:
    text = str(text)
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text
