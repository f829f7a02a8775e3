"""Request context from gateway-injected headers.

Authentication and permission checks happen upstream; the gateway forwards
the caller's tenant and user as trusted headers. A request without them never
reaches the engine.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, HTTPException

TENANT_HEADER = "X-Tenant-Id"
ACTOR_HEADER = "X-Actor-Id"


@dataclass
class RequestContext:
    """Context returned by get_request_context."""

    tenant_id: str
    actor_id: str


def get_request_context(
    x_tenant_id: str | None = Header(None, alias=TENANT_HEADER),
    x_actor_id: str | None = Header(None, alias=ACTOR_HEADER),
) -> RequestContext:
    """FastAPI dependency resolving the calling tenant and user.

    Raises:
        HTTPException: 401 if either header is missing or blank.
    """
    tenant_id = (x_tenant_id or "").strip()
    actor_id = (x_actor_id or "").strip()
    if not tenant_id or not actor_id:
        raise HTTPException(status_code=401, detail="Missing tenant or actor")
    return RequestContext(tenant_id=tenant_id, actor_id=actor_id)
