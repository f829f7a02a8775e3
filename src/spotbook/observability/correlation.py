"""Request-scoped context (correlation ID, tenant) for log enrichment."""

import uuid
from contextvars import ContextVar, Token

# Context variables - accessible across async calls and worker threads
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
tenant_id_var: ContextVar[str] = ContextVar("tenant_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def get_correlation_id() -> str:
    """Get current correlation ID from context."""
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    """Set correlation ID in context."""
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    """Reset correlation ID to previous value."""
    correlation_id_var.reset(token)


def get_tenant_id() -> str:
    """Get the tenant bound to the current unit of work."""
    return tenant_id_var.get()


def bind_tenant_id(tenant_id: str) -> Token[str]:
    return tenant_id_var.set(tenant_id)


def unbind_tenant_id(token: Token[str]) -> None:
    tenant_id_var.reset(token)
