"""Worker routes for reservation maintenance tasks."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from spotbook.api.task_auth import verify_task_auth
from spotbook.domain.errors import TenantNotFoundError
from spotbook.domain.expire_reservations import (
    run_expiration_sweep,
    run_expiration_sweep_all,
)
from spotbook.observability.correlation import get_correlation_id
from spotbook.observability.logging import get_logger
from spotbook.observability.redaction import safe_log_context

router = APIRouter(prefix="/tasks/reservations", tags=["tasks"])

logger = get_logger(__name__)


@router.post("/expire-sweep")
async def handle_expire_sweep(request: Request) -> JSONResponse:
    """Expire stale holds for one tenant, or for every active tenant.

    Triggered by Cloud Scheduler. Safe to retry and to run concurrently.
    The sweep blocks on the database, so it runs on the threadpool.

    Optional payload:
    - tenant_id: sweep only this tenant
    - batch_size: max reservations claimed
    """
    correlation_id = get_correlation_id()

    if not verify_task_auth(request):
        logger.warning(
            "task auth failed",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        raise HTTPException(status_code=401, detail="Unauthorized")

    payload: dict[str, Any] = {}
    body = await request.body()
    if body:
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse(status_code=400, content={"ok": False, "error": "invalid json"})
        if not isinstance(payload, dict):
            return JSONResponse(status_code=400, content={"ok": False, "error": "invalid json"})

    tenant_id = payload.get("tenant_id")
    batch_size = payload.get("batch_size")
    if batch_size is not None and (not isinstance(batch_size, int) or batch_size < 1):
        return JSONResponse(
            status_code=400, content={"ok": False, "error": "invalid batch_size"}
        )

    try:
        if tenant_id:
            result = await run_in_threadpool(
                run_expiration_sweep, tenant_id, batch_size=batch_size
            )
            results = {tenant_id: result}
        else:
            results = await run_in_threadpool(run_expiration_sweep_all, batch_size=batch_size)
    except TenantNotFoundError:
        return JSONResponse(status_code=404, content={"ok": False, "error": "tenant not found"})
    except Exception:
        logger.exception(
            "expire-sweep task failed",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return JSONResponse(status_code=500, content={"ok": False, "error": "processing failed"})

    expired = sum(r.expired_count for r in results.values())
    failed = sum(r.failed_count for r in results.values())
    logger.info(
        "expire-sweep task completed",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                tenants=len(results),
                expired_count=expired,
                failed_count=failed,
            )
        },
    )
    return JSONResponse(
        status_code=200,
        content={
            "ok": True,
            "expired_count": expired,
            "failed_count": failed,
            "tenants": {
                tid: {"expired_count": r.expired_count, "failed_count": r.failed_count}
                for tid, r in results.items()
            },
        },
    )
