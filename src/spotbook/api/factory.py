"""FastAPI application factory.

The same image runs as two services: `public` serves the reservation,
order and inventory API; `worker` additionally accepts the scheduled
expiration sweep.
"""

import os
from typing import Literal, get_args

from fastapi import FastAPI, Request, Response

from spotbook.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)

from .routers import public, worker

AppRole = Literal["public", "worker"]


def create_app(role: AppRole | None = None) -> FastAPI:
    """Build the app for one service role.

    Args:
        role: "public" or "worker". Falls back to APP_ROLE, then "public".

    Raises:
        ValueError: On an unknown role.
    """
    if role is None:
        role = os.environ.get("APP_ROLE", "public")  # type: ignore[assignment]
    if role not in get_args(AppRole):
        raise ValueError(f"unknown APP_ROLE: {role!r}")

    app = FastAPI(title="Spotbook", docs_url=None, redoc_url=None)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    app.include_router(public.router)

    # Sweep triggers are only reachable on the worker service
    if role == "worker":
        app.include_router(worker.router)

    return app
