"""Public-facing routes (APP_ROLE=public)."""

from fastapi import APIRouter

from spotbook.api.routes import inventory, orders, reservations

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


router.include_router(reservations.router)
router.include_router(orders.router)
router.include_router(inventory.router)
