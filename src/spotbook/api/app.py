"""ASGI entry point: uvicorn spotbook.api.app:app"""

from spotbook.api.factory import create_app

app = create_app()
