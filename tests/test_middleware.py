import logging

import httpx
from fastapi import FastAPI

from app.middleware.logging import LoggingMiddleware


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(LoggingMiddleware)

    @app.get("/ping")
    async def ping():
        return {"pong": True}

    return app


async def test_logs_method_path_and_status(caplog):
    caplog.set_level(logging.INFO, logger="app.middleware.logging")
    transport = httpx.ASGITransport(app=_app())

    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/ping")

    assert response.status_code == 200
    assert any("GET /ping -> 200" in record.getMessage() for record in caplog.records)
