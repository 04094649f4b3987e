from __future__ import annotations

import logging

from fastapi import FastAPI

from tower_defense.api.routes import router
from tower_defense.config import Settings, get_settings
from tower_defense.server import build_game_server

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    server = build_game_server(settings)

    app = FastAPI(title="tower-defense", version="0.1.0")
    app.state.game_server = server
    app.include_router(router)

    @app.on_event("startup")
    async def _startup() -> None:
        server.scheduler.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await server.scheduler.stop()

    @app.get("/info")
    async def info() -> dict[str, str]:
        return {"name": "tower-defense", "version": "0.1.0"}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    logger.info("tower defense server listening on port %d", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
