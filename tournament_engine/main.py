from contextlib import asynccontextmanager

from fastapi import FastAPI

from tournament_engine.api.endpoints import matches as match_endpoints
from tournament_engine.api.endpoints import participants as participant_endpoints
from tournament_engine.api.endpoints import tournaments as tournament_endpoints
from tournament_engine.api.errors import register_exception_handlers
from tournament_engine.core.config import settings
from tournament_engine.core.database import init_db
from tournament_engine.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db()
    yield


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_TITLE, lifespan=lifespan)
    register_exception_handlers(app)

    app.include_router(tournament_endpoints.router, prefix="/tournaments", tags=["Tournaments"])
    app.include_router(
        participant_endpoints.router,
        prefix="/tournaments/{tournament_id}/participants",
        tags=["Participants"],
    )
    app.include_router(match_endpoints.router, prefix="/matches", tags=["Matches"])

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("tournament_engine.main:app", host="0.0.0.0", port=8000)
