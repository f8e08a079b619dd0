from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from quiz_engine.config import settings
from quiz_engine.database import SessionLocal, init_db
from quiz_engine.routes import sessions, scheduler, scoring
from quiz_engine.utils.expiration_sweeper import ExpirationSweeper
from quiz_engine.utils.logging_config import configure_logging

logger = configure_logging(settings.log_level)

def create_app(session_factory=SessionLocal, bind=None, clock=None) -> FastAPI:
    """Build the API with an expiration sweeper tied to its lifespan"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(bind)
        app.state.sweeper.start()
        try:
            yield
        finally:
            # Let an in-flight batch finish before the process exits
            await app.state.sweeper.stop()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        description="Quiz attempt sessions, timing and scoring",
        lifespan=lifespan,
    )
    app.state.sweeper = ExpirationSweeper.from_settings(session_factory, clock=clock)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers with prefixes and tags
    app.include_router(sessions.router, prefix="/sessions", tags=["Quiz Sessions"])
    app.include_router(scoring.router, prefix="/scoring", tags=["Scoring"])
    app.include_router(scheduler.router, prefix="/scheduler", tags=["Scheduler"])

    @app.get("/")
    async def root():
        return {"message": f"Welcome to {settings.app_name}", "version": app.version}

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("quiz_engine.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
