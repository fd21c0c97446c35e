import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import CORS_ORIGINS
from app.database import engine
from app.models.assistance import AssistanceRequest  # noqa: F401 (registers table metadata)
from app.models.carpool import Carpool  # noqa: F401
from app.models.carpool_passenger import CarpoolPassenger  # noqa: F401
from app.models.housing import HousingOffer  # noqa: F401
from app.models.skill import VolunteerSkill  # noqa: F401
from app.models.user import User  # noqa: F401
from app.routers.carpools import router as carpools_router
from app.routers.directory import router as directory_router
from app.routers.users import router as users_router

logger = logging.getLogger(__name__)


def _run_alembic_upgrade() -> None:
    """Apply DB migrations on startup."""
    from alembic import command
    from alembic.config import Config

    root = Path(__file__).resolve().parent.parent
    cfg = Config(str(root / "alembic.ini"))
    cfg.attributes["configure_logger"] = False
    command.upgrade(cfg, "head")


app = FastAPI(
    title="Relief Coordination API",
    description="Volunteers, assistance requests, temporary housing and carpools after the floods",
    version="0.1.0",
)


@app.on_event("startup")
def _startup_migrate() -> None:
    """Run `alembic upgrade head` on startup."""
    try:
        _run_alembic_upgrade()
    except Exception:
        # DB not up yet (e.g. local run without a database): the app still starts
        logger.warning("Alembic upgrade failed; continuing without migrations", exc_info=True)


app.include_router(users_router)
app.include_router(carpools_router)
app.include_router(directory_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check() -> dict:
    db_ok = True
    try:
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
    except Exception:
        logger.warning("Health check could not reach the database", exc_info=True)
        db_ok = False
    return {"status": "ok", "database": db_ok}


@app.get("/", tags=["Root"])
async def root() -> dict:
    return {
        "message": "Relief Coordination API",
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
