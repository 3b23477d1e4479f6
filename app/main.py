import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger
from tortoise.contrib.fastapi import RegisterTortoise

from app import settings
from app.cache import close_redis
from app.errors import register_exception_handlers
from app.guards import install_overlap_guard
from app.routers.reservations import router as reservations_router
from app.scopes import RESERVATION_SCOPE_DESCRIPTIONS

logger.remove()
logger.add(sys.stderr, level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with RegisterTortoise(
        app,
        config=settings.TORTOISE_ORM,
        generate_schemas=settings.GENERATE_SCHEMAS,
    ):
        await install_overlap_guard()
        logger.info("Reservations service started")
        yield
    await close_redis()


def _description() -> str:
    lines = ["Reservation admission, lifecycle and payment evidence.", "", "Scopes:"]
    lines += [
        f"- `{scope}`: {text}"
        for scope, text in RESERVATION_SCOPE_DESCRIPTIONS.items()
    ]
    return "\n".join(lines)


app = FastAPI(
    title="Reservations Service",
    description=_description(),
    lifespan=lifespan,
)
register_exception_handlers(app)
app.include_router(reservations_router)


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    return {"status": "ok"}
