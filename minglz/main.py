from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

# IMPORTANT:
# This imports ALL models so SQLAlchemy registers tables + FKs correctly
import minglz.models  # noqa: F401
from minglz.core.config import settings
from minglz.core.db import Base, engine
from minglz.core.logging import configure_logging

# Routers
from minglz.routers.auth import router as auth_router
from minglz.routers.users import router as users_router
from minglz.routers.events import router as events_router
from minglz.routers.public_events import router as public_events_router
from minglz.routers.upload import router as upload_router
from minglz.routers.stats import router as stats_router

from minglz.routers.coupons import router as coupons_router
from minglz.routers.stores import router as stores_router
from minglz.routers.locations import router as locations_router
from minglz.routers.pos import router as pos_router

configure_logging()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.DB_CREATE_TABLES:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")
    yield
    await engine.dispose()


app = FastAPI(title="MyMinglz API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------
# {success: false, error} envelope for every failure
# -------------------------
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        body = {"success": False, **exc.detail}
    else:
        body = {"success": False, "error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder(
            {"success": False, "error": "잘못된 요청입니다.", "details": exc.errors()}
        ),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error", path=request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": "서버 오류가 발생했습니다."})


# Auth & users
app.include_router(auth_router)
app.include_router(users_router)

# Events (admin + public)
app.include_router(events_router)
app.include_router(public_events_router)
app.include_router(upload_router)
app.include_router(stats_router)

# Coupons
app.include_router(coupons_router)
app.include_router(stores_router)
app.include_router(locations_router)
app.include_router(pos_router)


@app.get("/health")
async def health():
    return {"success": True}
