"""
============================================================================
FILE: main.py
LOCATION: eduportal/main.py
============================================================================

PURPOSE:
    FastAPI application for the educational content portal.

ROLE IN PROJECT:
    Wires the resource routers, exception handlers, CORS, rate limiting
    and the /uploads static mount together. Startup configures logging
    and makes sure the master admin exists.

USAGE:
    uvicorn eduportal.main:app --reload
============================================================================
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi.middleware import SlowAPIMiddleware

from eduportal import config
from eduportal.bootstrap import ensure_master_admin
from eduportal.chapters import chapters_router
from eduportal.content import content_router
from eduportal.dashboard import router as dashboard_router
from eduportal.dashboard import student_router
from eduportal.departments import departments_router
from eduportal.errors import register_exception_handlers
from eduportal.limiter import limiter
from eduportal.logging_config import get_logger, setup_logging
from eduportal.store import PortalStores
from eduportal.subjects import subjects_router
from eduportal.uploads import router as upload_router
from eduportal.users import auth_router, users_router


logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(level=config.LOG_LEVEL, production=config.LOG_JSON)
    mode = "mock" if config.USE_MOCK_DB else "firebase"
    logger.info("Starting %s %s (%s backend)", config.APP_NAME, config.APP_VERSION, mode)
    ensure_master_admin(PortalStores())
    yield
    logger.info("Shutting down %s", config.APP_NAME)


app = FastAPI(title=config.APP_NAME, version=config.APP_VERSION, lifespan=lifespan)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(departments_router)
app.include_router(subjects_router)
app.include_router(chapters_router)
app.include_router(content_router)
app.include_router(upload_router)
app.include_router(dashboard_router)
app.include_router(student_router)

# Local blob store files (mock mode); Firebase URLs point at the bucket instead
config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(config.UPLOAD_DIR)), name="uploads")


@app.get("/")
def root():
    return {"message": f"{config.APP_NAME} is running", "version": config.APP_VERSION}
