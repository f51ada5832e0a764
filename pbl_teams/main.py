# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
PBL Teams Service
=================
Students form teams per year/subject, mentors grade their members and
broadcast announcements, admins oversee teams and keep a Google spreadsheet
mirror in sync (teams pushed out, mentor assignments pulled back).

Identity is forwarded by the auth gateway in X-User-* headers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pbl_teams.controllers import (
    academic_controller,
    admin_controller,
    auth_controller,
    student_controller,
    system_controller,
    teacher_controller,
)
from pbl_teams.core.config import settings
from pbl_teams.core.database import init_schema
from pbl_teams.core.dependencies import get_container
from pbl_teams.core.errors import ServiceError
from pbl_teams.core.logging import get_logger
from pbl_teams.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = get_container()
    if settings.AUTO_CREATE_SCHEMA:
        init_schema(container.engine)
    if settings.SEED_DEFAULTS:
        container.academic_service.seed_defaults(settings)
    logger.info(
        "%s v%s started (sheets %s)",
        settings.SERVICE_NAME,
        settings.SERVICE_VERSION,
        "configured" if container.sync_engine.configured else "not configured",
    )
    yield
    container.engine.dispose()
    logger.info("%s shutting down", settings.SERVICE_NAME)


app = FastAPI(
    title="PBL Teams Service",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.message,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(system_controller.router)
app.include_router(auth_controller.router)
app.include_router(academic_controller.router)
app.include_router(student_controller.router)
app.include_router(teacher_controller.router)
app.include_router(admin_controller.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("pbl_teams.main:app", host="0.0.0.0", port=settings.SERVICE_PORT)
