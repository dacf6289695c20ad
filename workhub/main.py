from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from workhub.core import config
from workhub.core.database.engine import init_db
from workhub.core.limiter import limiter
from workhub.features.access.routes import router as access_router
from workhub.features.audit_logs.routes import router as audit_log_router
from workhub.features.departments.routes import router as department_router
from workhub.features.org_permissions.routes import router as org_permission_router
from workhub.utils import get_logger


log = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Initialize database on application startup."""
    log.info("Initializing database...")
    await init_db()
    log.info("Database initialized successfully")
    yield


log.info("Initializing server")
app = FastAPI(
    title="Workhub Access",
    description="Hierarchical access resolution for organizations, workspaces and projects",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None,
    lifespan=lifespan,
)
app.state.limiter = limiter


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.workhub.features."), timing=timing, tags=tags))


app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
    origins = [config.ALLOW_ORIGIN]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        if key == "__root__":
            key = "root"
        errors[key] = error["msg"]
    log.info("Request validation error %s", errors)
    return JSONResponse(status_code=400, content=jsonable_encoder(errors))


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"error": "You are going too fast"}, status_code=429)


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": "Workhub Access API",
        "version": "0.1.0",
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": {
            "info": "All endpoints below require a Bearer token in the Authorization header",
            "protected_endpoints": [
                "/access/*", "/org-permissions/*", "/departments/*", "/audit-logs/*"
            ],
            "public_endpoints": ["/", "/health"]
        },
        "features": {
            "access": "Organization, workspace and project access resolution with route keys",
            "org_permissions": "Explicit org permission grants (OWNER only) with role-default fallback",
            "departments": "Departments owning org permissions; the source of non-owner org access",
            "audit_logs": "Audit trail of permission and department changes"
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Access resolution
app.include_router(access_router, prefix="/access", tags=["access"])

# Explicit org permission grants
app.include_router(org_permission_router, prefix="/org-permissions", tags=["org-permissions"])

# Departments
app.include_router(department_router, prefix="/departments", tags=["departments"])

# Audit logs
app.include_router(audit_log_router, prefix="/audit-logs", tags=["audit-logs"])
