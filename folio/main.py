import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from folio.config import settings
from folio.database.client import DatabaseClient
from folio.database.migrator import Migrator
from folio.modules.auth import routes as auth_routes
from folio.modules.custom_sections import routes as custom_sections_routes
from folio.modules.database import routes as database_routes
from folio.modules.email import routes as email_routes
from folio.modules.functions import routes as functions_routes
from folio.modules.seo import routes as seo_routes
from folio.modules.storage import routes as storage_routes
from folio.storage.buckets import ensure_default_buckets
from folio.storage.client import ObjectStorageClient

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit],
    enabled=settings.rate_limit_enabled,
)


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"Referrer-Policy", b"strict-origin-when-cross-origin"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


def run_startup_tasks() -> None:
    """Connect, migrate and provision buckets. Storage problems never block boot."""
    database = DatabaseClient.connect_with_retry()
    result = Migrator(database, settings.migrations_dir).run()
    if not result["success"]:
        raise RuntimeError("Database migrations failed")
    logger.info("Migrations complete: %d applied", result["applied"])

    try:
        ensure_default_buckets(ObjectStorageClient.get_storage())
    except Exception as e:
        logger.error("Bucket initialization failed, continuing without it: %s", e)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        redirect_slashes=False,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_routes.router)
    app.include_router(database_routes.router)
    app.include_router(storage_routes.router)
    app.include_router(seo_routes.router)
    app.include_router(custom_sections_routes.router)
    app.include_router(email_routes.router)
    app.include_router(functions_routes.router)

    @app.on_event("startup")
    async def startup_event():
        logger.info("Application startup")
        run_startup_tasks()

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Application shutdown")
        DatabaseClient.reset_client()

    @app.get("/")
    async def root():
        return {"message": f"Welcome to {settings.app_name}", "status": "healthy"}

    @app.get("/health")
    @limiter.exempt
    async def health():
        try:
            migrations = Migrator(DatabaseClient.get_database(), settings.migrations_dir).status()
        except Exception as e:
            logger.error("Health check could not read migration status: %s", e)
            return JSONResponse(status_code=503, content={"status": "unhealthy", "database": "unavailable"})
        return {"status": "healthy", "database": "connected", "migrations": migrations}

    @app.get("/ready")
    @limiter.exempt
    async def ready():
        try:
            DatabaseClient.get_database().ping()
        except Exception:
            return JSONResponse(status_code=503, content={"status": "not ready"})
        return {"status": "ready"}

    return app


app = create_app()
