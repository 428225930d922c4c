import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shuttle.core.config import settings
from shuttle.core.errors import ShuttleError
from shuttle.core.logging_config import configure_logging
from shuttle.db.session import Database
from shuttle.api.v1.api import api_router

logger = logging.getLogger(__name__)

# CORS: use CORS_ORIGINS from env in production; default to localhost for dev
_default_origins = [
    "http://127.0.0.1:3000", "http://localhost:3000",
    "http://127.0.0.1:8080", "http://localhost:8080",
]


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ShuttleError)
    async def _shuttle_error(request: Request, exc: ShuttleError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        detail = f"{where}: {first.get('msg')}" if where else str(first.get("msg", "Invalid request"))
        return JSONResponse(
            status_code=400,
            content={"detail": detail, "code": "VALIDATION_ERROR", "errors": jsonable_errors(errors)},
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception(
            "Unhandled error on %s %s (path params %s)",
            request.method, request.url.path, dict(request.path_params),
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error", "code": "INTERNAL_ERROR"})


def jsonable_errors(errors: list[dict]) -> list[dict]:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in errors]


def create_app(database: Database | None = None) -> FastAPI:
    """Build the API. Pass `database` to use an existing engine (tests); otherwise one is created at startup."""
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = database is None
        app.state.database = database or Database()
        logger.info("%s starting (env=%s)", settings.APP_NAME, settings.ENV)
        try:
            yield
        finally:
            if owned:
                app.state.database.dispose()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    if database is not None:
        app.state.database = database

    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] if settings.CORS_ORIGINS else _default_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
