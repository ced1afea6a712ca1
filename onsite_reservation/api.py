"""FastAPI backend for the onsite reservation system's authentication surface."""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .auth.users import build_auth_backend
from .config import Config, get_config
from .database import create_engine_and_sessionmaker, init_db
from .routes import auth_routes, debug_routes

logger = logging.getLogger(__name__)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Answer malformed request bodies with 400 and a field-by-field summary."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Validation failed", "errors": errors},
    )


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Build the application for a configuration."""
    config = config or get_config()
    is_valid, error_msg = config.validate()
    if not is_valid:
        raise RuntimeError(f"Invalid configuration: {error_msg}")

    engine, session_maker = create_engine_and_sessionmaker(config.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"🚀 Starting Onsite Reservation API with {config}")
        await init_db(engine, session_maker)
        logger.info("✓ Database ready")
        yield
        await engine.dispose()
        logger.info("Database connections closed")

    app = FastAPI(title="Onsite Reservation API", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.engine = engine
    app.state.session_maker = session_maker
    app.state.auth_backend = build_auth_backend(config)

    # Session cookie has to cross origins for the SPA frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(auth_routes.router)
    if config.expose_session_debug:
        app.include_router(debug_routes.router)
    else:
        logger.info("Session debug endpoint disabled")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Onsite Reservation API",
            "version": __version__,
            "status": "ready",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
        }

    return app
