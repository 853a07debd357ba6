"""
FastAPI server for Campus Bridge.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth import AdminVerifier, set_verifier
from .models import HealthResponse, WakeResponse
from .routes import router as materials_router, set_services
from ..config.settings import BridgeConfig
from ..data.base import MaterialRepository
from ..exceptions import BridgeError
from ..processing.processor import MaterialProcessor

logger = logging.getLogger(__name__)


class BridgeServer:
    """HTTP surface for processing and moderating study materials."""

    def __init__(
        self,
        config: BridgeConfig,
        processor: MaterialProcessor,
        materials: MaterialRepository,
        verifier: Optional[AdminVerifier] = None,
    ):
        """Initialize server.

        Args:
            config: Bridge configuration
            processor: Material processor used by the routes
            materials: Material repository (used by /wake)
            verifier: Admin verifier; built from config when omitted
        """
        self.config = config
        self.processor = processor
        self.materials = materials
        self.server: Optional[uvicorn.Server] = None

        set_verifier(verifier or AdminVerifier(config.auth.jwt_secret, config.auth.algorithm))
        set_services(processor)

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            logger.info("Campus Bridge server starting up")
            yield
            logger.info("Campus Bridge server shutting down")

        self.app = FastAPI(
            title="Campus Bridge API",
            description="Moves study materials to Dropbox and publishes download links",
            version="1.0.0",
            lifespan=lifespan,
        )

        self._setup_middleware()
        self._setup_routes()
        self._setup_error_handlers()

    def _setup_middleware(self) -> None:
        """Configure FastAPI middleware."""
        cors_origins = self.config.server.cors_origins or ["http://localhost:8080"]
        logger.info(f"CORS allowed origins: {cors_origins}")

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=False,
            allow_methods=["GET", "POST", "DELETE", "PUT", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )

    def _setup_routes(self) -> None:
        """Configure API routes."""

        @self.app.get("/health", response_model=HealthResponse, tags=["Health"])
        async def health_check():
            return HealthResponse()

        @self.app.get("/wake", response_model=WakeResponse, tags=["Health"])
        async def wake():
            """Wake the process and its database connection."""
            try:
                await self.materials.ping()
            except Exception as e:
                logger.debug(f"Wake query failed: {e}")
            return WakeResponse(awake_at=datetime.now(timezone.utc).isoformat())

        self.app.include_router(materials_router, tags=["Materials"])

    def _setup_error_handlers(self) -> None:
        """Configure global error handlers."""

        @self.app.exception_handler(BridgeError)
        async def bridge_error_handler(request: Request, exc: BridgeError):
            if exc.status_code >= 500:
                logger.error(f"{exc.error_code} on {request.url.path}: {exc}")
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": exc.user_message},
            )

        @self.app.exception_handler(RequestValidationError)
        async def validation_error_handler(request: Request, exc: RequestValidationError):
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
                for error in exc.errors()
            )
            logger.info(f"Rejected invalid request to {request.url.path}: {problems}")
            return JSONResponse(
                status_code=400,
                content={"error": "Invalid request", "details": problems},
            )

        @self.app.exception_handler(Exception)
        async def general_error_handler(request: Request, exc: Exception):
            logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "details": str(exc)},
            )

    async def serve(self) -> None:
        """Run the server until it is asked to exit."""
        host = self.config.server.host
        port = self.config.server.port

        server_config = uvicorn.Config(
            app=self.app,
            host=host,
            port=port,
            log_level=self.config.log_level.value.lower(),
            access_log=True,
            loop="asyncio",
        )
        self.server = uvicorn.Server(server_config)

        logger.info(f"Server running at http://{host}:{port}")
        await self.server.serve()

    def stop(self) -> None:
        """Ask a running server to exit."""
        if self.server is not None:
            self.server.should_exit = True

    def get_app(self) -> FastAPI:
        return self.app
