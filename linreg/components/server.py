"""
Server component for linreg.

This module provides a FastAPI server exposing the regression engine
and the dataset store over HTTP.
"""

import logging
import threading
from typing import List, Optional

import fastapi
import uvicorn
from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from linreg.components.config import Config, ConfigManager
from linreg.exceptions import LinregError, StoreError, ValidationError
from linreg.math.regression import Point, compute_regression
from linreg.store.datasets import DatasetStore

# Set up logging
logger = logging.getLogger(__name__)


# Define API models
class PointModel(BaseModel):
    """Point data model."""

    x: float
    y: float


class RegressionRequest(BaseModel):
    """Regression request model."""

    points: List[PointModel]


class DatasetCreateRequest(BaseModel):
    """Dataset creation request model."""

    name: str
    points: List[PointModel]


def _to_points(models: List[PointModel]) -> List[Point]:
    return [Point(p.x, p.y) for p in models]


class Server:
    """
    FastAPI server for linreg.
    """

    def __init__(self,
                 store: DatasetStore,
                 config: Optional[Config] = None):
        """
        Initialize a server.

        Args:
            store: Dataset store backing the /api/datasets routes
            config: Configuration for the server
        """
        self.store = store
        self.config = config or ConfigManager.get_config()

        # Create FastAPI app
        self.app = FastAPI(
            title="Linreg API",
            description="Least-squares line fitting with persistent datasets",
            version="0.1.0"
        )

        # Set up CORS
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # Set up routes
        self._setup_routes()

        # Set up request validation
        self._setup_validation()

        # Set up error handling
        self._setup_error_handling()

        # Server status
        self._running = False
        self._server_thread = None
        self._uvicorn_server = None

    def _setup_routes(self) -> None:
        """
        Set up API routes.
        """
        # Health check
        @self.app.get("/health")
        def health_check():
            return {"status": "ok"}

        # Stateless fit
        @self.app.post("/api/regression")
        def regression(request: RegressionRequest):
            return compute_regression(_to_points(request.points)).to_dict()

        # List datasets
        @self.app.get("/api/datasets")
        def list_datasets():
            return [summary.to_dict() for summary in self.store.list()]

        # Create dataset
        @self.app.post("/api/datasets", status_code=201)
        def create_dataset(request: DatasetCreateRequest):
            detail = self.store.create(request.name, _to_points(request.points))
            return detail.to_dict()

        # Get dataset
        @self.app.get("/api/datasets/{dataset_id}")
        def get_dataset(dataset_id: int):
            detail = self.store.get(dataset_id)

            if detail is None:
                raise HTTPException(status_code=404, detail="Dataset not found")

            return detail.to_dict()

        # Delete dataset
        @self.app.delete("/api/datasets/{dataset_id}", status_code=204)
        def delete_dataset(dataset_id: int):
            if not self.store.delete(dataset_id):
                raise HTTPException(status_code=404, detail="Dataset not found")

            return Response(status_code=204)

        # Optional browser front-end
        static_dir = self.config.get('server.static-dir')
        if static_dir:
            self.app.mount("/static", StaticFiles(directory=static_dir, html=True), name="static")

            @self.app.get("/", include_in_schema=False)
            def index():
                return RedirectResponse(url="/static/index.html")

    def _setup_validation(self) -> None:
        """
        Set up request validation.
        """
        @self.app.exception_handler(fastapi.exceptions.RequestValidationError)
        async def validation_exception_handler(request, exc):
            return JSONResponse(
                status_code=422,
                content={"detail": str(exc)}
            )

        @self.app.exception_handler(ValidationError)
        async def input_exception_handler(request, exc):
            return JSONResponse(
                status_code=400,
                content={"error": str(exc)}
            )

    def _setup_error_handling(self) -> None:
        """
        Set up error handling.
        """
        @self.app.exception_handler(StoreError)
        async def store_exception_handler(request, exc):
            # Details were logged by the store
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error"}
            )

        @self.app.exception_handler(LinregError)
        async def linreg_exception_handler(request, exc):
            logger.exception("Unhandled linreg error")
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error"}
            )

        @self.app.exception_handler(Exception)
        async def generic_exception_handler(request, exc):
            logger.exception("Unhandled exception")
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error"}
            )

    def start(self) -> None:
        """
        Start serving in a background thread.
        """
        if self._running:
            return

        uvicorn_config = uvicorn.Config(
            self.app,
            host=self.config.get('server.host', 'localhost'),
            port=self.config.get('server.port', 8080),
            log_level=self.config.get('logging.level', 'info')
        )
        self._uvicorn_server = uvicorn.Server(uvicorn_config)

        self._server_thread = threading.Thread(
            target=self._uvicorn_server.run,
            name="linreg-http",
            daemon=True
        )
        self._server_thread.start()

        self._running = True

        logger.info(f"Server started at {self.config.get('server-url')}")

    def stop(self, timeout: float = 10.0) -> None:
        """
        Ask uvicorn to exit and wait for the serving thread.

        Args:
            timeout: Seconds to wait for in-flight requests to finish
        """
        if not self._running:
            return

        self._uvicorn_server.should_exit = True
        self._server_thread.join(timeout)

        if self._server_thread.is_alive():
            logger.warning("Server thread did not exit within %.1fs", timeout)

        self._running = False
        self._server_thread = None
        self._uvicorn_server = None

        logger.info("Server stopped")
