"""Expose the dispatcher over HTTP.

``POST /launch`` starts a run, ``POST /stop`` asks it to stop, ``GET /status``
shows progress and ``POST /report`` writes the statistics report once the run
is over.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request

from lib.config.dispatcher_loader import load_dispatcher_config
from lib.telemetry.logger import configure_logging, get_logger

from .errors import DispatchInProgress, ReportError, ServiceError
from .service import DispatcherService

logger = get_logger(__name__)


def create_app(service: Optional[DispatcherService] = None) -> FastAPI:
    """Build the app.  Without ``service`` one is wired from the configuration at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if service is None:
            cfg = load_dispatcher_config()
            configure_logging(cfg.log_level)
            owned = DispatcherService.from_config(cfg)
        app.state.service = service or owned
        try:
            yield
        finally:
            if owned is not None:
                await owned.aclose()

    app = FastAPI(lifespan=lifespan)

    def _service(request: Request) -> DispatcherService:
        return request.app.state.service

    @app.post("/launch")
    async def launch(request: Request, wait: bool = False):
        """Start dispatching; with ``wait=true`` return once the run is over."""

        svc = _service(request)
        try:
            svc.launch()
        except DispatchInProgress as exc:
            raise HTTPException(status_code=409, detail=str(exc))
        if wait:
            await svc.wait()
        return svc.status()

    @app.post("/stop")
    async def stop(request: Request):
        return {"stopping": _service(request).stop()}

    @app.get("/status")
    async def status(request: Request):
        return _service(request).status()

    @app.post("/report")
    async def report(request: Request):
        """Write the statistics report and return its path."""

        try:
            path = await _service(request).create_statistics_report()
        except DispatchInProgress as exc:
            raise HTTPException(status_code=409, detail=str(exc))
        except ReportError as exc:
            if isinstance(exc.__cause__, ServiceError):
                status_code = 502
            elif exc.__cause__ is not None:
                status_code = 500
            else:
                status_code = 409
            raise HTTPException(status_code=status_code, detail=str(exc))
        return {"path": path}

    return app


app = create_app()
