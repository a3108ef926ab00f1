"""
HTTP control surface for a server-hosted orchestrator.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from aggregator.adapters.universal import scrape_page
from aggregator.config.settings import settings
from aggregator.core.errors import OrchestratorBusy, ScrapeCancelled
from aggregator.core.models import ScrapeRequest
from aggregator.core.orchestrator import Orchestrator
from aggregator.core.session import BrowserSession

logger = logging.getLogger(__name__)

VERSION = "2.1.0"


class UniversalScrapeBody(BaseModel):
    url: str


def create_app(
    orchestrator: Optional[Orchestrator] = None,
    session_factory: Callable[[], BrowserSession] = BrowserSession,
    request_timeout: Optional[float] = None,
) -> FastAPI:
    app = FastAPI(title="Job Aggregator", version=VERSION)
    app.state.orchestrator = orchestrator or Orchestrator()
    app.state.session_factory = session_factory
    app.state.request_timeout = request_timeout or settings.REQUEST_TIMEOUT

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        if request.url.path != "/":
            logger.info(f"{request.method} {request.url.path} -> {response.status_code}")
        return response

    @app.get("/")
    async def health():
        return {
            "success": True,
            "status": "ok",
            "message": "Job aggregator backend is running",
            "version": VERSION,
        }

    @app.post("/scrape")
    async def scrape(body: ScrapeRequest):
        orch: Orchestrator = app.state.orchestrator
        started = time.monotonic()
        try:
            jobs = await asyncio.wait_for(orch.run(body), timeout=app.state.request_timeout)
        except asyncio.TimeoutError:
            await orch.stop()
            logger.warning("Scrape request timed out.")
            return JSONResponse(
                status_code=408,
                content={"success": False, "error": "Request has timed out"},
            )
        except ScrapeCancelled as e:
            return {"success": False, "cancelled": True, "error": f"Scrape cancelled: {e}"}
        except OrchestratorBusy as e:
            return JSONResponse(status_code=409, content={"success": False, "error": str(e)})
        except ValueError as e:
            return JSONResponse(status_code=400, content={"success": False, "error": str(e)})
        except Exception as e:
            logger.error(f"Scrape error: {e}")
            return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

        logger.info(
            f"Scrape done in {time.monotonic() - started:.1f}s, {len(jobs)} postings."
        )
        return {"success": True, "jobs": [job.to_dict() for job in jobs], "count": len(jobs)}

    @app.post("/scrape/stop")
    async def stop():
        try:
            stopped = await asyncio.wait_for(
                app.state.orchestrator.stop(), timeout=app.state.request_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Stop request timed out.")
            return JSONResponse(
                status_code=408,
                content={"success": False, "error": "Request has timed out"},
            )
        return {
            "success": True,
            "message": "Browser closed." if stopped else "No active scrape.",
        }

    @app.post("/scrape/universal")
    async def universal(body: UniversalScrapeBody):
        try:
            return await asyncio.wait_for(
                scrape_page(body.url, app.state.session_factory),
                timeout=app.state.request_timeout,
            )
        except asyncio.TimeoutError:
            return JSONResponse(
                status_code=408,
                content={"success": False, "error": "Request has timed out"},
            )
        except Exception as e:
            logger.error(f"Universal scrape error: {e}")
            return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    return app
