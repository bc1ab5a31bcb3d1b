"""HTTP service exposing runs and their latest result.

Endpoints:
    POST /api/scrape          start a run (409 if one is in flight)
    GET  /api/results         latest run result (404 before the first run)
    GET  /api/status          whether a run is in flight and a result exists
    GET  /api/export/{fmt}    latest result as a CSV or JSON download
    GET  /health              liveness probe
"""

from enum import Enum

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from config.settings import GlobalConfig, get_config
from src.coordinator import RunCoordinator, RunResult
from src.exceptions import RunConflictError
from src.logger import get_logger
from src.reporter import ReportGenerator

log = get_logger(__name__)

NO_RESULTS_MESSAGE = "No results available. Run scraping first."

router = APIRouter()


class ExportFormat(str, Enum):
    csv = "csv"
    json = "json"


def _coordinator(request: Request) -> RunCoordinator:
    return request.app.state.coordinator


def _payload(result: RunResult) -> dict:
    return {"success": True, "data": result.model_dump(mode="json", by_alias=True)}


@router.post("/scrape")
async def start_scrape(
    request: Request,
    target: int | None = Query(default=None, ge=1, le=1000),
):
    coordinator = _coordinator(request)
    try:
        result = await coordinator.run(target)
    except RunConflictError as exc:
        return JSONResponse(status_code=409, content={"error": exc.message})
    except Exception as exc:
        log.exception("Scrape request failed")
        message = getattr(exc, "message", None) or str(exc)
        return JSONResponse(status_code=500, content={"success": False, "error": message})
    return _payload(result)


@router.get("/results")
async def latest_results(request: Request):
    result = _coordinator(request).latest()
    if result is None:
        return JSONResponse(status_code=404, content={"error": NO_RESULTS_MESSAGE})
    return _payload(result)


@router.get("/status")
async def status(request: Request) -> dict:
    coordinator = _coordinator(request)
    return {
        "scrapingInProgress": coordinator.is_running,
        "hasResults": coordinator.latest() is not None,
    }


@router.get("/export/{fmt}")
async def export(request: Request, fmt: ExportFormat):
    result = _coordinator(request).latest()
    if result is None:
        return JSONResponse(status_code=404, content={"error": NO_RESULTS_MESSAGE})

    reporter = ReportGenerator(request.app.state.config)
    stamp = result.scraped_at.strftime("%Y-%m-%d")
    if fmt is ExportFormat.csv:
        body, media_type = reporter.render_csv(result), "text/csv"
    else:
        body, media_type = reporter.render_json(result), "application/json"

    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="hn-articles-{stamp}.{fmt.value}"'},
    )


def create_app(
    config: GlobalConfig | None = None,
    coordinator: RunCoordinator | None = None,
) -> FastAPI:
    """Build the FastAPI application around one RunCoordinator."""
    config = config or get_config()

    app = FastAPI(title=config.app_name)
    app.state.config = config
    app.state.coordinator = coordinator or RunCoordinator(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.include_router(router, prefix="/api", tags=["scrape"])

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
