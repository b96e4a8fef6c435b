import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Mapping, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from wallboard.config import Settings, get_settings
from wallboard.logging_utils import setup_logging, RequestLoggingMiddleware, log_wall_data
from wallboard.metrics import record_wall_outcome, get_metrics, get_metrics_content_type
from wallboard.schemas import HealthResponse, WallDraft, WallRejected
from wallboard.storage import StorageUnavailable, WallNotFound, WallStore
from wallboard.utils import extract_nested, utcnow, verify_creator_name


logger = logging.getLogger(__name__)

CREATOR_MISMATCH_MESSAGE = "You can only delete a wall by entering the name of the wall's creator."

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

router = APIRouter()


def get_wall_store(request: Request) -> WallStore:
    """Dependency returning the store the app was built with."""
    return request.app.state.wall_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: create the walls table if needed
    - Shutdown: release pooled connections
    """
    app.state.wall_store.init_schema()
    yield
    app.state.wall_store.engine.dispose()


# =============================================================================
# Wall Routes
# =============================================================================

@router.get("/", response_class=HTMLResponse)
def home(request: Request, store: WallStore = Depends(get_wall_store)):
    """List every wall."""
    walls = store.list_all()
    logger.info(f"GET /: rendering {len(walls)} walls")
    return templates.TemplateResponse(request, "home.html", {"walls": walls})


@router.get("/walls/new", response_class=HTMLResponse)
def new_wall(request: Request):
    """Show the creation form with a blank, unsaved wall."""
    return templates.TemplateResponse(request, "new_wall.html", {"wall": WallDraft()})


@router.get("/walls/{wall_id}", response_class=HTMLResponse)
def show_wall(request: Request, wall_id: int, store: WallStore = Depends(get_wall_store)):
    """Show one wall."""
    wall = store.get_by_id(wall_id)
    if wall is None:
        raise WallNotFound(wall_id)
    return templates.TemplateResponse(request, "show_wall.html", {"wall": wall})


@router.post("/walls", response_class=HTMLResponse)
async def create_wall(request: Request, store: WallStore = Depends(get_wall_store)):
    """
    Create a wall from the `wall[...]` form fields.

    created_at is always stamped here; a submitted wall[created_at] is
    overwritten. On success redirect home, otherwise show the form again
    with what the user entered.
    """
    form = await request.form()
    attributes = extract_nested(form, "wall")
    attributes["created_at"] = utcnow()

    result = await run_in_threadpool(store.create, attributes)

    if isinstance(result, WallRejected):
        logger.info(f"POST /walls: rejected ({', '.join(sorted(result.errors))})")
        record_wall_outcome("rejected")
        log_wall_data(request, result="rejected")
        return templates.TemplateResponse(request, "new_wall.html", {"wall": result.draft})

    logger.info(f"POST /walls: created wall {result.wall.id}")
    record_wall_outcome("created")
    log_wall_data(request, wall_id=result.wall.id, result="created")
    return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)


@router.delete("/walls/{wall_id}", response_class=HTMLResponse)
async def delete_wall(request: Request, wall_id: int, store: WallStore = Depends(get_wall_store)):
    """Delete a wall if the submitted created_by names its creator."""
    form = await request.form()
    return await destroy_if_creator(request, wall_id, form, store)


@router.post("/walls/{wall_id}", response_class=HTMLResponse)
async def override_wall_method(request: Request, wall_id: int, store: WallStore = Depends(get_wall_store)):
    """
    Browsers can only submit GET and POST forms, so the show page posts
    here with `_method=DELETE`.
    """
    form = await request.form()
    method = form.get("_method")
    if not isinstance(method, str) or method.upper() != "DELETE":
        raise HTTPException(status_code=status.HTTP_405_METHOD_NOT_ALLOWED, detail="Method Not Allowed")
    return await destroy_if_creator(request, wall_id, form, store)


async def destroy_if_creator(request: Request, wall_id: int, form: Mapping[str, Any], store: WallStore) -> Response:
    """
    Delete the wall when the submitted created_by matches its creator;
    otherwise show the wall again with an error.
    """
    wall = await run_in_threadpool(store.get_by_id, wall_id)
    if wall is None:
        raise WallNotFound(wall_id)

    submitted: Optional[Any] = form.get("created_by")
    if submitted is None:
        submitted = request.query_params.get("created_by")
    if not isinstance(submitted, str):
        submitted = None

    if not verify_creator_name(submitted, wall.created_by):
        logger.info(f"DELETE /walls/{wall_id}: creator name mismatch")
        record_wall_outcome("creator_mismatch")
        log_wall_data(request, wall_id=wall_id, result="creator_mismatch")
        wall.errors["general"] = CREATOR_MISMATCH_MESSAGE
        return templates.TemplateResponse(request, "show_wall.html", {"wall": wall})

    if not await run_in_threadpool(store.destroy, wall_id):
        # Deleted by someone else between the lookup and now
        raise WallNotFound(wall_id)

    logger.info(f"DELETE /walls/{wall_id}: deleted")
    record_wall_outcome("deleted")
    log_wall_data(request, wall_id=wall_id, result="deleted")
    return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)


# =============================================================================
# Health Check Routes
# =============================================================================

@router.get("/health/live", response_model=HealthResponse)
def health_live() -> HealthResponse:
    """Liveness probe - always returns 200 once the app is running."""
    return HealthResponse(status="ok")


@router.get("/health/ready", response_model=HealthResponse)
def health_ready(response: Response, store: WallStore = Depends(get_wall_store)) -> HealthResponse:
    """
    Readiness probe - returns 200 only if the DB is reachable and the
    walls table exists, otherwise 503.
    """
    if not store.check_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Database not reachable or schema not applied"
        )
    return HealthResponse(status="ready")


# =============================================================================
# Metrics Route
# =============================================================================

@router.get("/metrics")
def metrics() -> Response:
    """Expose Prometheus-style metrics."""
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )


# =============================================================================
# Error Handlers
# =============================================================================

async def wall_not_found_handler(request: Request, exc: WallNotFound) -> Response:
    logger.warning(f"{request.method} {request.url.path}: wall {exc.wall_id} not found")
    record_wall_outcome("not_found")
    log_wall_data(request, wall_id=exc.wall_id, result="not_found")
    return templates.TemplateResponse(
        request,
        "not_found.html",
        {"wall_id": exc.wall_id},
        status_code=status.HTTP_404_NOT_FOUND,
    )


async def storage_unavailable_handler(request: Request, exc: StorageUnavailable) -> Response:
    logger.error(f"{request.method} {request.url.path}: storage unavailable: {exc}")
    return templates.TemplateResponse(
        request,
        "error.html",
        {"message": "The walls are unavailable right now. Please try again later."},
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Optional[Settings] = None, store: Optional[WallStore] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use; defaults to the environment
        store: Wall store to use; defaults to one built from settings
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL, sql_debug=settings.sql_debug)

    app = FastAPI(
        title="Wallboard",
        description="Create, browse and delete walls",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.wall_store = store or WallStore.from_url(settings.database_url)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(WallNotFound, wall_not_found_handler)
    app.add_exception_handler(StorageUnavailable, storage_unavailable_handler)
    app.include_router(router)

    logger.info(f"Application created (env={settings.APP_ENV})")
    return app


app = create_app()


def run() -> None:
    """Serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)
