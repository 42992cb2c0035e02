from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.responses import HTMLResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from newsdesk.config import settings
from newsdesk.api import health, notifications, queue
from newsdesk.dependencies import get_queue_panel
from newsdesk.web.components import queue_router

# Core imports
from newsdesk.core.logging_config import setup_logging, get_logger
from newsdesk.core.error_handlers import register_exception_handlers
from newsdesk.services.prometheus_metrics import get_metrics

__version__ = "1.0.0"

# Setup structured logging
setup_logging(log_level=settings.log_level, log_format=settings.log_format, log_file=settings.log_file)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_metrics().set_build_info(__version__)
    panel = get_queue_panel()

    if settings.poller_autostart:
        panel.start()
    logger.info("Newsdesk console started", gateway_url=settings.gateway_url)

    yield

    await panel.stop()
    logger.info("Newsdesk console stopped")


app = FastAPI(
    title="Newsdesk - Content Pipeline Console",
    description="""
    Operator console for the article-to-story generation queue.

    - **Queue**: reconciled queue rows with stuck-job detection
    - **Approval**: articles awaiting approval, reviews sorted last
    - **Remediation**: cancel, clear, return to pipeline, reset and process
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    tags_metadata=[
        {
            "name": "queue",
            "description": "Queue reconciliation, selection and actions",
        },
        {
            "name": "notifications",
            "description": "Editor notices raised by fetches and actions",
        },
        {
            "name": "htmx-queue",
            "description": "HTMX fragments for the console panels",
        },
        {
            "name": "health",
            "description": "Liveness and poller state",
        }
    ]
)

# Register global exception handlers
register_exception_handlers(app)

app.include_router(queue.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")
app.include_router(health.router, prefix="/api")
app.include_router(queue_router, prefix="/htmx")


@app.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics in text format for scraping."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/", response_class=HTMLResponse)
async def root():
    return """
    <!doctype html>
    <html>
    <head>
        <title>Newsdesk</title>
        <link rel="stylesheet" href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.3/dist/css/bootstrap.min.css">
        <link rel="stylesheet" href="https://cdn.jsdelivr.net/npm/bootstrap-icons@1.11.3/font/bootstrap-icons.min.css">
        <script src="https://unpkg.com/htmx.org@1.9.12"></script>
    </head>
    <body class="container py-4">
        <h1 class="h3 mb-4">Content Pipeline</h1>
        <div id="queue-stats-panel" hx-get="/htmx/queue/stats" hx-trigger="load, every 30s"></div>
        <div class="row mt-4">
            <div class="col-lg-7">
                <h2 class="h5">Generation Queue</h2>
                <div id="queue-panel" hx-get="/htmx/queue/items" hx-trigger="load, every 30s"></div>
            </div>
            <div class="col-lg-5">
                <h2 class="h5">Stuck Jobs</h2>
                <div id="stuck-jobs-panel" hx-get="/htmx/queue/stuck" hx-trigger="load, every 30s"></div>
                <h2 class="h5 mt-4">Recent Activity</h2>
                <div id="activity-panel" hx-get="/htmx/queue/activity" hx-trigger="load, every 30s"></div>
            </div>
        </div>
        <h2 class="h5 mt-4">Awaiting Approval</h2>
        <div id="pending-articles-panel" hx-get="/htmx/queue/pending-articles" hx-trigger="load, every 30s"></div>
    </body>
    </html>
    """


def run():
    import uvicorn
    uvicorn.run(
        "newsdesk.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_config=None
    )


if __name__ == "__main__":
    run()
