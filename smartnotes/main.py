from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
import time
import structlog

from smartnotes.db import init_db
from smartnotes.routers import generate as generate_router
from smartnotes.routers import materials as materials_router
from smartnotes.routers import mindmap as mindmap_router
from smartnotes.routers import quiz as quiz_router
from smartnotes.routers import smart_notes as smart_notes_router
from smartnotes.services.llm import ModelInvoker
from smartnotes.services.logging import bind_request_context, configure_logging, log_api_request
from smartnotes.services.monitoring import health_checker, get_metrics, REQUEST_COUNT, REQUEST_DURATION
from smartnotes.middleware.rate_limit import limiter, rate_limit_exceeded_handler

configure_logging()
logger = structlog.get_logger()

app = FastAPI(
    title="OpenSchool Smart Notes",
    description="Smart notes, MCQs and mind maps generated from study material",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# One invoker per process; it owns the provider client cache
app.state.invoker = ModelInvoker()


def _endpoint_label(request: Request) -> str:
    # route template, so /quiz/1 and /quiz/2 share one series
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


@app.middleware("http")
async def log_and_measure(request: Request, call_next):
    request_id = bind_request_context(request)
    start_time = time.perf_counter()
    log_api_request(request)

    try:
        response = await call_next(request)
    except Exception as e:
        log_api_request(request, error=e)
        raise

    process_time = time.perf_counter() - start_time
    response.headers["X-Process-Time"] = f"{process_time:.4f}"
    response.headers["X-Request-ID"] = request_id

    endpoint = _endpoint_label(request)
    REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=response.status_code).inc()
    REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(process_time)

    log_api_request(request, response, duration=process_time)
    return response


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return health_checker.get_health_status(app.state.invoker.registry)


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return get_metrics()


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("startup_complete", models=len(app.state.invoker.registry.all()))


app.include_router(materials_router.router)
app.include_router(generate_router.router)
app.include_router(smart_notes_router.router)
app.include_router(quiz_router.router)
app.include_router(mindmap_router.router)
