from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
import logging
import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables FIRST before anything else
from dotenv import load_dotenv
# Look for .env.local in project root (parent of python/)
project_root = Path(__file__).resolve().parent.parent.parent
env_local = project_root / ".env.local"
env_file = project_root / ".env"
if env_local.exists():
    load_dotenv(env_local)
elif env_file.exists():
    load_dotenv(env_file)

# Setup logging AFTER env vars loaded
from app.logging_config import api_log, setup_logging
setup_logging()

from app.config import get_settings
from app.chat_routes import router as chat_router
from app.market_routes import router as market_router
from core.chat import AudioTranscriber, create_chat_proxies
from core.market import MarketStatusPoller, PolygonClient

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the shared upstream clients and the market status poller."""
    client = PolygonClient(settings.polygon_api_key, base_url=settings.polygon_base_url)
    poller = MarketStatusPoller(client.get_market_status)
    app.state.polygon_client = client
    app.state.poller = poller

    # SDK clients are built lazily on first use and reused across requests
    app.state.chat_proxies = create_chat_proxies(settings)
    app.state.transcriber = AudioTranscriber(settings.openai_api_key)

    if settings.market_status_poll_enabled and settings.polygon_api_key:
        poller.start()
    else:
        logger.warning("[POLL] Market status polling disabled (no Polygon key or turned off)")

    try:
        yield
    finally:
        poller.stop()
        await client.close()
        for proxy in app.state.chat_proxies.values():
            await proxy.aclose()
        await app.state.transcriber.aclose()


app = FastAPI(
    title=settings.app_name,
    description="Sonar Trading Lab - market charts and trading assistant chat",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests with timing."""
    start_time = time.time()

    # Skip logging for health checks and static files
    path = request.url.path
    skip_paths = ["/health", "/docs", "/openapi.json", "/favicon.ico"]

    if any(path.startswith(p) for p in skip_paths):
        return await call_next(request)

    api_log(f"{request.method} {path}")

    response = await call_next(request)

    # Streaming responses report status before the body is sent
    duration_ms = (time.time() - start_time) * 1000
    status = response.status_code

    if status >= 400:
        api_log(f"{request.method} {path} -> {status} ({duration_ms:.0f}ms)", logging.WARNING)
    else:
        api_log(f"{request.method} {path} -> {status} ({duration_ms:.0f}ms)")

    return response


# Include routes
app.include_router(chat_router)
app.include_router(market_router)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "status": "running",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "sonar-trading-lab-api"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
