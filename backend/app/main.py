from __future__ import annotations
import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# ============================================================
# 🪵 Logging Setup
# ============================================================
logging.basicConfig(
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    level=logging.INFO,
)
logger = logging.getLogger("app.main")

# ============================================================
# 📦 Core Imports (DB + Dependency Injection)
# ============================================================
from app.db.session import DatabasePool, ping_db
from app.db.config import settings
from app.container import build_container, get_container, set_container

# ============================================================
# 🌐 Routers
# ============================================================
from app.router.health import router as health_router
from app.router.ingest_router import router as ingest_router
from app.router.ledger_router import router as ledger_router
from app.router.indices_router import router as indices_router
from app.router.owners_router import router as owners_router
from app.router.crawler_router import router as crawler_router
from app.router.search_router import router as search_router

startup_time = time.time()


# ============================================================
# 🚀 Startup / Shutdown Lifecycle
# ============================================================
@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info("🚀 Initializing folder ingestion API...")
    logger.info(f"⚙️ Store backend: {settings.store_backend} | DB: {settings.masked_database_url()}")

    # --- Database connection ---
    if settings.store_backend == "postgres":
        try:
            DatabasePool.init()
            ok, msg = ping_db()
            if ok:
                logger.info(f"✅ Database OK: {msg}")
            else:
                logger.warning(f"⚠️ DB ping failed: {msg}")
        except Exception as e:
            logger.warning(f"⚠️ Database init skipped or failed: {e}")

    # --- Build container ---
    try:
        set_container(build_container(settings))
        logger.info("🎯 API is ready and accepting requests")
    except Exception as e:
        logger.error(f"❌ Container init failed: {e}", exc_info=True)
        raise

    try:
        yield
    finally:
        set_container(None)
        try:
            DatabasePool.close()
            logger.info("🧹 Application shutdown complete")
        except Exception as e:
            logger.warning(f"⚠️ Cleanup warning: {e}")


# ============================================================
# 🌍 FastAPI App Definition
# ============================================================
app = FastAPI(
    title="Folder Ingestion API",
    description="Upload folders, index their files once, and search them",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(ingest_router)
app.include_router(ledger_router)
app.include_router(indices_router)
app.include_router(owners_router)
app.include_router(crawler_router)
app.include_router(search_router)


# ============================================================
# 🏠 Root Endpoint
# ============================================================
@app.get("/")
def root():
    try:
        selected = get_container().scopes.resolve()
    except Exception:
        selected = None
    return {
        "app": "Folder Ingestion API",
        "version": "1.0.0",
        "store_backend": settings.store_backend,
        "selected_index": selected,
        "uptime_seconds": round(time.time() - startup_time, 1),
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "readiness": "/health/ready",
            "upload": "/upload",
            "ingest": "/ingest",
            "checksums": "/api/checksums",
            "devices": "/api/devices",
            "indices": "/api/indices",
            "selected_index": "/api/selected-index",
            "crawler_scan": "/api/crawler/scan",
            "crawler_crawl": "/api/crawler/crawl",
            "search": "/api/search",
            "convert": "/api/convert-file",
        },
        "examples": {
            "ingest": {
                "method": "POST",
                "path": "/ingest",
                "body": {"files": ["devA/docs/readme.txt", "devA/index.html"], "scope": "directory-index"},
            },
            "search": {
                "method": "POST",
                "path": "/api/search",
                "body": {"query": "quarterly report", "phrase": False},
            },
        },
    }


# ============================================================
# 🏁 Entrypoint
# ============================================================
if __name__ == "__main__":
    import uvicorn

    logger.info("Starting folder ingestion API on port 8080...")
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8080,
        reload=False,
        log_config=None,
    )
