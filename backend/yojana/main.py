"""
Yojana RAG — FastAPI Application Entry Point
Retrieval and training core for the government scheme assistant.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from yojana.config import get_settings
from yojana.services.container import ServiceContainer
from yojana.utils.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    settings = get_settings()
    logger.info(f"🚀 Yojana RAG starting in {settings.app_env} mode...")
    logger.info(f"🧠 Embedding provider: {settings.embedding_provider} ({settings.embedding_dimension}d)")
    logger.info(f"🗂️ Vector backend: {settings.vector_backend} {'✅' if settings.has_supabase_config else '❌ (not configured)'}")
    logger.info(f"📁 Local dataset override: {'ON' if settings.use_local_data else 'OFF'}")
    logger.info(f"⏰ Scheduler: {'ON' if settings.scheduler_enabled else 'OFF'}")

    container = ServiceContainer(settings)
    await container.start()
    app.state.container = container

    yield

    await container.shutdown()
    logger.info("👋 Yojana RAG shutting down...")


app = FastAPI(
    title="Yojana RAG",
    description="Government scheme retrieval and training service.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Global Error Handler ---
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "Something went wrong. Please try again later.",
            "path": str(request.url.path),
        },
    )


# --- Health Check ---
@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "service": "Yojana RAG", "version": "1.0.0"}


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    settings = get_settings()
    container: ServiceContainer = request.app.state.container
    return {
        "status": "healthy",
        "environment": settings.app_env,
        "services": {
            "embedding_provider": container.provider.name,
            "vector_backend": container.index.backend_name,
            "vector_fallback": container.index.is_fallback,
            "scheduler": container.scheduler.scheduler.running,
        },
    }


# --- Register Routers ---
from yojana.api import training

app.include_router(training.router, prefix="/api/v1/training", tags=["Training"])


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "yojana.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
    )
