import time
import logging
from contextlib import asynccontextmanager
from dotenv import load_dotenv
load_dotenv()  # ★ 라우터/모듈 임포트 전에!

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from evalai.api.v1.assistant import router as assistant_router
from evalai.api.v1.evaluate import router as eval_router
from evalai.client.bootstrap import build_model_client
from evalai.core.config import settings
from evalai.core.dependencies import get_performance_monitor
from evalai.services.persistence import build_store

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Owns the process-wide model client and submission store."""
    startup_time = time.time()
    logger.info("Starting eval-ai API...")

    app.state.store = build_store()
    logger.info(f"Submission store initialized: {type(app.state.store).__name__}")

    try:
        app.state.model_client = build_model_client()
        logger.info(f"Model client initialized (deployment={settings.AZURE_OPENAI_DEPLOYMENT or 'unset'})")
    except Exception as e:
        # Requests retry initialization and answer 503 until it succeeds
        app.state.model_client = None
        logger.warning(f"Model client initialization failed: {e}")

    startup_duration = (time.time() - startup_time) * 1000
    logger.info(f"Application startup completed in {startup_duration:.1f}ms")

    yield

    logger.info(f"Shutting down. Final performance stats: {get_performance_monitor().get_stats()}")


def create_app() -> FastAPI:
    app = FastAPI(
        title="eval-ai Homework Evaluation API",
        version=settings.APP_VERSION,
        description="AI-assisted grading of uploaded homework (image, PDF, DOCX) against a rubric",
        lifespan=lifespan
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None) or f"global_{int(time.time() * 1000)}"
        client_ip = request.client.host if request.client else "unknown"

        logger.error(f"[{request_id}] Unhandled exception from {client_ip}: {exc}", exc_info=True)
        logger.error(f"[{request_id}] Request: {request.method} {request.url}")

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "type": "InternalError",
                "request_id": request_id,
            }
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Submission-ID", "X-Submission-Persisted"],
    )

    # Routers
    app.include_router(eval_router, prefix="/v1", tags=["evaluation"])
    app.include_router(assistant_router, prefix="/v1", tags=["assistant"])

    @app.get("/health")
    async def health():
        return {
            "status": "OK",
            "timestamp": time.time(),
            "version": settings.APP_VERSION,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
