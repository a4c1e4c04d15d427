from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from server.utils.env import ensure_env_loaded, load_agent_settings
from server.routes.training import router as training_router
from server.routes.observability import router as observability_router
from contextlib import asynccontextmanager
import os
import logging

logger = logging.getLogger("server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_env_loaded()
    if not load_agent_settings().configured:
        logger.warning("LUMINATION_API_BASE_URL / LUMINATION_API_KEY not set; training routes will return 500")
    yield


app = FastAPI(
    title="Training Quiz Service",
    description="Generates multiple-choice quizzes and coach replies through the Lumination agent API. See `/docs` for OpenAPI UI.",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
allowed_origins = os.getenv("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in allowed_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def invalid_body_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected body on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid JSON body."})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


app.include_router(training_router)
app.include_router(observability_router)


@app.get("/health")
def health_check():
    return {"status": "ok", "agent_configured": load_agent_settings().configured}
