import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

load_dotenv(Path(__file__).resolve().parents[1] / ".env")

import app.config.config as configs
from app.api.v1.route import api_router as MainRouter, limiter
from app.service.chat.exceptions import NotFoundError, PersistenceError, ValidationError
from app.service.services import ChatServices, get_services

logging.basicConfig(
    level=configs.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="krishi_sakhi_chat", version="0.1.0")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.include_router(router=MainRouter, prefix="/api/v1")


@app.exception_handler(ValidationError)
async def validation_error_handler(_: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(_: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(_: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("storage failure: %s", exc)
    return JSONResponse(status_code=503, content={"detail": "Chat storage is unavailable, please retry"})


@app.on_event("startup")
def init_services() -> None:
    # Resolve storage and optional subsystems once, before the first request.
    get_services()


@app.get("/health")
def health(services: ChatServices = Depends(get_services)):
    return {"status": "ok", "durable": services.store.durable}
