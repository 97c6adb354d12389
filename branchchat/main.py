import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from branchchat.core.config import settings
from branchchat.core.database import init_db
from branchchat.api import chat, messages, relay

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s" if settings.debug
        else "%(levelname)-8s %(name)s: %(message)s",
    )

    init_db()
    logger.info(f"Completions via {settings.completion_mode} ({settings.llm_provider}/{settings.gemini_model})")
    if not settings.gemini_api_key:
        # The relay and the direct client both end up at the provider
        logger.warning("BRANCHCHAT_GEMINI_API_KEY is not set; replies will fail until it is")
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(relay.router, prefix="/api", tags=["relay"])
app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
app.include_router(messages.router, prefix="/api/messages", tags=["messages"])


@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "app": settings.app_name,
        "completion_mode": settings.completion_mode,
        "llm_provider": settings.llm_provider,
    }


def run() -> None:
    import uvicorn

    uvicorn.run("branchchat.main:app", host=settings.host, port=settings.port, reload=settings.debug)
