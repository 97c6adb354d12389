from sqlmodel import SQLModel, create_engine

from branchchat.core.config import settings
from branchchat.services.store import ConversationStore


def _connect_args(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    # Lock waits give up with OperationalError instead of hanging the session
    return {"check_same_thread": False, "timeout": settings.store_timeout}


engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    connect_args=_connect_args(settings.database_url),
)


def init_db() -> None:
    import branchchat.models.conversation  # noqa: F401 - ensure models are registered
    SQLModel.metadata.create_all(engine)


def get_store() -> ConversationStore:
    """Store bound to the application engine. Used as a FastAPI dependency."""
    return ConversationStore(engine, write_timeout=settings.store_timeout)
