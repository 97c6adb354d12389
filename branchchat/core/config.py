from pathlib import Path

from pydantic_settings import BaseSettings

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    app_name: str = "Branch Chat"
    debug: bool = False

    # Storage
    database_url: str = f"sqlite:///{_PROJECT_ROOT / 'branchchat.db'}"
    store_timeout: float = 10.0  # seconds, per store call

    # LLM
    llm_provider: str = "gemini"  # gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"

    # Completion: "relay" posts to the relay endpoint, "direct" calls the provider in-process
    completion_mode: str = "relay"
    relay_url: str = "http://127.0.0.1:8000/api/chatgpt"
    completion_timeout: float = 60.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    model_config = {
        "env_file": str(_PROJECT_ROOT / ".env"),
        "env_prefix": "BRANCHCHAT_",
    }


settings = Settings()
