from typing import List, Optional
import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    """Runtime settings loaded from environment variables."""

    def __init__(self):
        # Privileged host engine (command RPC endpoint); unset means no host
        self.HOST_ENGINE_URL: Optional[str] = os.getenv("HOST_ENGINE_URL") or None

        # Remote python execution API, second python tier
        self.PYTHON_API_URL: Optional[str] = os.getenv("PYTHON_API_URL") or None

        # PostgreSQL DSN for the sql tier
        self.DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL") or None

        # In-process interpreter
        self.PYTHON_INPROCESS_ENABLED = _env_flag("PYTHON_INPROCESS_ENABLED", "true")
        self.PYTHON_PRELOAD_MODULES = os.getenv("PYTHON_PRELOAD_MODULES", "")

        # Node.js for javascript/typescript cells
        self.NODE_BINARY = os.getenv("NODE_BINARY", "node")

        # Execution limits
        self.DEFAULT_TIMEOUT_MS = int(os.getenv("DEFAULT_TIMEOUT_MS", "30000"))
        self.MAX_TABLE_ROWS = int(os.getenv("MAX_TABLE_ROWS", "100"))

        # CORS
        self.ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173")

        # Application
        self.APP_TITLE = os.getenv("APP_TITLE", "Notebook Runtime")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.DEBUG = _env_flag("DEBUG", "false")

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def preload_modules_list(self) -> List[str]:
        return [name.strip() for name in self.PYTHON_PRELOAD_MODULES.split(",") if name.strip()]


settings = Settings()
