import os
from dataclasses import dataclass, field
from typing import List

try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    # .env is optional
    pass


TABLE_NAME = "dataset"


def _default_cors_origins() -> List[str]:
    value = os.getenv("CORS_ORIGINS")
    return value.split(",") if value else ["*"]


@dataclass
class Settings:
    """Runtime configuration loaded from environment variables."""

    ollama_url: str = os.getenv("OLLAMA_URL", "http://localhost:11434").rstrip("/")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "phi3")
    ollama_timeout_seconds: float = float(os.getenv("OLLAMA_TIMEOUT_SECONDS", "60"))
    sql_temperature: float = float(os.getenv("SQL_TEMPERATURE", "0.0"))
    cors_origins: List[str] = field(default_factory=_default_cors_origins)
    max_file_size_mb: int = int(os.getenv("MAX_FILE_SIZE_MB", "25"))
    max_rows: int = int(os.getenv("MAX_ROWS", "100000"))
    preview_rows: int = int(os.getenv("PREVIEW_ROWS", "20"))
    max_result_rows: int = int(os.getenv("MAX_RESULT_ROWS", "1000"))
    history_turns: int = int(os.getenv("HISTORY_TURNS", "3"))
    enable_sql_output: bool = bool(int(os.getenv("ENABLE_SQL_OUTPUT", "1")))
    session_ttl_minutes: int = int(os.getenv("SESSION_TTL_MINUTES", "60"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
