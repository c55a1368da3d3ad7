import os
import sys
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv
from loguru import logger


@dataclass
class Settings:
    supabase_url: str = ""
    supabase_key: str = ""
    tasks_table: str = "tasks"
    projects_table: str = "projects"
    api_prefix: str = ""
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Read settings from the environment, after loading any .env file."""
    load_dotenv()
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_key=os.getenv("SUPABASE_KEY", ""),
        tasks_table=os.getenv("TASKS_TABLE", "tasks"),
        projects_table=os.getenv("PROJECTS_TABLE", "projects"),
        api_prefix=os.getenv("API_PREFIX", "").rstrip("/"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )


def configure_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{module}</cyan>:<cyan>{line}</cyan> - {message}"
        ),
    )
