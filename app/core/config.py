import os
from dataclasses import dataclass

from dotenv import load_dotenv, find_dotenv

# 환경 변수 로드
dotenv_path = find_dotenv()
if dotenv_path:
    load_dotenv(dotenv_path=dotenv_path, override=False)


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./app.db"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.3
    position_debounce_ms: int = 500
    log_level: str = "INFO"
    export_title_prefix: str = "Risk Map"

    @property
    def llm_configured(self) -> bool:
        return bool(self.openai_api_key)


def get_settings() -> Settings:
    """Build settings from the environment (.env is loaded on import)."""
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./app.db"),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        openai_temperature=_get_float("OPENAI_TEMPERATURE", 0.3),
        position_debounce_ms=_get_int("POSITION_DEBOUNCE_MS", 500),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        export_title_prefix=os.getenv("EXPORT_TITLE_PREFIX", "Risk Map"),
    )
