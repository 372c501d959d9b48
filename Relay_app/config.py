# Relay_app/config.py
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    # ───────────────────────────
    # ▶ 리스닝 소켓
    # ───────────────────────────
    http_host: str = "0.0.0.0"
    port:      int = 3000               # 환경변수 PORT

    # ───────────────────────────
    # ▶ 릴레이
    # ───────────────────────────
    relay_mode: Literal["multi", "single"] = "multi"
    sweep_interval_sec: float = 30.0    # 죽은 연결 정리 주기(초)

    # ───────────────────────────
    # ▶ 로깅
    # ───────────────────────────
    log_level: str = "info"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,           # PORT / port 둘 다 허용
        extra="ignore",
    )

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
