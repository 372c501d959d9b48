# Relay_app/main.py
from typing import Optional
from fastapi import FastAPI
from Relay_app.config import Settings, settings as default_settings
from Relay_app.api.rest import rest_router
from Relay_app.api.websocket import ws_router
from Relay_app.core.hub import RelayHub
from Relay_app.core.sweeper import Sweeper
from logging.config import dictConfig

dictConfig({
    "version": 1,
    "disable_existing_loggers": False,     # 기존 uvicorn 로거 유지
    "formatters": {
        "plain": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "": {"handlers": ["console"], "level": default_settings.log_level.upper()},
        "uvicorn": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "uvicorn.access": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
})

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    app = FastAPI(title="Screen Relay")

    # 앱마다 허브 하나: 레지스트리 상태는 모듈 전역이 아니라 여기서 소유
    hub = RelayHub(mode=settings.relay_mode)
    sweeper = Sweeper(hub, interval_sec=settings.sweep_interval_sec)
    app.state.hub = hub
    app.state.sweeper = sweeper

    app.include_router(rest_router)   # ← REST (/healthz, /stats)
    app.include_router(ws_router)     # ← WS (/stream, /view)

    @app.on_event("startup")
    async def startup():
        sweeper.start()

    @app.on_event("shutdown")
    async def shutdown():
        await sweeper.stop()

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("Relay_app.main:app",
                host=default_settings.http_host,
                port=default_settings.port)
