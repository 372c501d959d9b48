# Relay_app/api/rest.py
from fastapi import APIRouter, Request

rest_router = APIRouter()

@rest_router.get("/healthz")
async def healthz():
    return {"status": "ok"}

@rest_router.get("/stats")
async def stats(request: Request):
    return request.app.state.hub.stats()
