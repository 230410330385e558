from fastapi import APIRouter

from src.zerobase.api.v1 import auth, database, logs, projects, realtime, storage

api_router = APIRouter(prefix="/api")
api_router.include_router(projects.router)
api_router.include_router(database.router)
api_router.include_router(auth.router)
api_router.include_router(storage.router)
api_router.include_router(logs.router)
api_router.include_router(realtime.router)

# The websocket lives at /ws, outside the /api prefix
ws_router = realtime.ws_router
