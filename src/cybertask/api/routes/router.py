from fastapi import APIRouter

from src.cybertask.api.routes import auth, dashboard, notifications, projects, tasks, users, websocket

api_router = APIRouter(prefix="/api")
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(projects.router)
api_router.include_router(tasks.router)
api_router.include_router(notifications.router)
api_router.include_router(dashboard.router)
api_router.include_router(websocket.router)
