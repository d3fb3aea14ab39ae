from fastapi import APIRouter
from app.api import health
from app.features.todos import router as todos_router

api_router = APIRouter()

# Include all sub-routers
api_router.include_router(health.router)
api_router.include_router(todos_router)
