"""Learning Profile Engine - API v1 Router."""
from fastapi import APIRouter

from profile_engine.api.v1.profiles import router as profiles_router

api_router = APIRouter()

api_router.include_router(profiles_router)
