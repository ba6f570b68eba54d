from fastapi import APIRouter

from eyeris.api.v1.endpoints import analyze, health

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(analyze.router, prefix="/analyze", tags=["analysis"])
