"""
API v1 router initialization and setup.
"""
from fastapi import APIRouter
from .endpoints import dashboard

api_router = APIRouter()

api_router.include_router(
    dashboard.router,
    tags=["dashboard"]
)
