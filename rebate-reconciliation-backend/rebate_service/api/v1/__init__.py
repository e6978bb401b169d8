"""
API v1 router initialization and setup.
"""
from fastapi import APIRouter
from .endpoints import batch, evidence, rebates

api_router = APIRouter()

api_router.include_router(
    rebates.router,
    prefix="/rebates",
    tags=["rebates"]
)

api_router.include_router(
    batch.router,
    prefix="/rebates/batch",
    tags=["batch"]
)

api_router.include_router(
    evidence.router,
    prefix="/rebates/tasks",
    tags=["evidence"]
)
