"""
API v1 router: workload records and their deployments.
"""
from fastapi import APIRouter

from app.api.v1.endpoints import deployments, workloads

api_router = APIRouter()

api_router.include_router(workloads.router, prefix="/workloads", tags=["workloads"])
api_router.include_router(deployments.router, prefix="/deployment", tags=["deployment"])
