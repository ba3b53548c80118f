"""
Repository layer for database access.
"""
from app.repositories.base import BaseRepository
from app.repositories.workload_repository import WorkloadRepository

__all__ = [
    "BaseRepository",
    "WorkloadRepository",
]
