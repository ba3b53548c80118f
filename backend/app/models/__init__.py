"""
ORM models. Importing this package registers every table with Base.metadata.
"""
from app.models.api_key import ApiKey
from app.models.workload import DEPLOYED_STATUSES, DeploymentStatus, Workload, WorkloadType

__all__ = [
    "ApiKey",
    "DEPLOYED_STATUSES",
    "DeploymentStatus",
    "Workload",
    "WorkloadType",
]
