"""
Pydantic schemas for deployment operations.
"""
from datetime import datetime
from typing import List, Optional

from app.schemas.workload import CamelModel
from app.services.deployment.runtime_base import ContainerStatus


class MessageResponse(CamelModel):
    """Plain acknowledgement returned by mutating endpoints."""
    message: str


class DeploymentResponse(CamelModel):
    """Result of a deploy request."""
    success: bool
    message: str
    access_url: Optional[str] = None
    container_id: Optional[str] = None
    deployed_at: Optional[datetime] = None

    @classmethod
    def from_workload(cls, workload) -> "DeploymentResponse":
        """Build a success response from a Running workload."""
        return cls(
            success=True,
            message="Workload deployed successfully",
            access_url=workload.access_url,
            container_id=workload.container_id,
            deployed_at=workload.deployed_at,
        )


class ContainerStatusResponse(CamelModel):
    """Container status as reported by the engine."""
    id: str
    name: str = ""
    state: str = ""
    status: str = ""
    created: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    exit_code: Optional[int] = None
    error: Optional[str] = None
    ports: List[str] = []

    @classmethod
    def from_status(cls, status: ContainerStatus) -> "ContainerStatusResponse":
        return cls(
            id=status.id,
            name=status.name,
            state=status.state,
            status=status.status,
            created=status.created,
            started_at=status.started_at,
            finished_at=status.finished_at,
            exit_code=status.exit_code,
            error=status.error,
            ports=list(status.ports),
        )
