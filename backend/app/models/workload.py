"""
Workload model: a user-declared resource request, optionally backed by a container.
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID

from app.core.database import Base


class WorkloadType(str, Enum):
    """Kind of resource a workload declares."""
    VIRTUAL_MACHINE = "VirtualMachine"
    DATABASE = "Database"
    WEB_SERVICE = "WebService"
    CONTAINER = "Container"
    BATCH_JOB = "BatchJob"


class DeploymentStatus(str, Enum):
    """Position of a workload in the deploy/stop/remove lifecycle."""
    NOT_DEPLOYED = "NotDeployed"
    DEPLOYING = "Deploying"
    RUNNING = "Running"
    STOPPED = "Stopped"
    ERROR = "Error"


# Statuses listed by the "my deployments" view
DEPLOYED_STATUSES = (
    DeploymentStatus.RUNNING.value,
    DeploymentStatus.DEPLOYING.value,
    DeploymentStatus.STOPPED.value,
    DeploymentStatus.ERROR.value,
)


class Workload(Base):
    """Workload record."""

    __tablename__ = "workloads"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("api_keys.id", ondelete="CASCADE"), nullable=False, index=True)

    # Static declaration
    name = Column(String(200), nullable=False, index=True)
    description = Column(String(1000), nullable=True)
    type = Column(String(50), nullable=False)
    required_cpu = Column(Integer, nullable=False)
    required_memory = Column(Float, nullable=False)  # GB
    required_storage = Column(Float, nullable=False)  # GB

    # Deployment fields
    container_image = Column(String(500), nullable=True)
    exposed_port = Column(Integer, nullable=False, default=80, server_default="80")
    # Serialized JSON object of string -> string
    environment_variables = Column(Text, nullable=True)
    deployment_status = Column(
        String(50),
        nullable=False,
        default=DeploymentStatus.NOT_DEPLOYED.value,
        server_default=DeploymentStatus.NOT_DEPLOYED.value,
        index=True,
    )
    container_id = Column(String(100), nullable=True)
    access_url = Column(String(500), nullable=True)
    deployed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False, index=True)

    @property
    def is_deployable(self) -> bool:
        """A workload can only be deployed when it names an image."""
        return bool(self.container_image)

    @property
    def has_container(self) -> bool:
        return bool(self.container_id)

    def clear_deployment(self) -> None:
        """Forget the container and return to NotDeployed."""
        self.container_id = None
        self.access_url = None
        self.deployed_at = None
        self.deployment_status = DeploymentStatus.NOT_DEPLOYED.value
