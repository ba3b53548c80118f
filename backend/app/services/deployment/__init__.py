"""
Deployment lifecycle services.

This package maps persisted workload records to live containers on the local
Docker engine: port allocation, environment resolution, the runtime adapter
and the lifecycle state machine.
"""
from app.services.deployment.runtime_base import (
    CommandResult,
    ContainerRuntime,
    ContainerStatus,
    SoftFailure,
)
from app.services.deployment.docker_runtime import DockerRuntime, docker_runtime
from app.services.deployment.deployment_service import DeploymentService
from app.services.deployment.env_resolver import resolve_environment
from app.services.deployment.port_allocator import PortAllocator, port_allocator

__all__ = [
    "CommandResult",
    "ContainerRuntime",
    "ContainerStatus",
    "SoftFailure",
    "DockerRuntime",
    "docker_runtime",
    "DeploymentService",
    "resolve_environment",
    "PortAllocator",
    "port_allocator",
]
