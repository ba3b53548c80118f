"""
Abstract base class for container runtime adapters.

The deployment service talks to the container engine only through this
interface, so the CLI-backed adapter can be swapped for a native engine
API client without touching the lifecycle logic.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

# State reported for a container the engine does not know
NOT_FOUND_STATE = "NotFound"


@dataclass
class CommandResult:
    """Captured outcome of one engine invocation."""

    return_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.return_code == 0


@dataclass
class ContainerStatus:
    """Status record of a container as reported by the engine."""

    id: str
    name: str = ""
    state: str = ""
    status: str = ""
    created: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    exit_code: Optional[int] = None
    error: Optional[str] = None
    ports: List[str] = field(default_factory=list)

    @property
    def not_found(self) -> bool:
        return self.state == NOT_FOUND_STATE


@dataclass
class SoftFailure:
    """
    A best-effort cleanup step that was attempted and failed.

    Returned instead of raised: callers log it and carry on, and tests can
    tell "attempted but failed" apart from "succeeded" (None).
    """

    operation: str
    target: str
    reason: str


class ContainerRuntime(ABC):
    """
    Abstract base class for container runtime adapters.

    Container names are derived from (owner id, workload id) so that the
    same workload always maps to the same name and an owner's containers
    share a common name prefix.
    """

    container_prefix: str = "workload"

    def owner_prefix(self, owner_id: UUID) -> str:
        """Name prefix shared by every container of one owner."""
        return f"{self.container_prefix}-{owner_id.hex[:8]}-"

    def container_name(self, owner_id: UUID, workload_id: UUID) -> str:
        """Deterministic container name for a workload."""
        return f"{self.owner_prefix(owner_id)}{workload_id.hex}"

    @abstractmethod
    async def run(
        self,
        name: str,
        host_port: int,
        container_port: int,
        image: Optional[str],
        env_assignments: List[str],
        memory_limit_gb: Optional[float] = None,
        cpu_limit: Optional[float] = None,
    ) -> str:
        """
        Start a detached container.

        Returns:
            Runtime-assigned container id

        Raises:
            RuntimeFailure: If the engine exits non-zero
        """
        pass

    @abstractmethod
    async def inspect(self, runtime_id: str) -> ContainerStatus:
        """
        Get the status of a container.

        Returns a record with state "NotFound" when the engine does not know
        the container.

        Raises:
            RuntimeFailure: For any other engine failure
        """
        pass

    @abstractmethod
    async def stop(self, runtime_id: str) -> None:
        """
        Stop a running container.

        Raises:
            ValueError: If runtime_id is empty
            RuntimeFailure: If the engine exits non-zero
        """
        pass

    @abstractmethod
    async def remove(self, runtime_id: str) -> None:
        """
        Remove a container. A container that is already gone is not an error.

        Raises:
            RuntimeFailure: If the engine fails for any other reason
        """
        pass

    @abstractmethod
    async def force_remove(self, runtime_id: str) -> Optional[SoftFailure]:
        """Force-remove a container by id. Never raises."""
        pass

    @abstractmethod
    async def force_remove_by_name(self, name: str) -> Optional[SoftFailure]:
        """Force-remove a container by its derived name. Never raises."""
        pass

    @abstractmethod
    async def list_for_owner(self, owner_id: UUID) -> List[str]:
        """
        List ids of all containers (any state) whose name carries the owner's prefix.

        Raises:
            RuntimeFailure: If the engine exits non-zero
        """
        pass
