"""
Deployment lifecycle service.

The only component that changes a workload's deployment_status. Coordinates:
- WorkloadRepository for reading and persisting workload records
- ContainerRuntime for engine operations
- PortAllocator and the environment resolver for the run call
- WorkloadLockRegistry so lifecycle operations on one workload never interleave

Lifecycle:
    NotDeployed -> Deploying -> Running | Error
    Running -> Stopped
    Stopped | Error | Deploying -> Deploying   (redeploy)
    any deployed state -> NotDeployed          (remove)

Cleanup steps (old containers, delete-time teardown) are best effort: their
failures come back as SoftFailure values that are logged and never block the
primary operation.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from app.core.config import settings
from app.core.exceptions import (
    ContainerImageRequiredError,
    ContainerNotFoundError,
    DeploymentExecutionError,
    RuntimeFailure,
)
from app.core.locks import WorkloadLockRegistry, workload_locks
from app.models.workload import DeploymentStatus, Workload
from app.repositories.workload_repository import WorkloadRepository
from app.services.deployment.env_resolver import resolve_environment
from app.services.deployment.port_allocator import PortAllocator, port_allocator
from app.services.deployment.runtime_base import ContainerRuntime, ContainerStatus, SoftFailure

logger = logging.getLogger(__name__)


class DeploymentService:
    """
    Stateless orchestration of the workload deployment lifecycle.

    All collaborators are injected; one instance is built per request around
    that request's repository.
    """

    def __init__(
        self,
        repository: WorkloadRepository,
        runtime: ContainerRuntime,
        ports: PortAllocator = port_allocator,
        locks: WorkloadLockRegistry = workload_locks,
        public_host: str = None,
        apply_resource_limits: Optional[bool] = None,
    ):
        self.repository = repository
        self.runtime = runtime
        self.ports = ports
        self.locks = locks
        self.public_host = public_host or settings.DEPLOYMENT_PUBLIC_HOST
        self.apply_resource_limits = (
            apply_resource_limits
            if apply_resource_limits is not None
            else settings.DEPLOYMENT_APPLY_RESOURCE_LIMITS
        )

    def _log_soft_failure(self, workload: Workload, failure: Optional[SoftFailure]) -> None:
        if failure:
            logger.warning(
                f"Cleanup step {failure.operation} failed for workload {workload.id} "
                f"(target {failure.target}): {failure.reason}"
            )

    async def _mark_error(self, workload: Workload, reason: str) -> None:
        workload.deployment_status = DeploymentStatus.ERROR.value
        await self.repository.save(workload)
        logger.error(f"Deployment of workload {workload.id} failed: {reason}")

    # =========================================================================
    # Deploy / redeploy
    # =========================================================================

    async def deploy(self, workload_id: UUID, owner_id: UUID) -> Workload:
        """
        Deploy (or redeploy) a workload's container.

        Returns:
            The workload in Running state

        Raises:
            WorkloadNotFoundError: Unknown id or other owner (404)
            ContainerImageRequiredError: No image set; status unchanged (400)
            WorkloadBusyError: Another lifecycle operation is running (409)
            DeploymentExecutionError: Deploy failed; workload is now Error (500)
        """
        async with self.locks.acquire(workload_id):
            workload = await self.repository.get_for_owner_or_raise(workload_id, owner_id)

            if not workload.is_deployable:
                raise ContainerImageRequiredError(str(workload_id))

            previous_status = workload.deployment_status

            # Persisted before touching the engine so a crash mid-deploy is visible
            workload.deployment_status = DeploymentStatus.DEPLOYING.value
            workload.deployed_at = datetime.utcnow()
            await self.repository.save(workload)

            try:
                await self._dispose_previous_container(workload, previous_status)
                container_id, access_url = await self._start_container(workload)
            except Exception as e:
                reason = e.message if isinstance(e, RuntimeFailure) else str(e)
                await self._mark_error(workload, reason)
                raise DeploymentExecutionError(str(workload_id), reason) from e

            workload.container_id = container_id
            workload.access_url = access_url
            workload.deployment_status = DeploymentStatus.RUNNING.value
            workload = await self.repository.save(workload)

            logger.info(f"Workload {workload_id} running as container {container_id} at {access_url}")
            return workload

    async def _dispose_previous_container(self, workload: Workload, previous_status: str) -> None:
        """
        Make room for a new container under the workload's derived name.

        A known container is removed by id, falling back to removal by name.
        Without a known id, any leftover container holding the name (from a
        crashed deploy or a failed remove) is swept by name.
        """
        name = self.runtime.container_name(workload.owner_id, workload.id)

        if not workload.container_id:
            if previous_status != DeploymentStatus.NOT_DEPLOYED.value:
                logger.info(f"Sweeping leftover container {name} for workload {workload.id}")
            self._log_soft_failure(workload, await self.runtime.force_remove_by_name(name))
            return

        old_container_id = workload.container_id
        logger.info(f"Removing old container {old_container_id} before redeploy of workload {workload.id}")
        try:
            await self.runtime.remove(old_container_id)
        except Exception as e:
            logger.warning(
                f"Failed to remove old container {old_container_id} for workload {workload.id}, "
                f"trying by name {name}: {e}"
            )
            self._log_soft_failure(workload, await self.runtime.force_remove_by_name(name))

        workload.container_id = None
        workload.access_url = None
        await self.repository.save(workload)

    async def _start_container(self, workload: Workload) -> Tuple[str, str]:
        """
        Run the workload's container.

        Returns:
            Tuple of (container_id, access_url)
        """
        name = self.runtime.container_name(workload.owner_id, workload.id)
        host_port = self.ports.allocate()
        env_assignments = resolve_environment(workload.environment_variables, workload.id)

        memory_limit_gb = None
        cpu_limit = None
        if self.apply_resource_limits:
            memory_limit_gb = workload.required_memory
            cpu_limit = workload.required_cpu

        try:
            container_id = await self.runtime.run(
                name=name,
                host_port=host_port,
                container_port=workload.exposed_port or 80,
                image=workload.container_image,
                env_assignments=env_assignments,
                memory_limit_gb=memory_limit_gb,
                cpu_limit=cpu_limit,
            )
        except RuntimeFailure:
            # A failed run can leave the container behind in "Created" state
            self._log_soft_failure(workload, await self.runtime.force_remove_by_name(name))
            raise

        return container_id.strip(), f"http://{self.public_host}:{host_port}"

    # =========================================================================
    # Stop / remove / status
    # =========================================================================

    async def stop(self, workload_id: UUID, owner_id: UUID) -> Workload:
        """
        Stop a workload's container, keeping it for a later redeploy.

        Raises:
            WorkloadNotFoundError: Unknown id or other owner (404)
            ContainerNotFoundError: Workload has no container (404)
            RuntimeFailure: Engine failed; status left unchanged (500)
        """
        async with self.locks.acquire(workload_id):
            workload = await self.repository.get_for_owner_or_raise(workload_id, owner_id)
            if not workload.has_container:
                raise ContainerNotFoundError(str(workload_id))

            try:
                await self.runtime.stop(workload.container_id)
            except RuntimeFailure:
                logger.error(f"Failed to stop container {workload.container_id} of workload {workload_id}")
                raise

            workload.deployment_status = DeploymentStatus.STOPPED.value
            workload = await self.repository.save(workload)
            logger.info(f"Workload {workload_id} stopped")
            return workload

    async def remove(self, workload_id: UUID, owner_id: UUID) -> List[SoftFailure]:
        """
        Remove a workload's deployment and return it to NotDeployed.

        The record is cleared whatever the engine says: the intent is to
        forget the container.

        Returns:
            Cleanup steps that failed (logged, not raised)

        Raises:
            WorkloadNotFoundError: Unknown id or other owner (404)
            ContainerNotFoundError: Nothing is deployed (404)
        """
        async with self.locks.acquire(workload_id):
            workload = await self.repository.get_for_owner_or_raise(workload_id, owner_id)
            if (
                not workload.has_container
                and workload.deployment_status == DeploymentStatus.NOT_DEPLOYED.value
            ):
                raise ContainerNotFoundError(str(workload_id))

            failures = []
            if workload.has_container:
                try:
                    await self.runtime.remove(workload.container_id)
                except Exception as e:
                    failures.append(SoftFailure(
                        operation="remove",
                        target=workload.container_id,
                        reason=str(e),
                    ))
            else:
                name = self.runtime.container_name(workload.owner_id, workload.id)
                failure = await self.runtime.force_remove_by_name(name)
                if failure:
                    failures.append(failure)

            for failure in failures:
                self._log_soft_failure(workload, failure)

            workload.clear_deployment()
            await self.repository.save(workload)
            logger.info(f"Deployment of workload {workload_id} removed")
            return failures

    async def get_status(self, workload_id: UUID, owner_id: UUID) -> ContainerStatus:
        """
        Get the engine's view of a workload's container.

        Raises:
            WorkloadNotFoundError: Unknown id or other owner (404)
            ContainerNotFoundError: Workload has no container (404)
            RuntimeFailure: Engine failed (500)
        """
        workload = await self.repository.get_for_owner_or_raise(workload_id, owner_id)
        if not workload.has_container:
            raise ContainerNotFoundError(str(workload_id))
        return await self.runtime.inspect(workload.container_id)

    # =========================================================================
    # Workload deletion and listings
    # =========================================================================

    async def delete_workload(self, workload_id: UUID, owner_id: UUID) -> List[SoftFailure]:
        """
        Delete a workload record, tearing down its container first.

        Teardown is stop-then-force-remove; its failures are logged and never
        prevent the record from being deleted.

        Returns:
            Teardown steps that failed
        """
        async with self.locks.acquire(workload_id):
            workload = await self.repository.get_for_owner_or_raise(workload_id, owner_id)

            failures = []
            if workload.has_container:
                container_id = workload.container_id
                try:
                    await self.runtime.stop(container_id)
                except Exception as e:
                    failures.append(SoftFailure(operation="stop", target=container_id, reason=str(e)))

                try:
                    failure = await self.runtime.force_remove(container_id)
                except Exception as e:
                    failure = SoftFailure(operation="force_remove", target=container_id, reason=str(e))
                if failure:
                    failures.append(failure)

                for failure in failures:
                    self._log_soft_failure(workload, failure)

            await self.repository.delete(workload)
            logger.info(f"Workload {workload_id} deleted")
            return failures

    async def list_deployments(self, owner_id: UUID) -> List[Workload]:
        """Workloads of the owner in Running, Deploying, Stopped or Error."""
        return await self.repository.list_deployed(owner_id)

    async def list_containers(self, owner_id: UUID) -> List[str]:
        """Raw engine container ids carrying the owner's name prefix."""
        return await self.runtime.list_for_owner(owner_id)
