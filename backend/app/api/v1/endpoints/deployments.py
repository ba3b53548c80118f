"""
API endpoints for workload deployments.

Every route is scoped to the authenticated owner. Domain exceptions raised by
DeploymentService are mapped to HTTP responses by the registered handlers,
except deploy failures, which answer with a DeploymentResponse body.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import DeploymentExecutionError
from app.core.security import get_current_owner_id
from app.repositories.workload_repository import WorkloadRepository
from app.schemas.deployment import (
    ContainerStatusResponse,
    DeploymentResponse,
    MessageResponse,
)
from app.schemas.workload import WorkloadResponse
from app.services.deployment.deployment_service import DeploymentService
from app.services.deployment.docker_runtime import docker_runtime

router = APIRouter()


def get_deployment_service(db: AsyncSession = Depends(get_db)) -> DeploymentService:
    """Build a DeploymentService around the request's session."""
    return DeploymentService(
        repository=WorkloadRepository(db),
        runtime=docker_runtime,
    )


@router.post("/deploy/{workload_id}", response_model=DeploymentResponse)
async def deploy_workload(
    workload_id: UUID,
    owner_id: UUID = Depends(get_current_owner_id),
    service: DeploymentService = Depends(get_deployment_service),
):
    """
    Deploy or redeploy a workload's container.

    Raises:
        WorkloadNotFoundError: If workload not found (404)
        ContainerImageRequiredError: If the workload has no image (400)
        WorkloadBusyError: If another operation is in progress (409)
    """
    try:
        workload = await service.deploy(workload_id, owner_id)
    except DeploymentExecutionError as e:
        body = DeploymentResponse(success=False, message=e.message)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(mode="json", by_alias=True),
        )

    return DeploymentResponse.from_workload(workload)


@router.get("/status/{workload_id}", response_model=ContainerStatusResponse)
async def get_deployment_status(
    workload_id: UUID,
    owner_id: UUID = Depends(get_current_owner_id),
    service: DeploymentService = Depends(get_deployment_service),
) -> ContainerStatusResponse:
    """
    Get the engine's status record for a workload's container.

    Raises:
        WorkloadNotFoundError / ContainerNotFoundError: (404)
        RuntimeFailure: If the engine fails (500)
    """
    container_status = await service.get_status(workload_id, owner_id)
    return ContainerStatusResponse.from_status(container_status)


@router.post("/stop/{workload_id}", response_model=MessageResponse)
async def stop_deployment(
    workload_id: UUID,
    owner_id: UUID = Depends(get_current_owner_id),
    service: DeploymentService = Depends(get_deployment_service),
) -> MessageResponse:
    """
    Stop a workload's container.

    Raises:
        WorkloadNotFoundError / ContainerNotFoundError: (404)
        RuntimeFailure: If the engine fails; status unchanged (500)
    """
    await service.stop(workload_id, owner_id)
    return MessageResponse(message="Workload stopped successfully")


@router.delete("/remove/{workload_id}", response_model=MessageResponse)
async def remove_deployment(
    workload_id: UUID,
    owner_id: UUID = Depends(get_current_owner_id),
    service: DeploymentService = Depends(get_deployment_service),
) -> MessageResponse:
    """
    Remove a workload's container and reset it to NotDeployed.

    Raises:
        WorkloadNotFoundError / ContainerNotFoundError: (404)
    """
    await service.remove(workload_id, owner_id)
    return MessageResponse(message="Workload removed successfully")


@router.get("/my-deployments", response_model=List[WorkloadResponse])
async def list_my_deployments(
    owner_id: UUID = Depends(get_current_owner_id),
    service: DeploymentService = Depends(get_deployment_service),
) -> List[WorkloadResponse]:
    """List workloads in Running, Deploying, Stopped or Error."""
    workloads = await service.list_deployments(owner_id)
    return [WorkloadResponse.model_validate(w) for w in workloads]


@router.get("/containers", response_model=List[str])
async def list_my_containers(
    owner_id: UUID = Depends(get_current_owner_id),
    service: DeploymentService = Depends(get_deployment_service),
) -> List[str]:
    """List raw engine container ids belonging to the caller."""
    return await service.list_containers(owner_id)
