"""
API endpoints for workload records.

Plain CRUD over WorkloadRepository. Deletion goes through DeploymentService
so a live container is torn down (best effort) before the record goes.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_owner_id
from app.models.workload import DeploymentStatus, Workload
from app.repositories.workload_repository import WorkloadRepository
from app.schemas.pagination import PaginatedResponse
from app.schemas.workload import (
    WorkloadCreate,
    WorkloadResponse,
    WorkloadUpdate,
    parse_workload_type,
)
from app.api.v1.endpoints.deployments import get_deployment_service
from app.services.deployment.deployment_service import DeploymentService

router = APIRouter()


@router.get("", response_model=PaginatedResponse[WorkloadResponse])
async def list_workloads(
    search: Optional[str] = Query(None, description="Name substring filter"),
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(50, ge=1, le=200, description="Page size"),
    db: AsyncSession = Depends(get_db),
    owner_id: UUID = Depends(get_current_owner_id),
) -> PaginatedResponse[WorkloadResponse]:
    """List the caller's workloads, most recently updated first (paginated)."""
    repo = WorkloadRepository(db)
    workloads, total = await repo.list_for_owner(owner_id, search=search, page=page, size=size)
    items = [WorkloadResponse.model_validate(w) for w in workloads]
    return PaginatedResponse.create(items=items, total=total, page=page, size=size)


@router.get("/{workload_id}", response_model=WorkloadResponse)
async def get_workload(
    workload_id: UUID,
    db: AsyncSession = Depends(get_db),
    owner_id: UUID = Depends(get_current_owner_id),
) -> WorkloadResponse:
    """
    Get a workload by ID.

    Raises:
        WorkloadNotFoundError: If workload not found (404)
    """
    repo = WorkloadRepository(db)
    workload = await repo.get_for_owner_or_raise(workload_id, owner_id)
    return WorkloadResponse.model_validate(workload)


@router.post("", response_model=WorkloadResponse, status_code=status.HTTP_201_CREATED)
async def create_workload(
    workload_data: WorkloadCreate,
    db: AsyncSession = Depends(get_db),
    owner_id: UUID = Depends(get_current_owner_id),
) -> WorkloadResponse:
    """
    Create a workload in NotDeployed state.

    Raises:
        InvalidWorkloadTypeError: If the type is unknown (400)
    """
    workload_type = parse_workload_type(workload_data.type)

    repo = WorkloadRepository(db)
    workload = await repo.create(Workload(
        owner_id=owner_id,
        name=workload_data.name,
        description=workload_data.description,
        type=workload_type.value,
        required_cpu=workload_data.required_cpu,
        required_memory=workload_data.required_memory,
        required_storage=workload_data.required_storage,
        container_image=workload_data.container_image,
        exposed_port=workload_data.exposed_port,
        environment_variables=workload_data.environment_variables,
        deployment_status=DeploymentStatus.NOT_DEPLOYED.value,
    ))
    return WorkloadResponse.model_validate(workload)


@router.put("/{workload_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_workload(
    workload_id: UUID,
    workload_data: WorkloadUpdate,
    db: AsyncSession = Depends(get_db),
    owner_id: UUID = Depends(get_current_owner_id),
) -> Response:
    """
    Replace a workload's declaration. Deployment state is left alone.

    Raises:
        InvalidWorkloadTypeError: If the type is unknown (400)
        WorkloadNotFoundError: If workload not found (404)
    """
    workload_type = parse_workload_type(workload_data.type)

    repo = WorkloadRepository(db)
    workload = await repo.get_for_owner_or_raise(workload_id, owner_id)

    workload.name = workload_data.name
    workload.description = workload_data.description
    workload.type = workload_type.value
    workload.required_cpu = workload_data.required_cpu
    workload.required_memory = workload_data.required_memory
    workload.required_storage = workload_data.required_storage
    workload.container_image = workload_data.container_image
    workload.exposed_port = workload_data.exposed_port
    workload.environment_variables = workload_data.environment_variables

    await repo.save(workload)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{workload_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workload(
    workload_id: UUID,
    owner_id: UUID = Depends(get_current_owner_id),
    service: DeploymentService = Depends(get_deployment_service),
) -> Response:
    """
    Delete a workload, tearing down its container first (best effort).

    Raises:
        WorkloadNotFoundError: If workload not found (404)
        WorkloadBusyError: If a deployment operation is in progress (409)
    """
    await service.delete_workload(workload_id, owner_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
