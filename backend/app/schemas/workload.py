"""
Pydantic schemas for Workload.

The front-end speaks camelCase; fields are snake_case in Python and
serialized with camelCase aliases.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.exceptions import InvalidWorkloadTypeError
from app.models.workload import WorkloadType


def parse_workload_type(value: str) -> WorkloadType:
    """
    Parse a workload type name.

    Raises:
        InvalidWorkloadTypeError: If the name is not a known type (400)
    """
    try:
        return WorkloadType(value)
    except ValueError:
        raise InvalidWorkloadTypeError(value) from None


class CamelModel(BaseModel):
    """Base schema accepting and emitting camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class WorkloadBase(CamelModel):
    """Fields shared by create and update requests."""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    # Validated against WorkloadType in the endpoint so a bad value is a 400
    type: str
    required_cpu: int = Field(..., ge=1)
    required_memory: float = Field(..., gt=0)
    required_storage: float = Field(..., gt=0)

    container_image: Optional[str] = Field(None, max_length=500)
    exposed_port: int = Field(80, ge=1, le=65535)
    environment_variables: Optional[str] = None


class WorkloadCreate(WorkloadBase):
    """Schema for creating a Workload."""
    pass


class WorkloadUpdate(WorkloadBase):
    """Schema for replacing a Workload's declaration."""
    pass


class WorkloadResponse(CamelModel):
    """Schema for Workload response."""
    id: UUID
    name: str
    description: Optional[str] = None
    type: str
    required_cpu: int
    required_memory: float
    required_storage: float
    created_at: datetime
    updated_at: datetime

    container_image: Optional[str] = None
    exposed_port: int = 80
    environment_variables: Optional[str] = None
    deployment_status: Optional[str] = None
    container_id: Optional[str] = None
    access_url: Optional[str] = None
    deployed_at: Optional[datetime] = None
