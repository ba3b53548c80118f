"""
Custom exception hierarchy for domain-specific errors.

This module provides a clean separation between domain errors and HTTP concerns.
Services raise domain exceptions, and the exception handlers map them to HTTP responses.
"""
from typing import Optional, Dict, Any


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# =============================================================================
# Not Found Errors (404)
# =============================================================================

class NotFoundError(DomainException):
    """Base class for resource not found errors."""
    pass


class WorkloadNotFoundError(NotFoundError):
    """Workload does not exist or belongs to another owner."""

    def __init__(self, identifier: str):
        super().__init__(f"Workload not found: {identifier}", {"identifier": identifier})


class ContainerNotFoundError(NotFoundError):
    """Workload has no live container."""

    def __init__(self, workload_id: str):
        super().__init__(
            f"Container not found for workload: {workload_id}",
            {"workload_id": workload_id},
        )


# =============================================================================
# Validation Errors (400)
# =============================================================================

class ValidationError(DomainException):
    """Base class for validation errors."""
    pass


class ContainerImageRequiredError(ValidationError):
    """Deploy was requested for a workload without a container image."""

    def __init__(self, workload_id: str):
        super().__init__(
            "Container image is required for deployment",
            {"workload_id": workload_id},
        )


class InvalidWorkloadTypeError(ValidationError):
    """Workload type is not one of the known types."""

    def __init__(self, value: str):
        super().__init__(f"Invalid workload type: {value}", {"type": value})


# =============================================================================
# Conflict Errors (409)
# =============================================================================

class ConflictError(DomainException):
    """Base class for conflicting concurrent operations."""
    pass


class WorkloadBusyError(ConflictError):
    """Another lifecycle operation is in progress for this workload."""

    def __init__(self, workload_id: str):
        super().__init__(
            f"Another deployment operation is in progress for workload {workload_id}",
            {"workload_id": workload_id},
        )


# =============================================================================
# Authentication Errors (401)
# =============================================================================

class AuthenticationError(DomainException):
    """Request could not be authenticated."""

    def __init__(self, reason: str = "Invalid or missing API key"):
        super().__init__(reason)


# =============================================================================
# Operation Errors (500)
# =============================================================================

class OperationError(DomainException):
    """Base class for operation failures."""
    pass


class RuntimeFailure(OperationError):
    """The container engine exited non-zero."""

    def __init__(self, operation: str, stderr: str, return_code: Optional[int] = None):
        self.operation = operation
        self.stderr = stderr
        self.return_code = return_code
        super().__init__(
            f"Container runtime failed during {operation}: {stderr or 'Unknown error'}",
            {"operation": operation, "stderr": stderr, "return_code": return_code},
        )


class DeploymentExecutionError(OperationError):
    """Deployment execution failed; the workload was moved to Error."""

    def __init__(self, workload_id: str, reason: str):
        super().__init__(
            f"Deployment failed: {reason}",
            {"workload_id": workload_id, "reason": reason},
        )
