"""
Typed error classes for devnetbox.

This module provides the error hierarchy used by the devnet orchestrator:
- DevnetError: Base exception for all devnetbox errors
- ClusterError: A cluster operation (create, start, stop, remove, attach) failed
- ContainerError: A container lifecycle call failed
- HealthCheckError: A service never became ready
- ImageError: Image inspection or pull failed
- EngineUnavailableError: The Docker engine cannot be reached
- ConfigurationError: Configuration input could not be loaded
"""

from typing import Any, Optional


class DevnetError(Exception):
    """Base exception class for all devnetbox errors.

    Attributes:
        message: Human-readable error message
        code: Optional error code for programmatic handling
        details: Optional dictionary with additional error context
        cause: Optional underlying exception
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        self.cause = cause
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a dictionary for serialization."""
        result: dict[str, Any] = {
            "type": self.__class__.__name__,
            "message": self.message,
        }
        if self.code:
            result["code"] = self.code
        if self.details:
            result["details"] = self.details
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class EngineUnavailableError(DevnetError):
    """Raised when the Docker engine cannot be reached at all."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, code="ENGINE_UNAVAILABLE", cause=cause)


class ImageError(DevnetError):
    """Image inspection or pull errors.

    Reasons:
    - image_inspection_failed
    - image_pull_failed
    """

    def __init__(
        self,
        reason: str,
        message: str,
        image: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.reason = reason
        self.image = image
        details = {"image": image} if image else {}
        super().__init__(message, code=reason, details=details, cause=cause)


class ContainerError(DevnetError):
    """Container lifecycle errors.

    Reasons:
    - container_create_failed
    - container_start_failed
    - container_stop_failed
    - container_removal_failed
    - container_inspection_failed
    - container_not_found
    """

    def __init__(
        self,
        reason: str,
        message: str,
        container: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.reason = reason
        self.container = container
        details = {"container": container} if container else {}
        super().__init__(message, code=reason, details=details, cause=cause)


class HealthCheckError(DevnetError):
    """Raised when a service does not become ready before its timeout."""

    def __init__(
        self,
        service: str,
        message: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        cause: Optional[BaseException] = None,
    ):
        self.service = service
        self.timeout_seconds = timeout_seconds
        details: dict[str, Any] = {"service": service}
        if timeout_seconds is not None:
            details["timeout_seconds"] = timeout_seconds
        super().__init__(
            message or f"Health check failed for {service}",
            code="HEALTH_CHECK_FAILED",
            details=details,
            cause=cause,
        )


class ClusterError(DevnetError):
    """Top-level orchestration error.

    Names the operation that failed and, where known, the service container
    and step within that operation.
    """

    def __init__(
        self,
        operation: str,
        message: Optional[str] = None,
        cluster: Optional[str] = None,
        step: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.operation = operation
        self.cluster = cluster
        self.step = step
        details: dict[str, Any] = {"operation": operation}
        if cluster:
            details["cluster"] = cluster
        if step:
            details["step"] = step
        if message is None:
            target = f" for {cluster}" if cluster else ""
            message = f"Cluster {operation} failed{target}"
            if cause is not None:
                message = f"{message}: {cause}"
        super().__init__(
            message,
            code=f"CLUSTER_{operation.upper()}_FAILED",
            details=details,
            cause=cause,
        )


class ConfigurationError(DevnetError):
    """Raised when a configuration file is missing or malformed."""

    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.config_file = config_file
        details = {"config_file": config_file} if config_file else {}
        super().__init__(
            message, code="CONFIGURATION_ERROR", details=details, cause=cause
        )


__all__ = [
    "DevnetError",
    "EngineUnavailableError",
    "ImageError",
    "ContainerError",
    "HealthCheckError",
    "ClusterError",
    "ConfigurationError",
]
