"""Managed exceptions raised by the publisher."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from channel_publisher.storage.client import OperationResult


@dataclass
class ErrorDetails:
    diagnostic_code: str
    message: str
    diagnostic_details: Dict[str, str] = field(default_factory=dict)
    suggestions: List[str] = field(default_factory=list)


class PublisherException(Exception):
    """Base class for every error the CLI reports as a diagnostic."""

    def __init__(self, error: ErrorDetails):
        self.diagnostic_code = error.diagnostic_code
        self.diagnostic_details = error.diagnostic_details
        self.suggestions = error.suggestions
        super().__init__(error.message)


class ConfigurationError(PublisherException):
    def __init__(self, message: str, diagnostic_details: Dict[str, str] | None = None):
        super().__init__(
            ErrorDetails(
                diagnostic_code="00400",
                message=message,
                diagnostic_details=diagnostic_details or {},
            )
        )


class InvalidArchitectureError(ConfigurationError):
    def __init__(self, arch: str):
        super().__init__(f"invalid arch: {arch}", {"arch": arch})
        self.arch = arch


class PreconditionError(PublisherException):
    """A local artifact required before any network call is missing."""

    def __init__(self, message: str, suggestions: Sequence[str] = (), diagnostic_details: Dict[str, str] | None = None):
        super().__init__(
            ErrorDetails(
                diagnostic_code="00412",
                message=message,
                diagnostic_details=diagnostic_details or {},
                suggestions=list(suggestions),
            )
        )


class ObjectNotFoundError(PublisherException):
    def __init__(self, bucket: str, key: str):
        super().__init__(
            ErrorDetails(
                diagnostic_code="00404",
                message=f"Object s3://{bucket}/{key} does not exist",
                diagnostic_details={"bucket": bucket, "key": key},
            )
        )
        self.bucket = bucket
        self.key = key


class OperationsFailedError(PublisherException):
    """One or more concurrent storage operations failed."""

    def __init__(self, failures: Sequence["OperationResult"]):
        self.failures = list(failures)
        names = ", ".join(result.namespace for result in self.failures)
        super().__init__(
            ErrorDetails(
                diagnostic_code="00502",
                message=f"{len(self.failures)} storage operation(s) failed: {names}",
                diagnostic_details={result.namespace: str(result.error) for result in self.failures},
            )
        )
