"""Object storage access."""

from .client import OperationResult, OperationStatus, StorageClient
from .indexes import append_to_index, index_key

__all__ = [
    "OperationResult",
    "OperationStatus",
    "StorageClient",
    "append_to_index",
    "index_key",
]
