"""Publish workflows."""

from .base import BaseTask, Operation
from .promote import PromoteOptions, PromoteTask
from .upload import UploadTask

__all__ = [
    "BaseTask",
    "Operation",
    "PromoteOptions",
    "PromoteTask",
    "UploadTask",
]
