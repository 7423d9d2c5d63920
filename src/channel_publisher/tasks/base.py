"""Shared base task for publish workflows."""

from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn

from channel_publisher.exceptions import OperationsFailedError
from channel_publisher.storage.client import OperationResult, OperationStatus


@dataclass
class Operation:
    """One independent storage operation, run on a worker thread."""

    namespace: str
    action: str
    key: str
    run: Callable[[], OperationStatus]


class BaseTask(ABC):
    """Base class for the upload and promote tasks."""

    def __init__(self, dry_run: bool = False, max_workers: Optional[int] = None) -> None:
        self.dry_run = dry_run
        self.max_workers = max_workers
        self.console = Console(stderr=True)

    @abstractmethod
    def run(self) -> List[OperationResult]:
        """Execute the task."""

    def _run_operations(self, operations: Sequence[Operation], description: str) -> List[OperationResult]:
        """Run every operation concurrently and collect one result per operation.

        A failing operation never cancels the others. Once all of them reached a
        terminal state, any failure is raised as ``OperationsFailedError``.
        """

        if not operations:
            return []
        workers = self.max_workers or len(operations)
        logger.debug("Running {} operations on {} workers", len(operations), workers)
        outcomes: Dict[int, OperationResult] = {}
        with Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            transient=True,
            console=self.console,
        ) as progress, ThreadPoolExecutor(max_workers=workers) as pool:
            progress_task = progress.add_task(description=description, total=len(operations))
            futures: Dict[Future, int] = {pool.submit(op.run): index for index, op in enumerate(operations)}
            for future in as_completed(futures):
                index = futures[future]
                outcomes[index] = self._result(operations[index], future)
                progress.advance(progress_task)

        results = [outcomes[index] for index in range(len(operations))]
        failures = [result for result in results if result.status is OperationStatus.FAILED]
        if failures:
            raise OperationsFailedError(failures)
        return results

    def _result(self, operation: Operation, future: Future) -> OperationResult:
        try:
            status = future.result()
        except Exception as exc:
            logger.error("> {} {} failed: {}", operation.namespace, operation.action, exc)
            return OperationResult(
                namespace=operation.namespace,
                action=operation.action,
                status=OperationStatus.FAILED,
                key=operation.key,
                dry_run=self.dry_run,
                error=exc,
            )
        return OperationResult(
            namespace=operation.namespace,
            action=operation.action,
            status=status,
            key=operation.key,
            dry_run=self.dry_run,
        )
