"""Sync Queue — ordered, single-consumer queue for cross-domain side effects.

Invariants:
    - State machine IDLE -> DRAINING -> IDLE; at most one drain task exists
    - FIFO: operations execute in enqueue order, each one to completion before
      the next head is removed (never concurrently)
    - enqueue() is O(1) and never blocks; enqueues during a drain are picked up
      by the running loop
    - A failing operation is logged and does not stop the loop
    - Retryable failures (transient BackendCallError) are retried inline with
      exponential backoff, bounded per operation kind; retries finish before the
      next head starts, so ordering holds
    - Permanently failed operations land in dead_letters (bounded, oldest dropped)
    - Accepted operations cannot be withdrawn; in-memory only (lost on restart)
"""

import asyncio
import logging
import random
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping

from crossapp.core.domain_types import QueueState
from crossapp.core.errors import BackendCallError, CrossAppError
from crossapp.core.sync_operations import SyncOperation

logger = logging.getLogger(__name__)

Executor = Callable[[SyncOperation], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 1
    base_delay_ms: int = 500
    max_delay_ms: int = 30_000

    def backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter, in milliseconds."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311


@dataclass
class DeadLetter:
    operation: SyncOperation
    error: str
    error_code: str | None
    attempts: int
    failed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> dict:
        return {
            "operation": self.operation.model_dump(mode="json"),
            "error": self.error,
            "error_code": self.error_code,
            "attempts": self.attempts,
            "failed_at": self.failed_at.isoformat(),
        }


def _is_retryable(error: Exception) -> bool:
    return isinstance(error, BackendCallError) and error.retryable


class SyncQueue:
    def __init__(
        self,
        executor: Executor | None = None,
        retry_policies: Mapping[str, RetryPolicy] | None = None,
        default_policy: RetryPolicy = RetryPolicy(),
        dead_letter_limit: int = 500,
    ):
        self.executor = executor
        self._policies = dict(retry_policies or {})
        self._default_policy = default_policy
        self._pending: deque[SyncOperation] = deque()
        self._dead_letters: deque[DeadLetter] = deque(maxlen=dead_letter_limit)
        self._state = QueueState.IDLE
        self._task: asyncio.Task | None = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._processed = 0
        self._failed = 0

    @property
    def state(self) -> QueueState:
        return self._state

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def dead_letters(self) -> list[DeadLetter]:
        return list(self._dead_letters)

    def enqueue(self, operation: SyncOperation) -> str:
        """Append to the tail; start the drain loop if idle. Returns the operation id."""
        if self.executor is None:
            raise RuntimeError("SyncQueue has no executor bound")
        loop = asyncio.get_running_loop()
        self._pending.append(operation)
        logger.debug(
            "Sync operation queued",
            extra={
                "operation_id": operation.id, "kind": operation.kind,
                "pending": len(self._pending),
            },
        )
        if self._state is QueueState.IDLE:
            self._state = QueueState.DRAINING
            self._idle.clear()
            self._task = loop.create_task(self._drain())
        return operation.id

    async def wait_idle(self) -> None:
        """Wait until the queue has drained."""
        await self._idle.wait()

    async def shutdown(self, timeout: float = 5.0) -> int:
        """Give the loop `timeout` seconds to drain, then cancel. Returns dropped count."""
        if self._task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(self._idle.wait()), timeout)
            except asyncio.TimeoutError:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
        dropped = len(self._pending)
        if dropped:
            logger.warning(
                f"Sync queue shut down with {dropped} unprocessed operation(s)",
                extra={"pending": dropped},
            )
        self._pending.clear()
        return dropped

    def status(self) -> dict:
        return {
            "state": self._state.value,
            "pending": len(self._pending),
            "processed": self._processed,
            "failed": self._failed,
            "dead_letters": len(self._dead_letters),
        }

    async def _drain(self) -> None:
        try:
            while self._pending:
                operation = self._pending.popleft()
                await self._process(operation)
        finally:
            self._state = QueueState.IDLE
            self._task = None
            self._idle.set()

    async def _process(self, operation: SyncOperation) -> None:
        policy = self._policies.get(operation.kind, self._default_policy)
        attempts = max(1, policy.max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                await self.executor(operation)
                self._processed += 1
                return
            except Exception as e:
                extra = {
                    "operation_id": operation.id,
                    "kind": operation.kind,
                    "attempt": attempt,
                    "error_code": getattr(e, "code", None),
                }
                if attempt < attempts and _is_retryable(e):
                    delay = policy.backoff(attempt - 1)
                    logger.warning(
                        f"Sync operation failed, retry after {delay}ms: {e}",
                        extra=extra,
                    )
                    await asyncio.sleep(delay / 1000)
                    continue
                logger.error(f"Sync operation failed: {e}", extra=extra)
                self._failed += 1
                self._dead_letters.append(DeadLetter(
                    operation=operation,
                    error=str(e),
                    error_code=e.code if isinstance(e, CrossAppError) else None,
                    attempts=attempt,
                ))
                return
