import gc
import logging
import os

import orjson
import psutil

from ..models import TaskContext

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


def _render(snapshot: dict) -> str:
    return orjson.dumps(snapshot).decode()


class DiagnosticReporter:
    """Logs timing, memory and in-flight counts at each phase of a task's life.

    Observers only: nothing here feeds back into task results.
    """

    def __init__(self, collect_garbage: bool = True):
        self.collect_garbage = collect_garbage
        self._process = psutil.Process(os.getpid())
        self.request_count = 0

    def memory_mb(self) -> int:
        return round(self._process.memory_info().rss / _MB)

    def request_received(self, path: str, active: int) -> None:
        self.request_count += 1
        logger.info(
            "[REQ-%d] %s | Memory: %dMB rss | Active contexts: %d",
            self.request_count, path, self.memory_mb(), active,
        )

    def context_started(self, ctx: TaskContext) -> None:
        logger.info("[%s] Request started for user %s", ctx.request_id, ctx.task_id)
        logger.info("[%s] Local variables at start: %s", ctx.request_id, _render(ctx.model_dump()))

    def suspending(self, ctx: TaskContext, ballast: int = 0) -> None:
        logger.info("[%s] Memory before await: %dMB", ctx.request_id, self.memory_mb())
        if ballast:
            logger.info("[%s] Storing context with %d items", ctx.request_id, ballast)
        logger.info("[%s] About to await - event loop will hold this frame", ctx.request_id)

    def resumed(self, before: TaskContext, after: TaskContext, elapsed_ms: int, ballast: int = 0) -> None:
        logger.info("[%s] Memory after await: %dMB", after.request_id, self.memory_mb())
        logger.info(
            "[%s] Context restored! All variables still available: %s",
            after.request_id, _render({**after.model_dump(), "duration": elapsed_ms}),
        )
        if ballast:
            logger.info("[%s] Context restored with %d items", after.request_id, ballast)
        if before != after:
            logger.error("[%s] Context changed across await: %s -> %s", before.request_id, before, after)
        logger.info("[%s] Sending response after %dms", after.request_id, elapsed_ms)

    def task_failed(self, ctx: TaskContext, exc: BaseException) -> None:
        logger.error("[%s] Error: %s", ctx.request_id, exc, exc_info=exc)

    def memory_probe(self, active: int) -> None:
        logger.info("Memory during concurrent execution: %dMB | Active: %d", self.memory_mb(), active)

    def batch_completed(self, size: int, active: int) -> None:
        logger.info("Batch of %d finished | Memory after batch: %dMB | Active: %d", size, self.memory_mb(), active)

    def collect_garbage_now(self) -> None:
        if not self.collect_garbage:
            return
        logger.info("Running garbage collection...")
        gc.collect()
        logger.info("Memory after GC: %dMB", self.memory_mb())
