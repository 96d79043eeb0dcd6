import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from ..config import Settings, settings as default_settings
from ..models import MemoryTestResult, ProcessedUserData, TaskContext, TaskFailure, TaskResult, TaskSpec
from .context import begin_context, end_context
from .diagnostics import DiagnosticReporter
from .registry import ActiveTaskRegistry
from .simulator import QuerySimulator, preferences_query, user_query

logger = logging.getLogger(__name__)


@dataclass
class _Dispatched:
    spec: TaskSpec
    ctx: TaskContext
    user: asyncio.Task
    preferences: asyncio.Task


def parse_concurrency(raw: Union[str, int, None], fallback: int = 10) -> int:
    try:
        count = int(raw)
    except (TypeError, ValueError):
        return fallback
    return count if count > 0 else fallback


class Orchestrator:
    """Dispatches batches of simulated requests on one event loop and joins them.

    Every task's two queries are scheduled before any of them is awaited, so the
    whole batch is suspended together and resumes in order of delay expiry.
    Results are returned in submission order.
    """

    def __init__(
        self,
        simulator: Optional[QuerySimulator] = None,
        registry: Optional[ActiveTaskRegistry] = None,
        reporter: Optional[DiagnosticReporter] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or default_settings
        self.simulator = simulator or QuerySimulator()
        self.registry = registry if registry is not None else ActiveTaskRegistry()
        self.reporter = reporter

    # ── Batch builders ────────────────────────────────────────────────

    def user_spec(self, task_id: str) -> TaskSpec:
        return TaskSpec(
            task_id=task_id,
            user_delay_ms=self.settings.user_delay_ms,
            preferences_delay_ms=self.settings.preferences_delay_ms,
        )

    def stress_specs(self, count: Optional[int] = None) -> List[TaskSpec]:
        count = self.settings.stress_test_size if count is None else count
        return [self.user_spec(str(i)) for i in range(1, count + 1)]

    def memory_specs(self, count: int) -> List[TaskSpec]:
        specs = []
        for i in range(1, count + 1):
            delay = self.settings.memory_test_base_delay_ms + i * self.settings.memory_test_step_ms
            specs.append(TaskSpec(
                task_id=f"memory-test-{i}",
                user_label=f"Heavy query for request {i}",
                preferences_label=f"Heavy preferences query for request {i}",
                user_delay_ms=delay,
                preferences_delay_ms=delay,
                ballast=self.settings.memory_test_ballast,
            ))
        return specs

    # ── Batch execution ───────────────────────────────────────────────

    async def run_batch(self, specs: Iterable[TaskSpec]) -> List[TaskResult]:
        specs = list(specs)
        if not specs:
            return []

        results = await self._gather_batch(specs)
        self._report("batch_completed", len(results), self.registry.size())
        self._report("collect_garbage_now")
        return results

    async def run_memory_test(self, concurrent: Union[str, int, None] = None) -> MemoryTestResult:
        count = parse_concurrency(concurrent, self.settings.memory_test_default)
        logger.info("MEMORY TEST: Creating %d concurrent contexts...", count)

        memory_before = self._memory_mb()
        loop = asyncio.get_running_loop()
        probe = loop.call_later(
            self.settings.memory_probe_delay_ms / 1000,
            self._probe_memory,
        )
        try:
            results = await self._gather_batch(self.memory_specs(count))
        finally:
            probe.cancel()
        self._report("batch_completed", len(results), self.registry.size())
        memory_after = self._memory_mb()
        self._report("collect_garbage_now")

        return MemoryTestResult(
            message=f"Memory test completed with {count} concurrent requests",
            memory_before=memory_before,
            memory_after=memory_after,
            results=len(results),
        )

    async def _gather_batch(self, specs: List[TaskSpec]) -> List[TaskResult]:
        dispatched = [self._dispatch(spec) for spec in specs]
        # Joins run as their own tasks so a caller going away never stops them.
        joins = [asyncio.ensure_future(self._join(d)) for d in dispatched]
        return list(await asyncio.shield(asyncio.gather(*joins)))

    def _dispatch(self, spec: TaskSpec) -> _Dispatched:
        ctx = begin_context(spec.task_id, self.registry)
        self._report("context_started", ctx)
        self._report("suspending", ctx, spec.ballast)
        user = asyncio.ensure_future(
            self.simulator.query(spec.user_label or user_query(spec.task_id), spec.user_delay_ms)
        )
        preferences = asyncio.ensure_future(
            self.simulator.query(spec.preferences_label or preferences_query(spec.task_id), spec.preferences_delay_ms)
        )
        return _Dispatched(spec=spec, ctx=ctx, user=user, preferences=preferences)

    async def _join(self, dispatched: _Dispatched) -> TaskResult:
        ctx = dispatched.ctx
        # Plain locals that must survive the suspension untouched.
        task_id = ctx.task_id
        request_id = ctx.request_id
        start_time = ctx.start_time
        ballast = [f"Context data for request {task_id}"] * dispatched.spec.ballast

        try:
            outcomes = await asyncio.gather(dispatched.user, dispatched.preferences, return_exceptions=True)
            failure = next((o for o in outcomes if isinstance(o, BaseException)), None)
            if isinstance(failure, Exception):
                raise failure
            if failure is not None:
                raise RuntimeError("Query was cancelled") from failure
            user_data, preferences = outcomes

            restored = TaskContext(task_id=task_id, request_id=request_id, start_time=start_time, is_active=True)
            elapsed_ms = end_context(ctx, self.registry)
            self._report("resumed", ctx, restored, elapsed_ms, len(ballast))

            return ProcessedUserData(
                **user_data.model_dump(),
                preferences=preferences,
                processing_time=elapsed_ms,
                request_id=request_id,
            )
        except Exception as exc:
            self._report("task_failed", ctx, exc)
            return TaskFailure(error=str(exc) or "Unknown error", task_id=task_id, request_id=request_id)
        finally:
            self.registry.unregister(request_id)

    # ── Reporter guard ────────────────────────────────────────────────

    def _report(self, hook: str, *args) -> None:
        if self.reporter is None:
            return
        try:
            getattr(self.reporter, hook)(*args)
        except Exception:
            logger.warning("Diagnostic hook %s failed", hook, exc_info=True)

    def observe_request(self, path: str) -> None:
        self._report("request_received", path, self.registry.size())

    def _probe_memory(self) -> None:
        self._report("memory_probe", self.registry.size())

    def _memory_mb(self) -> int:
        if self.reporter is None:
            return 0
        try:
            return self.reporter.memory_mb()
        except Exception:
            logger.warning("Could not read memory usage", exc_info=True)
            return 0
