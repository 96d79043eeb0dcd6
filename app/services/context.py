import time
import uuid
from ..models import TaskContext
from .registry import ActiveTaskRegistry


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def begin_context(task_id: str, registry: ActiveTaskRegistry) -> TaskContext:
    request_id = new_request_id()
    while request_id in registry:
        request_id = new_request_id()
    ctx = TaskContext(task_id=task_id, request_id=request_id, start_time=time.time(), is_active=True)
    registry.register(ctx.request_id, ctx.start_time)
    return ctx


def end_context(ctx: TaskContext, registry: ActiveTaskRegistry) -> int:
    elapsed_ms = round((time.time() - ctx.start_time) * 1000)
    registry.unregister(ctx.request_id)
    return elapsed_ms
